"""Drawing surfaces that receive the element renderer's primitives."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import matplotlib.pyplot as plt
import matplotlib.patches as patches
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_AUTO_SIZE, PP_ALIGN
from pptx.util import Emu, Pt

from .exceptions import CanvasUnavailable
from .models import DrawCommand, DrawRectangle, DrawText

logger = logging.getLogger(__name__)

# 96 DPI: one CSS pixel is 9525 EMU and 0.75 points.
EMU_PER_PIXEL = 9525
POINTS_PER_PIXEL = 0.75

_PPTX_ALIGNMENT = {
    "left": PP_ALIGN.LEFT,
    "center": PP_ALIGN.CENTER,
    "right": PP_ALIGN.RIGHT,
}


def hex_to_rgb(hex_color: str) -> RGBColor:
    """
    Convert a hex colour to a PowerPoint RGB colour.

    Args:
        hex_color: Hex colour string (e.g. "#E3F2FD")

    Returns:
        RGB colour object
    """
    hex_color = hex_color.lstrip('#')
    if len(hex_color) != 6:
        raise ValueError(f"Invalid hex colour: #{hex_color}")
    r = int(hex_color[0:2], 16)
    g = int(hex_color[2:4], 16)
    b = int(hex_color[4:6], 16)

    return RGBColor(r, g, b)


class DrawingSurface:
    """A canvas that reports its size and accepts rectangle and text primitives."""

    def get_canvas_dimensions(self) -> Dict[str, float]:
        """Return ``{"width": ..., "height": ...}`` in pixels."""
        raise CanvasUnavailable(f"{type(self).__name__} does not report its dimensions")

    def create_rectangle(self, command: DrawRectangle) -> Any:
        """Draw a filled rectangle."""
        raise NotImplementedError

    def create_text(self, command: DrawText) -> Any:
        """Draw a pre-wrapped text block."""
        raise NotImplementedError

    def draw(self, command: DrawCommand) -> Any:
        """Dispatch one command to the matching primitive."""
        if isinstance(command, DrawRectangle):
            return self.create_rectangle(command)
        return self.create_text(command)


class RecordingSurface(DrawingSurface):
    """In-memory surface that records every primitive it receives."""

    def __init__(self, width: Optional[float] = None, height: Optional[float] = None):
        """
        Initialize the recording surface.

        Args:
            width: Reported canvas width, or None to behave as an unavailable canvas
            height: Reported canvas height
        """
        self.width = width
        self.height = height
        self.commands: List[DrawCommand] = []

    def get_canvas_dimensions(self) -> Dict[str, float]:
        if self.width is None or self.height is None:
            raise CanvasUnavailable("Recording surface has no dimensions")
        return {"width": self.width, "height": self.height}

    def create_rectangle(self, command: DrawRectangle) -> None:
        self.commands.append(command)

    def create_text(self, command: DrawText) -> None:
        self.commands.append(command)

    @property
    def rectangles(self) -> List[DrawRectangle]:
        """Return the recorded rectangles in draw order."""
        return [c for c in self.commands if isinstance(c, DrawRectangle)]

    @property
    def texts(self) -> List[DrawText]:
        """Return the recorded text blocks in draw order."""
        return [c for c in self.commands if isinstance(c, DrawText)]

    def to_props(self) -> List[Dict[str, Any]]:
        """Return every recorded command as host primitive props."""
        return [{"primitive": c.kind, **c.to_props()} for c in self.commands]

    def clear(self) -> None:
        """Forget every recorded command."""
        self.commands.clear()


class PptxSurface(DrawingSurface):
    """Draws onto a single blank PowerPoint slide sized like the canvas."""

    def __init__(self, width: float = 1080, height: float = 1920):
        """
        Initialize the PowerPoint surface.

        Args:
            width: Canvas width in pixels
            height: Canvas height in pixels
        """
        self.width = width
        self.height = height
        self.prs = Presentation()
        self.prs.slide_width = self._emu(width)
        self.prs.slide_height = self._emu(height)
        # Layout 6 of the default template is "Blank".
        self.slide = self.prs.slides.add_slide(self.prs.slide_layouts[6])
        logger.debug(f"Created PowerPoint canvas {width}x{height}px")

    @staticmethod
    def _emu(pixels: float) -> Emu:
        return Emu(int(round(pixels * EMU_PER_PIXEL)))

    def get_canvas_dimensions(self) -> Dict[str, float]:
        return {"width": self.width, "height": self.height}

    def create_rectangle(self, command: DrawRectangle) -> Any:
        shape = self.slide.shapes.add_shape(
            MSO_SHAPE.RECTANGLE,
            self._emu(command.x),
            self._emu(command.y),
            self._emu(command.width),
            self._emu(command.height)
        )
        shape.fill.solid()
        shape.fill.fore_color.rgb = hex_to_rgb(command.color_hex)
        shape.line.fill.background()
        shape.shadow.inherit = False
        return shape

    def create_text(self, command: DrawText) -> Any:
        lines = command.lines
        line_height = command.line_height or command.font_size * 1.2
        box = self.slide.shapes.add_textbox(
            self._emu(command.x - command.width / 2),
            self._emu(command.y),
            self._emu(command.width),
            self._emu(line_height * len(lines))
        )
        text_frame = box.text_frame
        text_frame.word_wrap = True
        text_frame.auto_size = MSO_AUTO_SIZE.NONE
        text_frame.margin_left = text_frame.margin_right = 0
        text_frame.margin_top = text_frame.margin_bottom = 0

        for i, line in enumerate(lines):
            para = text_frame.paragraphs[0] if i == 0 else text_frame.add_paragraph()
            para.alignment = _PPTX_ALIGNMENT.get(command.text_align, PP_ALIGN.CENTER)
            if command.line_height:
                para.line_spacing = Pt(command.line_height * POINTS_PER_PIXEL)
            run = para.add_run()
            run.text = line
            font = run.font
            font.size = Pt(command.font_size * POINTS_PER_PIXEL)
            font.name = command.font_family
            font.bold = command.font_weight == "bold"
            font.underline = command.text_decoration == "underline"
            font.color.rgb = hex_to_rgb(command.color_hex)
        return box

    def save(self, output_path: Union[str, Path]) -> Path:
        """Write the presentation and return its path."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.prs.save(str(output_path))
        logger.info(f"Saved PowerPoint canvas to {output_path}")
        return output_path


class PreviewSurface(DrawingSurface):
    """Draws onto a matplotlib figure for PNG previews."""

    def __init__(self, width: float = 1080, height: float = 1920, dpi: int = 100):
        """
        Initialize the preview surface.

        Args:
            width: Canvas width in pixels
            height: Canvas height in pixels
            dpi: Figure resolution; the saved image is ``width`` x ``height`` pixels
        """
        self.width = width
        self.height = height
        self.dpi = dpi
        self.fig = plt.figure(figsize=(width / dpi, height / dpi), dpi=dpi)
        self.ax = self.fig.add_axes([0, 0, 1, 1])
        self.ax.set_xlim(0, width)
        self.ax.set_ylim(height, 0)
        self.ax.axis("off")

    def get_canvas_dimensions(self) -> Dict[str, float]:
        return {"width": self.width, "height": self.height}

    def create_rectangle(self, command: DrawRectangle) -> Any:
        patch = patches.Rectangle(
            (command.x, command.y),
            command.width,
            command.height,
            facecolor=command.color_hex,
            edgecolor="none"
        )
        self.ax.add_patch(patch)
        return patch

    def create_text(self, command: DrawText) -> Any:
        if command.text_align == "left":
            x = command.x - command.width / 2
        elif command.text_align == "right":
            x = command.x + command.width / 2
        else:
            x = command.x

        linespacing = command.line_height / command.font_size if command.line_height else 1.2
        return self.ax.text(
            x,
            command.y,
            command.text,
            fontsize=command.font_size * 72 / self.dpi,
            fontweight=command.font_weight or "normal",
            fontfamily=[command.font_family, "sans-serif"],
            color=command.color_hex,
            ha=command.text_align,
            va="top",
            multialignment=command.text_align,
            linespacing=linespacing
        )

    def save(self, output_path: Union[str, Path]) -> Path:
        """Render the figure to an image file and return its path."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.fig.savefig(output_path, dpi=self.dpi, facecolor="white", edgecolor="none")
        logger.info(f"Saved preview image to {output_path}")
        return output_path

    def close(self) -> None:
        """Release the matplotlib figure."""
        plt.close(self.fig)
