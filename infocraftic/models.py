"""Domain models for the Infocraftic infographic generator."""

from __future__ import annotations

import os
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator


class ElementType(str, Enum):
    """Infographic elements that can be added to the canvas."""

    TITLE = "title"
    OVERVIEW = "overview"
    STATISTICS = "statistics"
    FLOWCHART = "flowchart"


class CanvasMetrics(BaseModel):
    """Resolved canvas size plus a uniform scale factor relative to the reference ratio."""

    width: float = Field(..., gt=0, description="Canvas width in pixels")
    height: float = Field(..., gt=0, description="Canvas height in pixels")
    scale_factor: float = Field(..., gt=0, description="Uniform scale relative to the reference canvas")

    @property
    def min_dimension(self) -> float:
        """Return the smaller of width and height."""
        return min(self.width, self.height)

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "width": 1080,
                "height": 1920,
                "scale_factor": 1.0
            }
        }


class Region(BaseModel):
    """Axis-aligned rectangle on the canvas where one content block is drawn."""

    x: float = Field(..., description="Left edge in canvas pixels")
    y: float = Field(..., description="Top edge in canvas pixels")
    width: float = Field(..., description="Width in canvas pixels")
    height: float = Field(..., description="Height in canvas pixels")

    @property
    def right(self) -> float:
        """Return the right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Return the bottom edge."""
        return self.y + self.height

    @property
    def center_x(self) -> float:
        """Return the horizontal centre."""
        return self.x + self.width / 2

    def contains(self, other: "Region", tolerance: float = 1e-6) -> bool:
        """Check whether ``other`` lies fully inside this region."""
        return (
            other.x >= self.x - tolerance
            and other.y >= self.y - tolerance
            and other.right <= self.right + tolerance
            and other.bottom <= self.bottom + tolerance
        )

    def overlaps(self, other: "Region") -> bool:
        """Check whether the interiors of the two regions intersect."""
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )


class RegionPlan(BaseModel):
    """The named regions derived from one set of canvas metrics."""

    margin: float = Field(..., description="Margin used to derive every region")
    title: Region
    overview: Region
    statistics: Region
    flowchart: Region
    nodes: List[Region] = Field(
        default_factory=list, description="Vertically stacked flowchart node regions"
    )

    @property
    def sections(self) -> Dict[str, Region]:
        """Return the four top-level regions keyed by element name."""
        return {
            "title": self.title,
            "overview": self.overview,
            "statistics": self.statistics,
            "flowchart": self.flowchart,
        }

    @property
    def node_height(self) -> float:
        """Return the height shared by every node region."""
        return self.nodes[0].height if self.nodes else 0.0


class FontPlan(BaseModel):
    """Font sizes derived from canvas metrics for one render call."""

    base: float = Field(..., description="Base font size every other size derives from")
    title: float
    overview: float
    statistics: float
    node_title: float
    node_description: float
    section_header: float


class FlowchartNode(BaseModel):
    """One step of the generated flowchart."""

    title: Optional[str] = Field(None, description="Short step name")
    description: Optional[str] = Field(None, description="One-line explanation of the step")

    @property
    def is_drawable(self) -> bool:
        """A node can only be drawn when it has a non-blank title."""
        return bool(self.title and self.title.strip())


class StructuredContent(BaseModel):
    """Parsed result of text analysis."""

    title: str = Field(..., description="Infographic title (fewer than 6 words)")
    overview: str = Field(..., description="Three sentence overview")
    statistics: Optional[List[str]] = Field(
        None, description="Important statistics, three expected"
    )
    flowchart: Optional[List[FlowchartNode]] = Field(
        None, description="Flowchart steps, five expected"
    )

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("title must not be blank")
        return value.strip()

    @field_validator("overview", mode="before")
    @classmethod
    def _join_overview(cls, value: Any) -> Any:
        if isinstance(value, list):
            value = "\n\n".join(str(part) for part in value)
        elif isinstance(value, dict):
            value = "\n\n".join(str(part) for part in value.values())
        if isinstance(value, str) and not value.strip():
            raise ValueError("overview must not be blank")
        return value

    @field_validator("statistics", mode="before")
    @classmethod
    def _coerce_statistics(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, dict):
            value = list(value.values())
        elif not isinstance(value, list):
            value = [value]
        return [str(stat) for stat in value if stat is not None]

    @field_validator("flowchart", mode="before")
    @classmethod
    def _coerce_flowchart(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, list):
            raise ValueError("flowchart must be a list of nodes")
        nodes = []
        for node in value:
            if isinstance(node, str):
                nodes.append({"title": node})
            elif isinstance(node, dict):
                nodes.append({
                    key: str(node[key])
                    for key in ("title", "description")
                    if node.get(key) is not None
                })
            else:
                nodes.append({})
        return nodes

    @property
    def has_statistics(self) -> bool:
        """Check whether any statistic is available to draw."""
        return bool(self.statistics)

    @property
    def has_flowchart(self) -> bool:
        """Check whether any flowchart node is available to draw."""
        return bool(self.flowchart)

    def get_element_content(self, element_type: ElementType) -> Any:
        """Return the value backing one infographic element."""
        return {
            ElementType.TITLE: self.title,
            ElementType.OVERVIEW: self.overview,
            ElementType.STATISTICS: self.statistics,
            ElementType.FLOWCHART: self.flowchart,
        }[ElementType(element_type)]

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "title": "How Vaccines Train Immunity",
                "overview": "Vaccines expose the immune system to a harmless antigen. "
                            "The body learns to recognise it. Later infections are cleared faster.",
                "statistics": [
                    "Measles vaccination prevented 56 million deaths between 2000 and 2021",
                    "Two doses of MMR are 97% effective against measles",
                    "Global coverage of the first measles dose is 83%"
                ],
                "flowchart": [
                    {"title": "Injection", "description": "Antigen enters the body"},
                    {"title": "Detection", "description": "Immune cells spot the antigen"},
                    {"title": "Response", "description": "Antibodies are produced"},
                    {"title": "Memory", "description": "Memory cells are stored"},
                    {"title": "Protection", "description": "Future infections are stopped early"}
                ]
            }
        }


class FormattedStatistics(BaseModel):
    """Bulleted, wrapped statistics ready to be drawn as one text block."""

    text: str = Field(..., description="Wrapped blocks joined by a blank line")
    count: int = Field(..., description="Number of statistics that were formatted")
    font_multiplier: float = Field(..., description="Multiplier applied to the statistics font")
    vertical_offset: float = Field(..., description="Start of the text as a fraction of region height")

    @property
    def lines(self) -> List[str]:
        """Return every display line, blank separators included."""
        return self.text.split("\n")


_PROP_NAMES = {
    "color_hex": "colorHex",
    "font_size": "fontSize",
    "font_weight": "fontWeight",
    "text_align": "textAlign",
    "line_height": "lineHeight",
    "text_decoration": "textDecoration",
    "font_family": "fontFamily",
}


class DrawRectangle(BaseModel):
    """Arguments of one ``createRectangle`` primitive call."""

    kind: Literal["rectangle"] = "rectangle"
    x: float
    y: float
    width: float
    height: float
    color_hex: str = Field(..., description="Fill colour, e.g. '#E3F2FD'")

    def to_props(self) -> Dict[str, Any]:
        """Return the camelCase props expected by the drawing host."""
        return {
            _PROP_NAMES.get(key, key): value
            for key, value in self.model_dump(exclude={"kind"}).items()
        }


class DrawText(BaseModel):
    """Arguments of one ``createText`` primitive call."""

    kind: Literal["text"] = "text"
    text: str
    x: float = Field(..., description="Horizontal anchor (centre of the text box)")
    y: float = Field(..., description="Top of the text block")
    font_size: float
    font_weight: Optional[str] = None
    text_align: str = "center"
    color_hex: str = "#000000"
    width: float
    line_height: Optional[float] = None
    text_decoration: Optional[str] = None
    font_family: str = "Open Sans"

    @property
    def lines(self) -> List[str]:
        """Return the pre-wrapped lines of this text block."""
        return self.text.split("\n")

    def to_props(self) -> Dict[str, Any]:
        """Return the camelCase props expected by the drawing host."""
        return {
            _PROP_NAMES.get(key, key): value
            for key, value in self.model_dump(exclude={"kind"}, exclude_none=True).items()
        }


DrawCommand = Union[DrawRectangle, DrawText]


class ElementLayout(BaseModel):
    """Ordered draw commands computed for one infographic element."""

    element_type: ElementType
    metrics: CanvasMetrics
    commands: List[DrawCommand] = Field(
        default_factory=list, description="Commands in the order they must be issued"
    )
    skipped_nodes: List[int] = Field(
        default_factory=list, description="Flowchart node indices that were not drawn"
    )

    @property
    def is_empty(self) -> bool:
        """Check whether there is nothing to draw."""
        return not self.commands


class RenderResult(BaseModel):
    """Outcome of adding one element to a drawing surface."""

    element_type: ElementType
    commands_issued: int = Field(default=0, description="Number of primitives that succeeded")
    skipped_nodes: List[int] = Field(default_factory=list)


class LayoutConfig(BaseModel):
    """Design constants of the layout and typography engine."""

    reference_width: float = Field(default=1080, gt=0, description="Reference canvas width")
    reference_height: float = Field(default=1920, gt=0, description="Reference canvas height")
    margin_fraction: float = Field(default=0.05, description="Margin as a fraction of the smaller dimension")
    max_margin_fraction: float = Field(
        default=0.08, description="Upper bound of the scaled margin, as a fraction of the smaller dimension"
    )
    title_height_fraction: float = Field(default=0.10, description="Title height as a fraction of canvas height")
    node_count: int = Field(default=5, ge=1, description="Number of flowchart node regions")
    node_spacing_fraction: float = Field(default=0.1, description="Gap between nodes as a fraction of node height")
    base_font_fraction: float = Field(default=0.02, description="Base font size as a fraction of the smaller dimension")
    title_font_multiplier: float = 2.1
    overview_font_multiplier: float = 1.1
    statistics_font_multiplier: float = 1.4
    node_title_font_multiplier: float = 0.9
    node_description_font_multiplier: float = 0.74
    section_header_font_multiplier: float = 2.0
    char_width_factor: float = Field(
        default=0.6, gt=0, description="Average glyph advance as a fraction of font size"
    )
    statistics_adjustments: Dict[int, Tuple[float, float]] = Field(
        default_factory=lambda: {3: (0.9, 0.3)},
        description="Statistics count -> (font multiplier, vertical offset)"
    )
    default_statistics_adjustment: Tuple[float, float] = (1.0, 0.4)

    @property
    def reference_ratio(self) -> float:
        """Return the reference width/height ratio."""
        return self.reference_width / self.reference_height

    def statistics_adjustment(self, count: int) -> Tuple[float, float]:
        """Return the (font multiplier, vertical offset) for a statistics count."""
        return self.statistics_adjustments.get(count, self.default_statistics_adjustment)

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "margin_fraction": 0.05,
                "title_height_fraction": 0.10,
                "char_width_factor": 0.6
            }
        }


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes and simplifies text, and breaks it down into "
    "different elements we can incorporate to add to an infographic. With any text entered, pull "
    "from it a <6 word title, a 3 sentence overview, a flowchart with EXACTLY 5 nodes (each node "
    "having a clear and concise step/concept), and EXACTLY 3 important statistics. The title and "
    "overview should always be gathered, but use reasoning depending on the text to determine if a "
    "flowchart and statistics are viable visualization mediums. Return ONLY a JSON with objects for "
    "the title, overview, and if determined possible, the statistic(s) and the array of nodes for "
    "the flowchart. Each flowchart node MUST have a 'title' and 'description' property. The JSON "
    "structure should be: { title: string, overview: string, statistics?: string[], "
    "flowchart?: [{ title: string, description: string }] }. Return this JSON with NO explanation."
)


class ExtractorConfig(BaseModel):
    """Configuration of the completion endpoint used for content extraction."""

    api_key: Optional[str] = Field(None, description="Bearer credential for the endpoint")
    base_url: str = Field(
        default="https://api.deepseek.com/v1", description="OpenAI-compatible endpoint base URL"
    )
    model: str = Field(default="deepseek-chat", description="Chat model name")
    temperature: Optional[float] = Field(None, description="Sampling temperature, endpoint default if unset")
    timeout: float = Field(default=60.0, description="Request timeout in seconds")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="Fixed system instruction")

    @classmethod
    def from_env(cls, **overrides: Any) -> "ExtractorConfig":
        """Build a config from ``DEEPSEEK_API_KEY`` and ``INFOCRAFTIC_*`` variables."""
        values: Dict[str, Any] = {"api_key": os.getenv("DEEPSEEK_API_KEY")}
        if os.getenv("INFOCRAFTIC_BASE_URL"):
            values["base_url"] = os.getenv("INFOCRAFTIC_BASE_URL")
        if os.getenv("INFOCRAFTIC_MODEL"):
            values["model"] = os.getenv("INFOCRAFTIC_MODEL")
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
