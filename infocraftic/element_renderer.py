"""Element renderer issuing layout commands to a drawing surface in order."""

import inspect
import logging
from typing import Any, Optional

from .canvas import DrawingSurface
from .exceptions import DrawFailed
from .layout_engine import LayoutEngine
from .models import CanvasMetrics, DrawCommand, ElementLayout, ElementType, RenderResult

logger = logging.getLogger(__name__)


class ElementRenderer:
    """Adds infographic elements to a drawing surface."""

    def __init__(self, surface: DrawingSurface, layout_engine: Optional[LayoutEngine] = None):
        """
        Initialize the element renderer.

        Args:
            surface: Drawing surface receiving the primitives
            layout_engine: Layout engine, a default one is created when omitted
        """
        self.surface = surface
        self.layout_engine = layout_engine or LayoutEngine()

    def resolve_metrics(self) -> CanvasMetrics:
        """Probe the surface for its current size."""
        probe = getattr(self.surface, "get_canvas_dimensions", None)
        return self.layout_engine.resolver.resolve(probe)

    def plan_element(self, element_type: ElementType, content: Any) -> ElementLayout:
        """Compute the commands for one element against the surface's current size."""
        metrics = self.resolve_metrics()
        return self.layout_engine.layout(element_type, content, metrics)

    def add_element(self, element_type: ElementType, content: Any) -> RenderResult:
        """
        Lay out one element and draw it.

        Commands are issued strictly in order; the first failing primitive
        aborts the remaining commands of this element only.

        Args:
            element_type: Element to add
            content: Value of the matching StructuredContent field

        Returns:
            RenderResult describing what was drawn

        Raises:
            DrawFailed: If a drawing primitive raises
        """
        layout = self.plan_element(element_type, content)
        result = RenderResult(element_type=layout.element_type, skipped_nodes=layout.skipped_nodes)

        if layout.is_empty:
            logger.warning(f"Nothing to draw for {layout.element_type.value}")
            return result

        for index, command in enumerate(layout.commands):
            try:
                self.surface.draw(command)
            except Exception as e:
                raise self._draw_failed(layout, index, command, e) from e
            result.commands_issued += 1

        logger.info(f"Added {layout.element_type.value} to canvas with {result.commands_issued} commands")
        return result

    async def add_element_async(self, element_type: ElementType, content: Any) -> RenderResult:
        """Asynchronous version of ``add_element`` for surfaces with coroutine primitives."""
        layout = self.plan_element(element_type, content)
        result = RenderResult(element_type=layout.element_type, skipped_nodes=layout.skipped_nodes)

        if layout.is_empty:
            logger.warning(f"Nothing to draw for {layout.element_type.value}")
            return result

        for index, command in enumerate(layout.commands):
            try:
                outcome = self.surface.draw(command)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                raise self._draw_failed(layout, index, command, e) from e
            result.commands_issued += 1

        logger.info(f"Added {layout.element_type.value} to canvas with {result.commands_issued} commands (async)")
        return result

    @staticmethod
    def _draw_failed(layout: ElementLayout, index: int, command: DrawCommand, error: Exception) -> DrawFailed:
        logger.error(f"Error adding element to canvas: {error}")
        return DrawFailed(
            f"Error adding element to canvas: {error}",
            element_type=layout.element_type.value,
            command_index=index,
            command_kind=command.kind
        )
