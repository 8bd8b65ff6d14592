"""Diagnostics hooks for the layout engine."""

import logging

logger = logging.getLogger(__name__)


class LayoutObserver:
    """Receives layout diagnostics. The base class ignores every event."""

    def node_skipped(self, index: int, reason: str) -> None:
        """A flowchart node was not drawn."""

    def nodes_truncated(self, received: int, capacity: int) -> None:
        """More flowchart nodes were supplied than there are node regions."""

    def statistics_empty(self) -> None:
        """No statistic survived blank-filtering, so nothing is drawn."""

    def font_reduced(self, element: str, original_size: float, adjusted_size: float) -> None:
        """An adaptive font size was smaller than the preferred size."""

    def line_overflow(self, element: str, line: str, max_chars: int) -> None:
        """A single word longer than the character budget was placed on its own line."""


class LoggingLayoutObserver(LayoutObserver):
    """Reports layout diagnostics through ``logging``."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def node_skipped(self, index: int, reason: str) -> None:
        self.log.warning(f"Skipping flowchart node {index}: {reason}")

    def nodes_truncated(self, received: int, capacity: int) -> None:
        self.log.warning(f"Received {received} flowchart nodes, only the first {capacity} are drawn")

    def statistics_empty(self) -> None:
        self.log.warning("No statistics content to display")

    def font_reduced(self, element: str, original_size: float, adjusted_size: float) -> None:
        self.log.info(f"Reduced {element} font size from {original_size:.1f} to {adjusted_size:.1f}")

    def line_overflow(self, element: str, line: str, max_chars: int) -> None:
        self.log.debug(f"{element} line of {len(line)} characters exceeds budget of {max_chars}")
