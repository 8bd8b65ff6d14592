"""Adaptive layout and typography engine for infographic elements."""

import logging
import math
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import yaml

from .models import (
    CanvasMetrics,
    DrawCommand,
    DrawRectangle,
    DrawText,
    ElementLayout,
    ElementType,
    FlowchartNode,
    FontPlan,
    FormattedStatistics,
    LayoutConfig,
    Region,
    RegionPlan,
)
from .observer import LayoutObserver, LoggingLayoutObserver
from .text_wrapper import adaptive_font_size, max_chars_per_line, wrap

logger = logging.getLogger(__name__)

STYLES_PATH = Path(__file__).parent / "config" / "styles.yaml"

DEFAULT_STYLES = {
    "title_background": "#E3F2FD",
    "overview_background": "#F1F8E9",
    "statistics_background": "#FFF3E0",
    "flowchart_background": "#F3E5F5",
    "node_background": "#FFFFFF",
    "text_color": "#000000",
    "rule_color": "#000000",
    "heading_font": "Montserrat",
    "body_font": "Open Sans",
}

# Header rule geometry in absolute pixels.
RULE_THICKNESS = 2
RULE_GAP = 5


def _load_styles_static(path: Path) -> Dict[str, str]:
    styles = dict(DEFAULT_STYLES)
    if not path.exists():
        logger.warning(f"Styles file not found at {path}. Using built-in styles.")
        return styles
    try:
        with open(path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading styles from {path}: {e}. Using built-in styles.")
        return styles
    if not isinstance(loaded, dict):
        logger.error(f"Styles file at {path} is not a valid dictionary. Using built-in styles.")
        return styles
    styles.update({key: str(value) for key, value in loaded.items() if key in DEFAULT_STYLES})
    logger.debug(f"Loaded styles from {path}")
    return styles


def load_layout_config(path: Optional[Path] = None, **overrides: Any) -> LayoutConfig:
    """
    Build a LayoutConfig from an optional YAML file plus keyword overrides.

    Args:
        path: YAML file whose top-level keys are LayoutConfig fields
        **overrides: Field values that take precedence over the file

    Returns:
        Validated LayoutConfig

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist
        ValueError: If the file is not a YAML mapping
    """
    values: Dict[str, Any] = {}
    if path is not None:
        if not path.exists():
            raise FileNotFoundError(f"Layout config not found: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Layout config {path} must be a mapping, got {type(loaded).__name__}")
        values.update(loaded)
        logger.info(f"Loaded layout overrides from {path}: {sorted(loaded)}")
    values.update(overrides)
    return LayoutConfig(**values)


def _read_dimension(dimensions: Any, key: str) -> Optional[float]:
    if isinstance(dimensions, Mapping):
        value = dimensions.get(key)
    else:
        value = getattr(dimensions, key, None)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return float(value)


class CanvasMetricsResolver:
    """Turns a canvas probe result into CanvasMetrics."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def default_metrics(self) -> CanvasMetrics:
        """Return the metrics of the reference canvas."""
        return CanvasMetrics(
            width=self.config.reference_width,
            height=self.config.reference_height,
            scale_factor=1.0
        )

    def from_dimensions(self, width: float, height: float) -> CanvasMetrics:
        """
        Compute metrics for known canvas dimensions.

        Wider-than-reference canvases scale by height, all others by width.
        """
        if width / height > self.config.reference_ratio:
            scale_factor = height / self.config.reference_height
        else:
            scale_factor = width / self.config.reference_width
        return CanvasMetrics(width=width, height=height, scale_factor=scale_factor)

    def resolve(self, probe: Optional[Callable[[], Any]]) -> CanvasMetrics:
        """
        Ask the probe for the canvas size, degrading to the reference canvas.

        Args:
            probe: Zero-argument callable returning ``{width, height}``

        Returns:
            CanvasMetrics, never raises
        """
        if probe is None:
            logger.debug("No canvas probe available, using default dimensions")
            return self.default_metrics()

        try:
            dimensions = probe()
        except Exception as e:
            logger.warning(f"Could not get canvas dimensions: {e}")
            return self.default_metrics()

        width = _read_dimension(dimensions, "width")
        height = _read_dimension(dimensions, "height")
        if width is None or height is None:
            logger.warning(f"Canvas probe returned unusable dimensions: {dimensions!r}")
            return self.default_metrics()

        metrics = self.from_dimensions(width, height)
        logger.debug(f"Resolved canvas {width:g}x{height:g}, scale factor {metrics.scale_factor:.3f}")
        return metrics


class RegionPlanner:
    """Derives the title / overview / statistics / flowchart regions."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def margin(self, metrics: CanvasMetrics) -> float:
        """Return the scaled margin, capped so every region keeps a positive size."""
        raw = metrics.min_dimension * self.config.margin_fraction * metrics.scale_factor
        return min(raw, metrics.min_dimension * self.config.max_margin_fraction)

    def plan(self, metrics: CanvasMetrics) -> RegionPlan:
        """
        Compute every region for the given canvas.

        Args:
            metrics: Canvas metrics

        Returns:
            RegionPlan with non-overlapping regions inside the canvas
        """
        width, height = metrics.width, metrics.height
        margin = self.margin(metrics)
        half_width = width / 2
        half_height = height / 2

        title = Region(
            x=margin,
            y=margin,
            width=width - margin * 2,
            height=height * self.config.title_height_fraction
        )
        overview = Region(
            x=margin,
            y=title.bottom + margin,
            width=half_width - margin * 2,
            height=half_height - margin * 2
        )
        statistics = Region(
            x=margin,
            y=overview.bottom + margin,
            width=half_width - margin * 2,
            height=height - (overview.bottom + margin * 2)
        )
        flowchart = Region(
            x=half_width + margin,
            y=title.bottom + margin,
            width=half_width - margin * 2,
            height=height - (title.height + margin * 3)
        )

        return RegionPlan(
            margin=margin,
            title=title,
            overview=overview,
            statistics=statistics,
            flowchart=flowchart,
            nodes=self._plan_nodes(flowchart, margin)
        )

    def _plan_nodes(self, flowchart: Region, margin: float) -> List[Region]:
        count = self.config.node_count
        spacing_fraction = self.config.node_spacing_fraction
        node_height = (flowchart.height - margin * 6) / count

        # The stack starts 3 margins down (header) and must end a margin above the bottom.
        stack_factor = count + (count - 1) * spacing_fraction
        fitted_height = (flowchart.height - margin * 4) / stack_factor
        if node_height > fitted_height:
            logger.debug(f"Node height {node_height:.1f} reduced to {fitted_height:.1f} to fit flowchart")
            node_height = fitted_height

        spacing = node_height * spacing_fraction
        return [
            Region(
                x=flowchart.x + margin,
                y=flowchart.y + margin * 3 + i * (node_height + spacing),
                width=flowchart.width - margin * 2,
                height=node_height
            )
            for i in range(count)
        ]


class FontPlanner:
    """Derives proportional font sizes from canvas metrics."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def plan(self, metrics: CanvasMetrics) -> FontPlan:
        """Compute the font sizes for one render call."""
        config = self.config
        base = metrics.min_dimension * config.base_font_fraction * metrics.scale_factor
        return FontPlan(
            base=base,
            title=base * config.title_font_multiplier,
            overview=base * config.overview_font_multiplier,
            statistics=base * config.statistics_font_multiplier,
            node_title=base * config.node_title_font_multiplier,
            node_description=base * config.node_description_font_multiplier,
            section_header=base * config.section_header_font_multiplier
        )


class StatisticsFormatter:
    """Formats statistics as bulleted, independently wrapped blocks."""

    bullet = "•"

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def format(self, statistics: Sequence[str], max_chars: int) -> Optional[FormattedStatistics]:
        """
        Bullet and wrap each statistic, then join the blocks with a blank line.

        Args:
            statistics: Statistic sentences
            max_chars: Character budget per line

        Returns:
            FormattedStatistics, or None when no statistic has content
        """
        items = [str(stat).strip() for stat in statistics if stat is not None and str(stat).strip()]
        if not items:
            return None

        blocks = [
            "\n".join(wrap(f"{self.bullet} {stat}", max_chars))
            for stat in items
        ]
        font_multiplier, vertical_offset = self.config.statistics_adjustment(len(items))

        return FormattedStatistics(
            text="\n\n".join(blocks),
            count=len(items),
            font_multiplier=font_multiplier,
            vertical_offset=vertical_offset
        )


class LayoutEngine:
    """Computes the ordered draw commands for each infographic element."""

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        observer: Optional[LayoutObserver] = None,
        styles: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the layout engine.

        Args:
            config: Design constants, defaults reproduce the reference layout
            observer: Receiver of layout diagnostics, logs by default
            styles: Colour and font overrides, defaults come from styles.yaml
        """
        self.config = config or LayoutConfig()
        self.observer = observer or LoggingLayoutObserver()
        self.styles = dict(_load_styles_static(STYLES_PATH))
        if styles:
            self.styles.update(styles)

        self.resolver = CanvasMetricsResolver(self.config)
        self.region_planner = RegionPlanner(self.config)
        self.font_planner = FontPlanner(self.config)
        self.statistics_formatter = StatisticsFormatter(self.config)

    def layout(self, element_type: ElementType, content: Any, metrics: CanvasMetrics) -> ElementLayout:
        """
        Compute the draw commands for one element.

        Regions and fonts are recomputed from ``metrics`` on every call.

        Args:
            element_type: Element to lay out
            content: Value of the matching StructuredContent field
            metrics: Canvas metrics for this render

        Returns:
            ElementLayout with commands in issue order
        """
        element_type = ElementType(element_type)
        regions = self.region_planner.plan(metrics)
        fonts = self.font_planner.plan(metrics)

        layout = ElementLayout(element_type=element_type, metrics=metrics)
        if element_type == ElementType.TITLE:
            layout.commands = self._layout_title(content, regions, fonts)
        elif element_type == ElementType.OVERVIEW:
            layout.commands = self._layout_overview(content, regions, fonts)
        elif element_type == ElementType.STATISTICS:
            layout.commands = self._layout_statistics(content, regions, fonts)
        else:
            layout.commands, layout.skipped_nodes = self._layout_flowchart(content, regions, fonts)

        logger.debug(f"Laid out {element_type.value} with {len(layout.commands)} commands")
        return layout

    def _wrap(self, element: str, text: str, usable_width: float, font_size: float) -> List[str]:
        budget = max_chars_per_line(usable_width, font_size, self.config.char_width_factor)
        lines = wrap(text, budget)
        for line in lines:
            if len(line) > budget:
                self.observer.line_overflow(element, line, budget)
        return lines

    def _background(self, region: Region, color_key: str) -> DrawRectangle:
        return DrawRectangle(
            x=region.x,
            y=region.y,
            width=region.width,
            height=region.height,
            color_hex=self.styles[color_key]
        )

    def _section_header(
        self,
        label: str,
        region: Region,
        margin: float,
        fonts: FontPlan,
        rule_margin_factor: float
    ) -> List[DrawCommand]:
        header = DrawText(
            text=label,
            x=region.center_x,
            y=region.y + margin * 1.4,
            font_size=fonts.section_header,
            font_weight="bold",
            text_decoration="underline",
            color_hex=self.styles["text_color"],
            width=region.width,
            text_align="center",
            font_family=self.styles["heading_font"]
        )
        rule = DrawRectangle(
            x=region.x + margin,
            y=region.y + margin * rule_margin_factor + fonts.section_header + RULE_GAP,
            width=region.width - margin * 2,
            height=RULE_THICKNESS,
            color_hex=self.styles["rule_color"]
        )
        return [header, rule]

    def _layout_title(self, content: Any, regions: RegionPlan, fonts: FontPlan) -> List[DrawCommand]:
        text = str(content).strip()
        area = regions.title
        text_width = area.width - regions.margin * 4

        font_size = adaptive_font_size(
            text,
            text_width,
            fonts.title,
            fonts.section_header,
            self.config.char_width_factor
        )
        if font_size < fonts.title:
            self.observer.font_reduced("title", fonts.title, font_size)

        return [
            self._background(area, "title_background"),
            DrawText(
                text=text,
                x=area.center_x,
                y=area.y + area.height / 1.6,
                font_size=font_size,
                font_weight="bold",
                text_align="center",
                color_hex=self.styles["text_color"],
                width=text_width,
                text_decoration="underline",
                font_family=self.styles["heading_font"]
            ),
        ]

    def _layout_overview(self, content: Any, regions: RegionPlan, fonts: FontPlan) -> List[DrawCommand]:
        if isinstance(content, (list, tuple)):
            text = "\n\n".join(str(part) for part in content)
        elif isinstance(content, Mapping):
            text = "\n\n".join(str(part) for part in content.values())
        else:
            text = str(content)

        area = regions.overview
        lines = self._wrap("overview", text, area.width * 0.8, fonts.overview)

        commands: List[DrawCommand] = [self._background(area, "overview_background")]
        commands.extend(self._section_header("Overview", area, regions.margin, fonts, 1.0))
        commands.append(
            DrawText(
                text="\n".join(lines),
                x=area.center_x,
                y=area.y + area.height * 0.22,
                font_size=fonts.overview,
                color_hex=self.styles["text_color"],
                width=area.width,
                line_height=fonts.overview * 2.8,
                text_align="center",
                font_family=self.styles["body_font"]
            )
        )
        return commands

    def _layout_statistics(self, content: Any, regions: RegionPlan, fonts: FontPlan) -> List[DrawCommand]:
        if content is None:
            statistics: List[Any] = []
        elif isinstance(content, Mapping):
            statistics = list(content.values())
        elif isinstance(content, (list, tuple)):
            statistics = list(content)
        else:
            statistics = [content]

        area = regions.statistics
        budget = max_chars_per_line(area.width * 0.92, fonts.statistics, self.config.char_width_factor)
        formatted = self.statistics_formatter.format(statistics, budget)
        if formatted is None:
            self.observer.statistics_empty()
            return []

        for line in formatted.lines:
            if len(line) > budget:
                self.observer.line_overflow("statistics", line, budget)

        font_size = fonts.statistics * formatted.font_multiplier
        commands: List[DrawCommand] = [self._background(area, "statistics_background")]
        commands.extend(self._section_header("Statistics", area, regions.margin, fonts, 1.2))
        commands.append(
            DrawText(
                text=formatted.text,
                x=area.center_x,
                y=area.y + (area.height * formatted.vertical_offset) * 0.91,
                font_size=font_size,
                color_hex=self.styles["text_color"],
                width=area.width,
                line_height=font_size * 3.0,
                text_align="left",
                font_family=self.styles["body_font"]
            )
        )
        return commands

    def _layout_flowchart(self, content: Any, regions: RegionPlan, fonts: FontPlan):
        nodes = [self._coerce_node(node) for node in (content or [])]
        capacity = len(regions.nodes)
        if len(nodes) > capacity:
            self.observer.nodes_truncated(len(nodes), capacity)

        area = regions.flowchart
        margin = regions.margin
        commands: List[DrawCommand] = [self._background(area, "flowchart_background")]
        commands.extend(self._section_header("Flowchart", area, margin, fonts, 1.2))

        skipped: List[int] = []
        for index, node_region in enumerate(regions.nodes):
            node = nodes[index] if index < len(nodes) else None
            if node is None or not node.is_drawable:
                reason = "missing node" if node is None else "missing title"
                self.observer.node_skipped(index, reason)
                skipped.append(index)
                continue
            commands.extend(self._layout_node(node, node_region, area, margin, fonts))

        return commands, skipped

    def _layout_node(
        self,
        node: FlowchartNode,
        node_region: Region,
        area: Region,
        margin: float,
        fonts: FontPlan
    ) -> List[DrawCommand]:
        title_width = area.width - margin * 4
        description_width = area.width - margin * 3
        title_lines = self._wrap("node title", node.title, title_width, fonts.node_title)

        commands: List[DrawCommand] = [
            self._background(node_region, "node_background"),
            DrawText(
                text="\n".join(title_lines),
                x=node_region.center_x,
                y=node_region.y + node_region.height * 0.2,
                font_size=fonts.node_title,
                font_weight="bold",
                color_hex=self.styles["text_color"],
                width=title_width,
                line_height=fonts.node_title * 1.2,
                text_align="center",
                font_family=self.styles["heading_font"]
            ),
        ]

        if node.description and node.description.strip():
            description_lines = self._wrap(
                "node description", node.description, description_width, fonts.node_description
            )
            commands.append(
                DrawText(
                    text="\n".join(description_lines),
                    x=node_region.center_x,
                    y=node_region.y + node_region.height * 0.5,
                    font_size=fonts.node_description,
                    color_hex=self.styles["text_color"],
                    width=description_width,
                    line_height=fonts.node_description * 1.5,
                    text_align="center",
                    font_family=self.styles["body_font"]
                )
            )
        return commands

    @staticmethod
    def _coerce_node(node: Any) -> Optional[FlowchartNode]:
        if node is None:
            return None
        if isinstance(node, FlowchartNode):
            return node
        if isinstance(node, Mapping):
            title = node.get("title")
            description = node.get("description")
            return FlowchartNode(
                title=str(title) if title is not None else None,
                description=str(description) if description is not None else None
            )
        return FlowchartNode(title=str(node))
