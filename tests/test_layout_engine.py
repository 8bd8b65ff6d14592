"""Tests for the layout engine."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from infocraftic.exceptions import CanvasUnavailable
from infocraftic.layout_engine import (
    CanvasMetricsResolver,
    FontPlanner,
    LayoutEngine,
    RegionPlanner,
    StatisticsFormatter,
    load_layout_config,
)
from infocraftic.models import (
    CanvasMetrics,
    DrawRectangle,
    DrawText,
    ElementType,
    FlowchartNode,
    LayoutConfig,
)
from infocraftic.observer import LayoutObserver

REFERENCE = CanvasMetrics(width=1080, height=1920, scale_factor=1.0)

CANVAS_SIZES = [
    (1080, 1920),
    (540, 960),
    (1920, 1080),
    (2160, 3840),
    (400, 400),
    (10800, 19200),
    (1000, 5000),
    (300, 2000),
]


def make_nodes(count=5):
    """Create flowchart nodes with titles and descriptions."""
    return [
        FlowchartNode(title=f"Step {i + 1}", description=f"What happens in step {i + 1}")
        for i in range(count)
    ]


class TestCanvasMetricsResolver:
    """Tests for CanvasMetricsResolver."""

    def setup_method(self):
        """Set up test fixtures."""
        self.resolver = CanvasMetricsResolver()

    def test_reference_canvas(self):
        """Test that the reference canvas has a scale factor of one."""
        metrics = self.resolver.resolve(lambda: {"width": 1080, "height": 1920})

        assert metrics.width == 1080
        assert metrics.height == 1920
        assert metrics.scale_factor == pytest.approx(1.0)

    def test_larger_canvas_same_ratio(self):
        """Test that a doubled canvas doubles the scale factor."""
        metrics = self.resolver.from_dimensions(2160, 3840)

        assert metrics.scale_factor == pytest.approx(2.0)

    def test_wide_canvas_scales_by_height(self):
        """Test that landscape canvases scale by height."""
        metrics = self.resolver.from_dimensions(1920, 1080)

        assert metrics.scale_factor == pytest.approx(0.5625)

    def test_tall_canvas_scales_by_width(self):
        """Test that taller-than-reference canvases scale by width."""
        metrics = self.resolver.from_dimensions(1080, 2400)

        assert metrics.scale_factor == pytest.approx(1.0)

    def test_probe_failure_uses_default(self):
        """Test that a failing probe degrades to the reference canvas."""
        probe = Mock(side_effect=CanvasUnavailable("no canvas"))

        metrics = self.resolver.resolve(probe)

        assert metrics == REFERENCE
        probe.assert_called_once()

    def test_missing_probe_uses_default(self):
        """Test that no probe at all gives the reference canvas."""
        assert self.resolver.resolve(None) == REFERENCE

    @pytest.mark.parametrize("dimensions", [
        None,
        {},
        {"width": 0, "height": 1920},
        {"width": 1080, "height": -5},
        {"width": "1080", "height": "1920"},
        {"width": True, "height": 1920},
        {"width": float("nan"), "height": 1920},
        {"width": 1080, "height": float("inf")},
        {"width": float("-inf"), "height": 1920},
    ])
    def test_unusable_dimensions_use_default(self, dimensions):
        """Test that malformed probe results degrade to the reference canvas."""
        assert self.resolver.resolve(lambda: dimensions) == REFERENCE

    def test_attribute_style_dimensions(self):
        """Test that objects exposing width/height attributes are accepted."""
        probe_result = Mock(width=540, height=960)

        metrics = self.resolver.resolve(lambda: probe_result)

        assert metrics.scale_factor == pytest.approx(0.5)


class TestRegionPlanner:
    """Tests for RegionPlanner."""

    def setup_method(self):
        """Set up test fixtures."""
        self.planner = RegionPlanner()
        self.resolver = CanvasMetricsResolver()

    def test_reference_regions(self):
        """Test the region geometry of the reference canvas."""
        plan = self.planner.plan(REFERENCE)

        assert plan.margin == pytest.approx(54)
        assert (plan.title.x, plan.title.y, plan.title.width, plan.title.height) == pytest.approx(
            (54, 54, 972, 192))
        assert (plan.overview.x, plan.overview.y, plan.overview.width, plan.overview.height) == pytest.approx(
            (54, 300, 432, 852))
        assert (plan.statistics.x, plan.statistics.y, plan.statistics.width,
                plan.statistics.height) == pytest.approx((54, 1206, 432, 660))
        assert (plan.flowchart.x, plan.flowchart.y, plan.flowchart.width,
                plan.flowchart.height) == pytest.approx((594, 300, 432, 1566))

    def test_reference_nodes(self):
        """Test the node stack of the reference canvas."""
        plan = self.planner.plan(REFERENCE)

        assert len(plan.nodes) == 5
        assert plan.node_height == pytest.approx(248.4)
        first = plan.nodes[0]
        assert (first.x, first.y, first.width) == pytest.approx((648, 462, 324))
        assert plan.nodes[1].y - first.bottom == pytest.approx(24.84)
        assert plan.nodes[2].y == pytest.approx(1008.48)

    def test_margin_is_capped(self):
        """Test that large scale factors cannot push regions off the canvas."""
        metrics = self.resolver.from_dimensions(2160, 3840)

        assert self.planner.margin(metrics) == pytest.approx(172.8)

    @pytest.mark.parametrize("width,height", CANVAS_SIZES)
    def test_regions_inside_canvas_and_disjoint(self, width, height):
        """Test containment and non-overlap for a range of canvas sizes."""
        metrics = self.resolver.from_dimensions(width, height)
        plan = self.planner.plan(metrics)
        canvas = plan.title.model_copy(update={"x": 0, "y": 0, "width": width, "height": height})

        sections = list(plan.sections.values())
        for region in sections:
            assert region.width > 0
            assert region.height > 0
            assert canvas.contains(region)

        for i, first in enumerate(sections):
            for second in sections[i + 1:]:
                assert not first.overlaps(second)

    @pytest.mark.parametrize("width,height", CANVAS_SIZES)
    def test_nodes_inside_flowchart(self, width, height):
        """Test that every node lies inside the flowchart and nodes never overlap."""
        metrics = self.resolver.from_dimensions(width, height)
        plan = self.planner.plan(metrics)

        for node in plan.nodes:
            assert node.height > 0
            assert plan.flowchart.contains(node)
        for first, second in zip(plan.nodes, plan.nodes[1:]):
            assert first.bottom <= second.y + 1e-6
            assert not first.overlaps(second)

    def test_plan_recomputed_per_call(self):
        """Test that a plan depends only on the metrics passed in."""
        small = self.planner.plan(self.resolver.from_dimensions(540, 960))
        large = self.planner.plan(REFERENCE)

        assert small.title.height == pytest.approx(large.title.height / 2)


class TestFontPlanner:
    """Tests for FontPlanner."""

    def test_reference_fonts(self):
        """Test the font sizes of the reference canvas."""
        fonts = FontPlanner().plan(REFERENCE)

        assert fonts.base == pytest.approx(21.6)
        assert fonts.title == pytest.approx(45.36)
        assert fonts.overview == pytest.approx(23.76)
        assert fonts.statistics == pytest.approx(30.24)
        assert fonts.node_title == pytest.approx(19.44)
        assert fonts.node_description == pytest.approx(15.984)
        assert fonts.section_header == pytest.approx(43.2)

    def test_fonts_scale_with_canvas(self):
        """Test that halving the canvas quarters the base font."""
        metrics = CanvasMetricsResolver().from_dimensions(540, 960)

        assert FontPlanner().plan(metrics).base == pytest.approx(5.4)


class TestStatisticsFormatter:
    """Tests for StatisticsFormatter."""

    def setup_method(self):
        """Set up test fixtures."""
        self.formatter = StatisticsFormatter()

    def test_three_statistics_adjustment(self):
        """Test the smaller font and higher start for exactly three statistics."""
        formatted = self.formatter.format(["A", "B", "C"], 21)

        assert formatted.count == 3
        assert formatted.font_multiplier == pytest.approx(0.9)
        assert formatted.vertical_offset == pytest.approx(0.3)
        assert formatted.text == "• A\n\n• B\n\n• C"

    @pytest.mark.parametrize("count", [1, 2, 4])
    def test_default_adjustment(self, count):
        """Test the default adjustment for other counts."""
        formatted = self.formatter.format([f"stat {i}" for i in range(count)], 21)

        assert formatted.font_multiplier == pytest.approx(1.0)
        assert formatted.vertical_offset == pytest.approx(0.4)

    def test_blank_statistics_dropped(self):
        """Test that blank entries are not bulleted or counted."""
        formatted = self.formatter.format(["A", "  ", None, "B"], 21)

        assert formatted.count == 2
        assert formatted.text == "• A\n\n• B"

    def test_nothing_to_format(self):
        """Test that no content gives None."""
        assert self.formatter.format([], 21) is None
        assert self.formatter.format(["", "   "], 21) is None

    def test_each_statistic_wrapped_independently(self):
        """Test that wrapping restarts for every bullet."""
        formatted = self.formatter.format(["one two three", "four five"], 9)

        assert formatted.text == "• one two\nthree\n\n• four\nfive"
        assert all(len(line) <= 9 for line in formatted.lines)

    def test_custom_adjustment_table(self):
        """Test that the count table is configurable."""
        config = LayoutConfig(statistics_adjustments={2: (0.8, 0.25)})
        formatted = StatisticsFormatter(config).format(["A", "B"], 21)

        assert formatted.font_multiplier == pytest.approx(0.8)
        assert formatted.vertical_offset == pytest.approx(0.25)


class RecordingObserver(LayoutObserver):
    """Observer collecting every event for assertions."""

    def __init__(self):
        self.events = []

    def node_skipped(self, index, reason):
        self.events.append(("node_skipped", index, reason))

    def nodes_truncated(self, received, capacity):
        self.events.append(("nodes_truncated", received, capacity))

    def statistics_empty(self):
        self.events.append(("statistics_empty",))

    def font_reduced(self, element, original_size, adjusted_size):
        self.events.append(("font_reduced", element))

    def line_overflow(self, element, line, max_chars):
        self.events.append(("line_overflow", element, line))


class TestLayoutEngine:
    """Tests for LayoutEngine element layouts."""

    def setup_method(self):
        """Set up test fixtures."""
        self.observer = RecordingObserver()
        self.engine = LayoutEngine(observer=self.observer)

    def test_title_layout(self):
        """Test the title background and text."""
        layout = self.engine.layout(ElementType.TITLE, "Vaccines", REFERENCE)

        background, text = layout.commands
        assert isinstance(background, DrawRectangle)
        assert background.color_hex == "#E3F2FD"
        assert (background.x, background.y, background.width, background.height) == pytest.approx(
            (54, 54, 972, 192))
        assert isinstance(text, DrawText)
        assert text.text == "Vaccines"
        assert text.font_size == pytest.approx(45.36)
        assert text.font_weight == "bold"
        assert text.text_decoration == "underline"
        assert text.font_family == "Montserrat"
        assert text.x == pytest.approx(540)
        assert text.y == pytest.approx(54 + 192 / 1.6)
        assert self.observer.events == []

    def test_long_title_font_reduced_to_minimum(self):
        """Test that very long titles shrink no further than the section header size."""
        layout = self.engine.layout(ElementType.TITLE, "x" * 200, REFERENCE)

        assert layout.commands[1].font_size == pytest.approx(43.2)
        assert ("font_reduced", "title") in self.observer.events

    def test_overview_layout(self):
        """Test the overview background, header, rule and body."""
        overview = "Vaccines expose the immune system to a harmless antigen. The body learns."
        layout = self.engine.layout(ElementType.OVERVIEW, overview, REFERENCE)

        background, header, rule, body = layout.commands
        assert background.color_hex == "#F1F8E9"
        assert header.text == "Overview"
        assert header.y == pytest.approx(300 + 54 * 1.4)
        assert header.font_size == pytest.approx(43.2)
        assert isinstance(rule, DrawRectangle)
        assert rule.y == pytest.approx(402.2)
        assert rule.height == 2
        assert rule.width == pytest.approx(432 - 108)
        assert body.y == pytest.approx(300 + 852 * 0.22)
        assert body.line_height == pytest.approx(23.76 * 2.8)
        assert body.font_family == "Open Sans"
        assert all(len(line) <= 24 for line in body.lines)
        assert " ".join(body.lines) == overview

    def test_statistics_layout_three(self):
        """Test the statistics layout with exactly three statistics."""
        stats = ["First statistic here", "Second statistic", "Third"]
        layout = self.engine.layout(ElementType.STATISTICS, stats, REFERENCE)

        background, header, rule, body = layout.commands
        assert background.color_hex == "#FFF3E0"
        assert header.text == "Statistics"
        assert rule.y == pytest.approx(1319.0)
        assert body.font_size == pytest.approx(27.216)
        assert body.y == pytest.approx(1386.18)
        assert body.text_align == "left"
        assert body.text.count("•") == 3
        assert all(len(line) <= 21 for line in body.lines)

    def test_statistics_layout_two(self):
        """Test the default adjustment with two statistics."""
        layout = self.engine.layout(ElementType.STATISTICS, ["A", "B"], REFERENCE)

        body = layout.commands[-1]
        assert body.font_size == pytest.approx(30.24)
        assert body.y == pytest.approx(1446.24)

    @pytest.mark.parametrize("stats", [None, [], ["", "  "]])
    def test_statistics_nothing_to_draw(self, stats):
        """Test that empty statistics produce no commands."""
        layout = self.engine.layout(ElementType.STATISTICS, stats, REFERENCE)

        assert layout.is_empty
        assert ("statistics_empty",) in self.observer.events

    def test_flowchart_five_nodes(self):
        """Test the flowchart background, header and five nodes."""
        layout = self.engine.layout(ElementType.FLOWCHART, make_nodes(), REFERENCE)

        assert len(layout.commands) == 18
        assert layout.skipped_nodes == []
        background, header, rule = layout.commands[:3]
        assert background.color_hex == "#F3E5F5"
        assert header.text == "Flowchart"
        node_backgrounds = [c for c in layout.commands[3:] if isinstance(c, DrawRectangle)]
        assert len(node_backgrounds) == 5
        assert all(c.color_hex == "#FFFFFF" for c in node_backgrounds)
        assert node_backgrounds[0].y == pytest.approx(462)

    def test_flowchart_node_text_positions(self):
        """Test node title and description placement."""
        layout = self.engine.layout(ElementType.FLOWCHART, make_nodes(1), REFERENCE)

        node_bg, title, description = layout.commands[3:6]
        assert title.text == "Step 1"
        assert title.y == pytest.approx(462 + 248.4 * 0.2)
        assert title.width == pytest.approx(432 - 216)
        assert title.font_size == pytest.approx(19.44)
        assert description.y == pytest.approx(462 + 248.4 * 0.5)
        assert description.width == pytest.approx(432 - 162)
        assert description.font_size == pytest.approx(15.984)
        assert title.x == pytest.approx(node_bg.x + node_bg.width / 2)

    def test_flowchart_node_without_title_skipped(self):
        """Test that a node missing its title is skipped and the rest are drawn."""
        nodes = make_nodes()
        nodes[2] = FlowchartNode(description="No title here")

        layout = self.engine.layout(ElementType.FLOWCHART, nodes, REFERENCE)

        assert len(layout.commands) == 15
        assert layout.skipped_nodes == [2]
        assert ("node_skipped", 2, "missing title") in self.observer.events
        node_ys = [c.y for c in layout.commands[3:] if isinstance(c, DrawRectangle)]
        assert pytest.approx(1008.48) not in node_ys

    def test_flowchart_fewer_nodes(self):
        """Test that missing trailing nodes are skipped."""
        layout = self.engine.layout(ElementType.FLOWCHART, make_nodes(3), REFERENCE)

        assert layout.skipped_nodes == [3, 4]
        assert len(layout.commands) == 3 + 3 * 3

    def test_flowchart_extra_nodes_truncated(self):
        """Test that only the first five nodes are drawn."""
        layout = self.engine.layout(ElementType.FLOWCHART, make_nodes(7), REFERENCE)

        texts = [c.text for c in layout.commands if isinstance(c, DrawText)]
        assert "Step 6" not in texts
        assert ("nodes_truncated", 7, 5) in self.observer.events

    def test_flowchart_accepts_plain_dicts(self):
        """Test that raw node mappings are accepted."""
        nodes = [{"title": "A", "description": None}, {"title": "B"}]

        layout = self.engine.layout(ElementType.FLOWCHART, nodes, REFERENCE)

        assert len(layout.commands) == 3 + 2 * 2

    def test_oversized_word_reported(self):
        """Test that an unbreakable word is reported as an overflow."""
        self.engine.layout(ElementType.OVERVIEW, "a " + "x" * 60, REFERENCE)

        assert ("line_overflow", "overview", "x" * 60) in self.observer.events

    def test_layout_uses_given_metrics(self):
        """Test that the same engine lays out different canvases independently."""
        small = CanvasMetricsResolver().from_dimensions(540, 960)

        first = self.engine.layout(ElementType.TITLE, "Title", small)
        second = self.engine.layout(ElementType.TITLE, "Title", REFERENCE)

        assert first.commands[0].height == pytest.approx(second.commands[0].height / 2)

    def test_style_overrides(self):
        """Test that styles passed to the engine replace the defaults."""
        engine = LayoutEngine(styles={"title_background": "#123456"})

        layout = engine.layout(ElementType.TITLE, "Title", REFERENCE)

        assert layout.commands[0].color_hex == "#123456"

    def test_default_observer_logs(self, caplog):
        """Test that the default observer reports through logging."""
        engine = LayoutEngine()

        with caplog.at_level("WARNING"):
            engine.layout(ElementType.STATISTICS, [], REFERENCE)

        assert "No statistics content to display" in caplog.text


class TestLoadLayoutConfig:
    """Tests for YAML layout overrides."""

    def test_defaults_without_file(self):
        """Test that no file gives the default config."""
        assert load_layout_config() == LayoutConfig()

    def test_yaml_overrides(self, tmp_path: Path):
        """Test that YAML keys override config fields."""
        path = tmp_path / "layout.yaml"
        path.write_text("margin_fraction: 0.04\nnode_count: 4\n")

        config = load_layout_config(path)

        assert config.margin_fraction == pytest.approx(0.04)
        assert config.node_count == 4
        assert len(RegionPlanner(config).plan(REFERENCE).nodes) == 4

    def test_keyword_overrides_win(self, tmp_path: Path):
        """Test that keyword overrides take precedence over the file."""
        path = tmp_path / "layout.yaml"
        path.write_text("char_width_factor: 0.5\n")

        config = load_layout_config(path, char_width_factor=0.55)

        assert config.char_width_factor == pytest.approx(0.55)

    def test_missing_file(self, tmp_path: Path):
        """Test that a missing file is an error."""
        with pytest.raises(FileNotFoundError):
            load_layout_config(tmp_path / "missing.yaml")

    def test_non_mapping_file(self, tmp_path: Path):
        """Test that a YAML list is rejected."""
        path = tmp_path / "layout.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError, match="must be a mapping"):
            load_layout_config(path)
