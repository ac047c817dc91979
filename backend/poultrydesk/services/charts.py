# Overview: Chart images for reports, drawn with reportlab graphics and written as SVG.

from __future__ import annotations

from typing import Iterable

from reportlab.graphics import renderSVG
from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.linecharts import HorizontalLineChart
from reportlab.graphics.shapes import Drawing, String
from reportlab.graphics.widgets.markers import makeMarker
from reportlab.lib import colors


WIDTH = 520
HEIGHT = 300

NO_DATA_LABEL = "No Data"

BAR_COLOR = colors.HexColor("#2e7d32")
LINE_COLOR = colors.HexColor("#f9a825")


class ChartError(Exception):
    """Raised when a chart image cannot be written."""
    pass


def normalize_points(points: Iterable[tuple[str, float]]) -> list[tuple[str, float]]:
    """
    Coerce (label, value) pairs for plotting.

    An empty series becomes a single ("No Data", 0) point so a chart is
    always drawn.
    """
    cleaned = [(str(label), float(value or 0)) for label, value in points]
    if not cleaned:
        return [(NO_DATA_LABEL, 0.0)]
    return cleaned


def _value_bounds(values: list[float]) -> tuple[float, float]:
    low = min(0.0, min(values))
    high = max(0.0, max(values))
    if high <= low:
        high = low + 1
    return low, high


def _frame(title: str) -> Drawing:
    drawing = Drawing(WIDTH, HEIGHT)
    drawing.add(String(WIDTH / 2, HEIGHT - 18, title or "", textAnchor="middle", fontSize=12))
    return drawing


def _save(drawing: Drawing, path: str) -> None:
    try:
        renderSVG.drawToFile(drawing, path)
    except (OSError, ValueError) as exc:
        raise ChartError(f"Failed to write chart to {path}: {exc}") from exc


def render_bar_chart(points: Iterable[tuple[str, float]], path: str, title: str = "") -> list[tuple[str, float]]:
    """Bar chart of categories/flocks. Returns the points actually plotted."""
    points = normalize_points(points)
    values = [v for _, v in points]
    low, high = _value_bounds(values)

    chart = VerticalBarChart()
    chart.x = 55
    chart.y = 70
    chart.width = WIDTH - 85
    chart.height = HEIGHT - 110
    chart.data = [values]
    chart.categoryAxis.categoryNames = [label for label, _ in points]
    chart.categoryAxis.labels.angle = 30
    chart.categoryAxis.labels.boxAnchor = "ne"
    chart.categoryAxis.labels.fontSize = 7
    chart.valueAxis.valueMin = low
    chart.valueAxis.valueMax = high
    chart.valueAxis.labels.fontSize = 7
    chart.bars[0].fillColor = BAR_COLOR
    chart.bars[0].strokeColor = None

    drawing = _frame(title)
    drawing.add(chart)
    _save(drawing, path)
    return points


def render_line_chart(points: Iterable[tuple[str, float]], path: str, title: str = "") -> list[tuple[str, float]]:
    """Time-series line chart (labels in date order). Returns the points actually plotted."""
    points = normalize_points(points)
    values = [v for _, v in points]
    low, high = _value_bounds(values)

    chart = HorizontalLineChart()
    chart.x = 55
    chart.y = 70
    chart.width = WIDTH - 85
    chart.height = HEIGHT - 110
    chart.data = [values]
    chart.joinedLines = 1
    chart.categoryAxis.categoryNames = [label for label, _ in points]
    chart.categoryAxis.labels.angle = 45
    chart.categoryAxis.labels.boxAnchor = "ne"
    chart.categoryAxis.labels.fontSize = 6
    chart.valueAxis.valueMin = low
    chart.valueAxis.valueMax = high
    chart.valueAxis.labels.fontSize = 7
    chart.lines[0].strokeColor = LINE_COLOR
    chart.lines[0].strokeWidth = 2
    chart.lines[0].symbol = makeMarker("FilledCircle")

    drawing = _frame(title)
    drawing.add(chart)
    _save(drawing, path)
    return points
