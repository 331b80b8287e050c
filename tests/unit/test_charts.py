from __future__ import annotations

import pytest

from report_engine.excel.parser import parse_sheet
from report_engine.excel.vertical import extract_vertical
from report_engine.models.chart import Chart, ChartPoint
from report_engine.services.charts import build_charts


def _ids(charts: list[Chart]) -> list[str]:
    return [c.id for c in charts]


def test_horizontal_sales_charts(sales_raw):
    table, _ = parse_sheet(sales_raw, "sales")
    charts = {c.id: c for c in build_charts(table, "sales")}
    assert list(charts) == ["main-bar-chart", "distribution-pie-chart", "trend-line-chart"]

    bar = charts["main-bar-chart"]
    assert bar.type == "bar"
    assert bar.title == "Quantity by Product"
    assert bar.x_axis_label == "Product"
    assert bar.y_axis_label == "Quantity"
    assert bar.data == (ChartPoint("A", 150), ChartPoint("B", 50))

    line = charts["trend-line-chart"]
    assert line.labels == ["2024-01-05", "2024-01-10"]


def test_bar_aggregates_by_label_and_caps_points(table_factory):
    rows = [{"region": f"r{i % 12}", "sales": 1} for i in range(24)]
    charts = build_charts(table_factory(rows))
    bar = charts[0]
    assert len(bar.data) == 10
    assert bar.data[0] == ChartPoint("r0", 2)
    # more than 8 points -> no pie
    assert "distribution-pie-chart" not in _ids(charts)


def test_line_chart_sorted_and_capped(table_factory):
    rows = [{"month": f"2024-{m:02d}", "revenue": m} for m in range(12, 0, -1)]
    rows += [{"month": "2025-01", "revenue": 5}]
    charts = {c.id: c for c in build_charts(table_factory(rows))}
    line = charts["trend-line-chart"]
    assert line.labels[0] == "2024-01"
    assert len(line.data) == 12


def test_no_numeric_column_no_charts(table_factory):
    assert build_charts(table_factory([{"name": "a", "city": "b"}])) == []


def test_vertical_charts(platform_report_raw):
    table, _ = parse_sheet(platform_report_raw)
    charts = {c.id: c for c in build_charts(table)}
    assert list(charts) == ["main-metrics-bar", "demographics_table-chart", "percentage-metrics"]

    main = charts["main-metrics-bar"]
    assert main.labels == ["Total Impressions", "Total Clicks", "Spend"]

    sub = charts["demographics_table-chart"]
    assert sub.type == "pie"
    assert sub.title == "Demographics - Impressions"
    assert sub.values == [45000, 60000, 45000]

    pct = charts["percentage-metrics"]
    assert pct.labels == ["Ctr", "Video Completion Rate", "Bounce Rate"]


def test_vertical_without_enough_metrics_has_no_charts():
    table = extract_vertical((("TOTAL IMPRESSIONS", "150000"), ("Owner", "Ops")))
    assert build_charts(table) == []


def test_chart_type_is_validated():
    with pytest.raises(ValueError, match="unsupported chart type"):
        Chart(id="x", title="x", type="scatter", data=())
