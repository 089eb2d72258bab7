import dataclasses

from canvas_layout.config import DEFAULT_CONFIG
from canvas_layout.connections import smart_connector
from canvas_layout.elements import create_element
from canvas_layout.report import build_report, count_clusters, infer_connections
from tests.helpers import label, rect


def small_scene():
    a, b = rect(200, 200), rect(500, 200)
    return [a, b, smart_connector(a, b), rect(200, 500)]


def test_report_on_small_scene():
    report = build_report(small_scene())
    assert report.element_count == 4
    assert report.shape_count == 3
    assert report.connector_count == 1
    assert report.connections == [(0, 1)]
    assert report.flow == "horizontal"
    assert report.clusters == 2
    assert report.grid[1][0] == 1
    assert report.grid[1][1] == 3
    assert report.empty_areas[0] == (0, 0)


def test_opportunities_skip_connected_pairs():
    report = build_report(small_scene())
    assert len(report.opportunities) == 1
    opp = report.opportunities[0]
    assert (opp.from_index, opp.to_index, opp.axis, opp.distance) == (0, 3, "vertical", 300)


def test_opportunities_are_capped():
    row = [rect(100 + 150 * i, 300) for i in range(6)]
    report = build_report(row)
    assert len(report.opportunities) == 4


def test_far_connector_endpoints_are_ignored():
    elements = [rect(0, 0), create_element("arrow", 600, 600, end=(900, 600))]
    assert infer_connections(elements) == []


def test_labels_do_not_count_as_clusters():
    elements = [rect(0, 0, 200, 80), label(60, 23, "Cache"), rect(400, 0)]
    assert count_clusters(elements, []) == 2


def test_empty_canvas_report():
    report = build_report([])
    assert report.element_count == 0
    assert report.clusters == 0
    assert report.flow == "horizontal"
    assert len(report.empty_areas) == 25
    assert all(n == 0 for row in report.grid for n in row)


def test_full_canvas_points_past_last_region():
    config = dataclasses.replace(DEFAULT_CONFIG, canvas_width=400, canvas_height=400)
    report = build_report([rect(0, 0, 400, 400)], config)
    assert report.empty_areas == [(460, 320)]


def test_text_and_dict_renderings():
    report = build_report(small_scene())
    text = report.to_text()
    assert "Region occupancy:" in text
    assert "0 -> 1" in text
    assert "connect_elements from_index=0 to_index=3" in text
    data = report.to_dict()
    assert data["summary"]["clusters"] == 2
    assert data["connections"] == [{"from": 0, "to": 1}]
    assert data["opportunities"][0]["axis"] == "vertical"
