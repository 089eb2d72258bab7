from canvas_layout.connections import (
    auto_connector,
    connect_by_index,
    connection_points,
    should_auto_connect,
    smart_connector,
)
from canvas_layout.elements import ElementKind, create_element
from tests.helpers import label, rect


def arrow():
    return create_element("arrow", 0, 0, end=(10, 0))


def test_horizontal_connection_points():
    a, b = rect(0, 0), rect(300, 0)
    assert connection_points(a, b) == ((100, 50), (300, 50))
    assert connection_points(b, a) == ((300, 50), (100, 50))


def test_vertical_connection_points():
    a, c = rect(0, 0), rect(0, 300)
    assert connection_points(a, c) == ((50, 100), (50, 300))
    assert connection_points(c, a) == ((50, 300), (50, 100))


def test_diagonal_tie_goes_vertical():
    a, d = rect(0, 0), rect(300, 300)
    assert connection_points(a, d) == ((50, 100), (350, 300))


def test_smart_connector_is_an_arrow_between_edges():
    a, b = rect(0, 0), rect(300, 0)
    el = smart_connector(a, b)
    assert el.kind is ElementKind.ARROW
    assert (el.x, el.y) == (100, 50)
    assert el.start == (100, 50)
    assert el.end == (300, 50)
    assert el.end_arrowhead == "arrow"


def test_should_auto_connect():
    assert not should_auto_connect([])
    assert should_auto_connect([rect(0, 0)])
    assert not should_auto_connect([rect(0, 0), arrow()])
    assert not should_auto_connect([rect(0, 0), rect(200, 0), arrow()])
    assert should_auto_connect([rect(0, 0), arrow(), rect(200, 0)])


def test_auto_connector_starts_from_labelled_shape():
    box = rect(0, 0, 200, 80)
    existing = [box, label(60, 23, "Queue")]
    new = rect(300, 0)
    conn = auto_connector(existing, new)
    assert conn is not None
    assert conn.start == (200, 40)
    assert conn.end == (300, 50)


def test_auto_connector_skips_non_shapes():
    existing = [rect(0, 0)]
    assert auto_connector(existing, label(300, 0, "note")) is None
    assert auto_connector([], rect(0, 0)) is None


def test_connect_by_index():
    elements = [rect(0, 0), rect(300, 0)]
    result = connect_by_index(elements, 0, 1)
    assert result.success
    assert len(result.elements) == 1
    assert result.elements[0].start == (100, 50)


def test_connect_by_index_failures_are_soft():
    elements = [rect(0, 0), rect(300, 0)]
    result = connect_by_index(elements, 0, 5)
    assert not result.success
    assert result.elements == []
    assert result.message == (
        "Cannot connect elements - invalid indices (from: 0, to: 5, valid elements available: 0-1)"
    )
    assert not connect_by_index(elements, -1, 1).success
    assert not connect_by_index(elements, 1, 1).success
    assert not connect_by_index(elements, None, 1).success
    empty = connect_by_index([], 0, 1)
    assert "valid elements available: none" in empty.message
