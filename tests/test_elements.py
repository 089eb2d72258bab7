import pytest

from canvas_layout.elements import (
    ElementKind,
    LayoutError,
    MalformedPoints,
    PathElement,
    TextElement,
    UnknownElementKind,
    coerce_elements,
    create_element,
    element_from_dict,
    label_owner,
    measure_text,
)


def test_rectangle_defaults():
    el = create_element("rectangle", 10, 20)
    assert (el.x, el.y, el.width, el.height) == (10, 20, 100, 100)
    assert el.style.stroke_color == "#1971c2"
    assert el.style.background_color == "transparent"
    assert el.style.stroke_width == 2
    assert el.is_shape and not el.is_connector


def test_ids_are_unique():
    a = create_element("ellipse", 0, 0)
    b = create_element("ellipse", 0, 0)
    assert a.id != b.id


def test_circle_alias_maps_to_ellipse():
    assert create_element("circle", 0, 0).kind is ElementKind.ELLIPSE
    assert ElementKind.parse("freedraw") is ElementKind.FREEHAND


def test_unknown_kind_raises():
    with pytest.raises(UnknownElementKind):
        create_element("hexagon", 0, 0)
    with pytest.raises(ValueError):
        create_element("hexagon", 0, 0)


def test_text_size_is_derived_from_content():
    el = create_element("text", 0, 0, text="Hello")
    assert isinstance(el, TextElement)
    # 5 glyphs * 20 * 0.65 = 65, clamped up to the minimum width
    assert el.width == 80
    assert el.height == pytest.approx(20 * 1.3 + 20 * 0.4)


def test_text_width_is_clamped_and_lines_add_height():
    w, _ = measure_text("x" * 40, 20)
    assert w == 400
    _, h = measure_text("ab\ncd", 20)
    assert h == pytest.approx(2 * 26 + 8)


def test_text_requires_content():
    with pytest.raises(LayoutError):
        create_element("text", 0, 0, text="")


def test_line_defaults_to_horizontal_span():
    el = create_element("line", 10, 20, width=50)
    assert isinstance(el, PathElement)
    assert el.points == ((0.0, 0.0), (50.0, 0.0))
    assert (el.width, el.height) == (50, 0)
    assert el.end_arrowhead is None


def test_arrow_to_explicit_end():
    el = create_element("arrow", 10, 20, end=(110, 70))
    assert el.points == ((0.0, 0.0), (100.0, 50.0))
    assert (el.width, el.height) == (100, 50)
    assert el.end == (110, 70)
    assert el.end_arrowhead == "arrow"


def test_freehand_default_stroke_and_extent():
    el = create_element("freehand", 0, 0)
    assert len(el.points) == 3
    assert (el.width, el.height) == (20, 10)


def test_single_point_path_is_rejected():
    with pytest.raises(MalformedPoints):
        create_element("line", 0, 0, points=[(0, 0)])


def test_from_dict_applies_shape_defaults():
    el = element_from_dict({"id": "r1", "type": "rectangle", "x": 5, "y": 6})
    assert el.id == "r1"
    assert (el.width, el.height) == (100, 100)


def test_from_dict_keeps_explicit_zero_size():
    el = element_from_dict({"type": "rectangle", "x": 0, "y": 0, "width": 0, "height": 40})
    assert (el.width, el.height) == (0, 40)


def test_from_dict_text_is_measured():
    el = element_from_dict({"type": "text", "x": 0, "y": 0, "text": "Authentication Service",
                            "fontSize": 20, "width": 100, "height": 100})
    assert (el.width, el.height) == pytest.approx(measure_text("Authentication Service", 20))
    bare = element_from_dict({"type": "text", "x": 0, "y": 0, "text": "hi"})
    assert (bare.width, bare.height) == pytest.approx((80, 34))


def test_from_dict_path_without_points_is_rejected():
    with pytest.raises(MalformedPoints):
        element_from_dict({"type": "arrow", "x": 0, "y": 0})


def test_wire_format_keys():
    el = create_element("arrow", 0, 0, end=(30, 40))
    data = el.to_dict()
    assert data["type"] == "arrow"
    assert data["points"] == [[0.0, 0.0], [30.0, 40.0]]
    assert data["endArrowhead"] == "arrow"
    again = element_from_dict(data)
    assert again == el


def test_coerce_mixes_dicts_and_elements():
    el = create_element("diamond", 0, 0)
    out = coerce_elements([el, {"type": "text", "x": 1, "y": 2, "text": "hi", "width": 80, "height": 34}])
    assert out[0] is el
    assert out[1].kind is ElementKind.TEXT and out[1].text == "hi"


def test_label_owner_resolves_text_inside_shape():
    box = create_element("rectangle", 0, 0, 200, 80)
    label = create_element("text", 60, 23, text="Cache")
    loose = create_element("text", 500, 500, text="Note")
    elements = [box, label, loose]
    assert label_owner(elements, label) is box
    assert label_owner(elements, loose) is loose
    assert label_owner(elements, box) is box
