from canvas_layout.elements import ElementKind, label_owner
from canvas_layout.engine import CanvasSession, PlacementEngine
from canvas_layout.occupancy import Box

LONG_SEQUENCE = [
    {"action": "draw_rectangle", "text": "Authentication Service"},
    {"action": "draw_diamond", "text": "Is the token still valid?"},
    {"action": "create_flowchart", "steps": ["Authenticate incoming request", "Load user profile", "Render"]},
    {"action": "draw_ellipse", "text": "Cache"},
    {"action": "create_diagram", "text": "Authentication Service, Session Store"},
    {"action": "draw_rectangle", "relative_to": "Cache", "direction": "left", "text": "A rather long left label"},
    {"action": "create_mindmap", "central_topic": "Architecture",
     "branches": ["Frontend rendering layer", "Backend", "Storage", "Observability and logging"]},
    {"action": "draw_text", "text": "Loose note"},
    {"action": "draw_rectangle", "text": "Trailing box", "relative_to": "Loose note", "direction": "above"},
    {"action": "draw_line", "points": [[0, 0], [-120, -40]]},
    {"action": "draw_rectangle", "text": "After the line"},
]


def nodes(elements):
    return [el for el in elements if not el.is_connector]


def assert_clear_of(prior, added):
    placed = [Box.of(el) for el in nodes(prior)]
    for el in nodes(added):
        box = Box.of(el)
        hits = [b for b in placed if box.intersects(b)]
        assert not hits, f"{el.kind.value} at ({el.x:.0f}, {el.y:.0f}) lands on earlier content"


def test_sequence_never_overlaps_earlier_content():
    for seed in range(5):
        session = CanvasSession("seq", PlacementEngine(seed=seed))
        for request in LONG_SEQUENCE:
            before = list(session.elements)
            result = session.draw(request)
            assert result.success
            assert_clear_of(before, result.elements)


def test_shape_labels_resolve_to_their_own_shape():
    session = CanvasSession("labels", PlacementEngine(seed=3))
    for request in LONG_SEQUENCE:
        result = session.draw(request)
        if not request["action"].startswith("draw_") or "text" not in request:
            continue
        shapes = [el for el in result.elements if el.is_shape]
        if not shapes:
            continue
        text = next(el for el in result.elements if el.kind is ElementKind.TEXT)
        assert label_owner(session.elements, text) is shapes[0]


def test_repeated_composites_stay_apart():
    session = CanvasSession("composites", PlacementEngine(seed=11))
    for _ in range(3):
        for request in LONG_SEQUENCE[2:3] + LONG_SEQUENCE[4:5] + LONG_SEQUENCE[6:7]:
            before = list(session.elements)
            assert_clear_of(before, session.draw(request).elements)
