from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from . import composites
from .config import DEFAULT_CONFIG, LayoutConfig
from .connections import auto_connector, connect_by_index, smart_connector
from .elements import (
    Element,
    ElementKind,
    LayoutError,
    MalformedPoints,
    Style,
    coerce_elements,
    create_element,
    measure_text,
)
from .placement import PlacementHints, PlacementSolver, last_node
from .report import CanvasReport, build_report

logger = logging.getLogger(__name__)


class UnknownAction(LayoutError):
    pass


SHAPE_ACTIONS = {
    "draw_rectangle": ElementKind.RECTANGLE,
    "draw_circle": ElementKind.ELLIPSE,
    "draw_ellipse": ElementKind.ELLIPSE,
    "draw_diamond": ElementKind.DIAMOND,
}
PATH_ACTIONS = {
    "draw_line": ElementKind.LINE,
    "draw_arrow": ElementKind.ARROW,
    "draw_freehand": ElementKind.FREEHAND,
}


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _str_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return [str(v) for v in value]


@dataclass
class DrawingRequest:
    action: str
    width: Optional[float] = None
    height: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    relative_to: Optional[str] = None
    direction: Optional[str] = None
    context: Optional[str] = None
    text: Optional[str] = None
    title: Optional[str] = None
    steps: List[str] = field(default_factory=list)
    branches: List[str] = field(default_factory=list)
    central_topic: Optional[str] = None
    end_x: Optional[float] = None
    end_y: Optional[float] = None
    points: Optional[List[Tuple[float, float]]] = None
    stroke_color: Optional[str] = None
    background_color: Optional[str] = None
    stroke_width: Optional[float] = None
    font_size: Optional[float] = None
    from_index: Optional[int] = None
    to_index: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrawingRequest":
        """Accept snake_case keys and the camelCase spellings tool callers send."""
        data = dict(data or {})
        aliases = {
            "relativeTo": "relative_to",
            "contextText": "context",
            "centralTopic": "central_topic",
            "endX": "end_x",
            "endY": "end_y",
            "strokeColor": "stroke_color",
            "backgroundColor": "background_color",
            "strokeWidth": "stroke_width",
            "fontSize": "font_size",
            "fromIndex": "from_index",
            "toIndex": "to_index",
        }
        for src, dst in aliases.items():
            if src in data and dst not in data:
                data[dst] = data.pop(src)
        action = str(data.get("action") or "").strip()
        if not action:
            raise UnknownAction("request has no action")
        return cls(
            action=action,
            width=_opt_float(data.get("width")),
            height=_opt_float(data.get("height")),
            x=_opt_float(data.get("x")),
            y=_opt_float(data.get("y")),
            relative_to=data.get("relative_to") or None,
            direction=data.get("direction") or None,
            context=data.get("context") or None,
            text=data.get("text") or None,
            title=data.get("title") or None,
            steps=_str_list(data.get("steps")),
            branches=_str_list(data.get("branches")),
            central_topic=data.get("central_topic") or None,
            end_x=_opt_float(data.get("end_x")),
            end_y=_opt_float(data.get("end_y")),
            points=[tuple(p) for p in data["points"]] if data.get("points") else None,
            stroke_color=data.get("stroke_color") or None,
            background_color=data.get("background_color") or None,
            stroke_width=_opt_float(data.get("stroke_width")),
            font_size=_opt_float(data.get("font_size")),
            from_index=_opt_int(data.get("from_index")),
            to_index=_opt_int(data.get("to_index")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) not in (None, [])}

    def style(self, config: LayoutConfig = DEFAULT_CONFIG) -> Style:
        return Style(
            stroke_color=self.stroke_color or config.stroke_color,
            background_color=self.background_color or config.background_color,
            stroke_width=self.stroke_width if self.stroke_width is not None else config.stroke_width,
        )

    def hints(self) -> PlacementHints:
        position = (self.x, self.y) if self.x is not None and self.y is not None else None
        return PlacementHints(
            position=position,
            relative_to=self.relative_to,
            direction=self.direction,
            context_text=self.context,
        )


@dataclass
class ToolResult:
    success: bool
    message: str
    elements: List[Element] = field(default_factory=list)
    action: str = ""
    clear: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "action": self.action,
            "clear": self.clear,
            "elements": [el.to_dict() for el in self.elements],
            "metadata": dict(self.metadata),
        }


def _metadata(elements: Sequence[Element], strategy: Optional[str] = None) -> Dict[str, Any]:
    meta: Dict[str, Any] = {
        "kinds": [el.kind.value for el in elements],
        "count": len(elements),
    }
    if elements:
        meta["position"] = {"x": elements[0].x, "y": elements[0].y}
    if strategy:
        meta["strategy"] = strategy
    return meta


class PlacementEngine:
    """Turn one drawing request plus the current snapshot into new elements.

    The engine holds no canvas state: every call receives the snapshot, and
    the only randomness is the injected generator used for jitter.
    """

    def __init__(
        self,
        config: Optional[LayoutConfig] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.solver = PlacementSolver(self.config, self.rng)

    def handle(self, existing: Iterable[Any], request: Any) -> ToolResult:
        if not isinstance(request, DrawingRequest):
            request = DrawingRequest.from_dict(request)
        elements = coerce_elements(existing, self.config)
        action = request.action.lower()
        logger.debug("handle %s on %d existing elements", action, len(elements))

        if action in SHAPE_ACTIONS:
            return self._draw_shape(elements, request, SHAPE_ACTIONS[action])
        if action in PATH_ACTIONS:
            return self._draw_path(elements, request, PATH_ACTIONS[action])
        if action == "draw_text":
            return self._draw_text(elements, request)
        if action == "create_flowchart":
            return self._flowchart(elements, request)
        if action == "create_mindmap":
            return self._mindmap(elements, request)
        if action == "create_diagram":
            return self._diagram(elements, request)
        if action == "connect_elements":
            return self._connect(elements, request)
        if action == "clear_canvas":
            return ToolResult(True, "Canvas cleared", [], action, clear=True, metadata={"count": 0})
        raise UnknownAction(f"unknown action: {request.action!r}")

    def report(self, existing: Iterable[Any]) -> CanvasReport:
        return build_report(coerce_elements(existing, self.config), self.config)

    # -------- single elements ----------
    def _draw_shape(self, elements: List[Element], req: DrawingRequest, kind: ElementKind) -> ToolResult:
        c = self.config
        font_size = req.font_size or c.font_size
        w, h = composites.fitted_size(
            req.text,
            req.width if req.width is not None else c.default_size,
            req.height if req.height is not None else c.default_size,
            font_size,
            c,
        )
        placement = self.solver.place(elements, w, h, req.hints())
        style = req.style(c)
        parts = composites.labelled_shape(kind, placement.x, placement.y, w, h, req.text, style, font_size, config=c)
        connector = auto_connector(elements, parts[0], style=style, config=c)
        out = ([connector] if connector is not None else []) + parts
        label = f" labelled {req.text!r}" if req.text else ""
        message = f"Drew {kind.value}{label} at ({placement.x:.0f}, {placement.y:.0f})"
        if connector is not None:
            message += " connected to the previous element"
        return ToolResult(True, message, out, req.action, metadata=_metadata(out, placement.strategy.value))

    def _draw_text(self, elements: List[Element], req: DrawingRequest) -> ToolResult:
        if not req.text:
            raise LayoutError("draw_text requires text")
        c = self.config
        font_size = req.font_size or c.font_size
        w, h = measure_text(req.text, font_size, c)
        placement = self.solver.place(elements, w, h, req.hints())
        text = create_element(ElementKind.TEXT, placement.x, placement.y, text=req.text,
                              font_size=font_size, style=req.style(c), config=c)
        return ToolResult(True, f"Wrote text at ({placement.x:.0f}, {placement.y:.0f})", [text], req.action,
                          metadata=_metadata([text], placement.strategy.value))

    def _draw_path(self, elements: List[Element], req: DrawingRequest, kind: ElementKind) -> ToolResult:
        c = self.config
        style = req.style(c)
        if req.points:
            pts = req.points
        elif req.end_x is not None and req.end_y is not None and req.x is not None and req.y is not None:
            pts = [(0.0, 0.0), (req.end_x - req.x, req.end_y - req.y)]
        elif kind is ElementKind.FREEHAND:
            pts = [(0.0, 0.0), (10.0, 10.0), (20.0, 0.0)]
        else:
            pts = [(0.0, 0.0), (req.width if req.width is not None else c.default_size, 0.0)]
        if any(len(p) != 2 for p in pts):
            raise MalformedPoints(f"{kind.value} points must be (dx, dy) pairs")
        # shift so the top-left of the drawn points is the placed origin
        x0 = min(float(p[0]) for p in pts)
        y0 = min(float(p[1]) for p in pts)
        pts = [(float(p[0]) - x0, float(p[1]) - y0) for p in pts]
        w = max(p[0] for p in pts)
        h = max(p[1] for p in pts)
        hints = req.hints()
        if hints.position is not None:
            hints = replace(hints, position=(hints.position[0] + x0, hints.position[1] + y0))
        placement = self.solver.place(elements, w, h, hints)
        path = create_element(kind, placement.x, placement.y, points=pts, style=style, config=c)
        message = f"Drew {kind.value} at ({placement.x:.0f}, {placement.y:.0f})"
        return ToolResult(True, message, [path], req.action, metadata=_metadata([path], placement.strategy.value))

    # -------- composites ----------
    def _attach(self, elements: List[Element], group: List[Element], style: Style) -> List[Element]:
        source = last_node(elements)
        entry = composites.entry_node(group)
        if source is None or entry is None:
            return group
        return [smart_connector(source, entry, style=style, config=self.config)] + group

    def _flowchart(self, elements: List[Element], req: DrawingRequest) -> ToolResult:
        c = self.config
        steps = req.steps or list(composites.DEFAULT_STEPS)
        w, h = composites.flowchart_footprint(steps, req.title, req.width, config=c)
        placement = self.solver.place(elements, w, h, req.hints())
        style = req.style(c) if req.stroke_color else composites.STEP_STYLE
        group = composites.build_flowchart(placement.x, placement.y, steps, req.title, style=style, config=c)
        out = self._attach(elements, group, style)
        message = f"Created flowchart with {len(steps)} steps at ({placement.x:.0f}, {placement.y:.0f})"
        return ToolResult(True, message, out, req.action, metadata=_metadata(out, placement.strategy.value))

    def _mindmap(self, elements: List[Element], req: DrawingRequest) -> ToolResult:
        c = self.config
        topic = req.central_topic or req.text or "Main Topic"
        branches = req.branches or list(composites.DEFAULT_BRANCHES)
        w, h = composites.mindmap_footprint(branches, req.width, req.height, config=c, topic=topic)
        placement = self.solver.place(elements, w, h, req.hints())
        group = composites.build_mindmap(placement.x, placement.y, topic, branches, w, h, config=c)
        out = self._attach(elements, group, req.style(c))
        message = f"Created mind map '{topic}' with {len(branches)} branches"
        return ToolResult(True, message, out, req.action, metadata=_metadata(out, placement.strategy.value))

    def _diagram(self, elements: List[Element], req: DrawingRequest) -> ToolResult:
        c = self.config
        names = req.steps or _str_list(req.text) or ["Component A", "Component B"]
        first = names[0]
        second = names[1] if len(names) > 1 else "Component B"
        font_size = req.font_size or composites.COMPONENT_FONT
        w, h = composites.diagram_footprint(req.width, req.height, first, second, font_size, config=c)
        placement = self.solver.place(elements, w, h, req.hints())
        style = req.style(c)
        group = composites.build_component_pair(placement.x, placement.y, first, second, style,
                                                font_size, config=c)
        out = self._attach(elements, group, style)
        message = f"Created diagram {first!r} -> {second!r} at ({placement.x:.0f}, {placement.y:.0f})"
        return ToolResult(True, message, out, req.action, metadata=_metadata(out, placement.strategy.value))

    # -------- connections ----------
    def _connect(self, elements: List[Element], req: DrawingRequest) -> ToolResult:
        result = connect_by_index(elements, req.from_index, req.to_index, style=req.style(self.config),
                                  config=self.config)
        if not result.success:
            return ToolResult(False, result.message, [], req.action, metadata={"count": 0})
        message = f"Connected element {req.from_index} to element {req.to_index}"
        return ToolResult(True, message, result.elements, req.action, metadata=_metadata(result.elements))


class CanvasSession:
    """One canvas snapshot, grown by applying engine results."""

    def __init__(self, session_id: str, engine: Optional[PlacementEngine] = None):
        self.id = session_id
        self.engine = engine or PlacementEngine()
        self.elements: List[Element] = []
        # held from reading the snapshot until the result is appended
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self.elements)

    def apply(self, result: ToolResult) -> None:
        with self._lock:
            self._apply(result)

    def _apply(self, result: ToolResult) -> None:
        if result.clear:
            self.elements = []
        self.elements.extend(result.elements)

    def draw(self, request: Any) -> ToolResult:
        with self._lock:
            result = self.engine.handle(self.elements, request)
            self._apply(result)
            count = len(self.elements)
        logger.info("session %s: %s (%d elements)", self.id, result.message, count)
        return result

    def clear(self) -> None:
        with self._lock:
            self.elements = []

    def report(self) -> CanvasReport:
        with self._lock:
            return self.engine.report(list(self.elements))

    def to_dicts(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [el.to_dict() for el in self.elements]
