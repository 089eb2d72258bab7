from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, LayoutConfig

Point = Tuple[float, float]


class LayoutError(ValueError):
    """Contract violation by the caller; never a runtime condition."""


class UnknownElementKind(LayoutError):
    pass


class MalformedPoints(LayoutError):
    pass


class ElementKind(str, Enum):
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    DIAMOND = "diamond"
    LINE = "line"
    ARROW = "arrow"
    TEXT = "text"
    FREEHAND = "freehand"

    @classmethod
    def parse(cls, value: Any) -> "ElementKind":
        if isinstance(value, cls):
            return value
        name = str(value or "").strip().lower()
        name = _KIND_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise UnknownElementKind(f"unknown element kind: {value!r}") from None


_KIND_ALIASES = {
    "circle": "ellipse",
    "freedraw": "freehand",
}

SHAPE_KINDS = frozenset({ElementKind.RECTANGLE, ElementKind.ELLIPSE, ElementKind.DIAMOND})
CONNECTOR_KINDS = frozenset({ElementKind.LINE, ElementKind.ARROW})
PATH_KINDS = CONNECTOR_KINDS | {ElementKind.FREEHAND}


@dataclass(frozen=True)
class Style:
    stroke_color: str = DEFAULT_CONFIG.stroke_color
    background_color: str = DEFAULT_CONFIG.background_color
    stroke_width: float = DEFAULT_CONFIG.stroke_width


@dataclass(frozen=True)
class Element:
    id: str
    kind: ElementKind
    x: float
    y: float
    width: float
    height: float
    style: Style = field(default_factory=Style)

    _kinds: ClassVar[frozenset] = frozenset()

    def __post_init__(self) -> None:
        if self._kinds and self.kind not in self._kinds:
            raise UnknownElementKind(f"{type(self).__name__} cannot hold kind {self.kind.value!r}")
        if self.width < 0 or self.height < 0:
            raise LayoutError(f"negative size for element {self.id}: {self.width}x{self.height}")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def is_shape(self) -> bool:
        return self.kind in SHAPE_KINDS

    @property
    def is_connector(self) -> bool:
        return self.kind in CONNECTOR_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind.value,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "strokeColor": self.style.stroke_color,
            "backgroundColor": self.style.background_color,
            "strokeWidth": self.style.stroke_width,
        }


@dataclass(frozen=True)
class ShapeElement(Element):
    _kinds: ClassVar[frozenset] = SHAPE_KINDS


@dataclass(frozen=True)
class TextElement(Element):
    text: str = ""
    font_size: float = DEFAULT_CONFIG.font_size
    _kinds: ClassVar[frozenset] = frozenset({ElementKind.TEXT})

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["text"] = self.text
        data["fontSize"] = self.font_size
        return data


@dataclass(frozen=True)
class PathElement(Element):
    points: Tuple[Point, ...] = ()
    end_arrowhead: Optional[str] = None
    _kinds: ClassVar[frozenset] = PATH_KINDS

    def __post_init__(self) -> None:
        super().__post_init__()
        if len(self.points) < 2:
            raise MalformedPoints(
                f"{self.kind.value} {self.id} needs at least 2 points, got {len(self.points)}"
            )

    @property
    def start(self) -> Point:
        dx, dy = self.points[0]
        return (self.x + dx, self.y + dy)

    @property
    def end(self) -> Point:
        dx, dy = self.points[-1]
        return (self.x + dx, self.y + dy)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["points"] = [[float(px), float(py)] for px, py in self.points]
        data["endArrowhead"] = self.end_arrowhead
        return data


def new_element_id() -> str:
    return uuid.uuid4().hex


def measure_text(text: str, font_size: float, config: LayoutConfig = DEFAULT_CONFIG) -> Tuple[float, float]:
    lines = text.split("\n")
    longest = max(len(line) for line in lines)
    width = max(
        config.text_min_width,
        min(config.text_max_width, longest * font_size * config.glyph_width_ratio),
    )
    height = len(lines) * font_size * config.line_height_ratio + font_size * config.text_pad_ratio
    return float(width), float(height)


def _normalize_points(points: Iterable[Sequence[float]]) -> Tuple[Point, ...]:
    out: List[Point] = []
    for pt in points:
        if len(pt) != 2:
            raise MalformedPoints(f"point must be a (dx, dy) pair, got {pt!r}")
        out.append((float(pt[0]), float(pt[1])))
    return tuple(out)


def _path_extent(kind: ElementKind, points: Tuple[Point, ...]) -> Tuple[float, float]:
    if kind in CONNECTOR_KINDS:
        return abs(points[-1][0] - points[0][0]), abs(points[-1][1] - points[0][1])
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return max(xs) - min(xs), max(ys) - min(ys)


def create_element(
    kind: Any,
    x: float,
    y: float,
    width: Optional[float] = None,
    height: Optional[float] = None,
    text: Optional[str] = None,
    points: Optional[Iterable[Sequence[float]]] = None,
    end: Optional[Point] = None,
    style: Optional[Style] = None,
    font_size: Optional[float] = None,
    element_id: Optional[str] = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> Element:
    """Build a fully specified element from partial input, applying defaults."""
    kind = ElementKind.parse(kind)
    style = style or Style(config.stroke_color, config.background_color, config.stroke_width)
    element_id = element_id or new_element_id()
    x, y = float(x), float(y)
    w = float(config.default_size if width is None else width)
    h = float(config.default_size if height is None else height)

    if kind in SHAPE_KINDS:
        return ShapeElement(element_id, kind, x, y, w, h, style)

    if kind is ElementKind.TEXT:
        content = text or ""
        if not content:
            raise LayoutError("text element requires non-empty text")
        size = float(font_size or config.font_size)
        tw, th = measure_text(content, size, config)
        return TextElement(element_id, kind, x, y, tw, th, style, text=content, font_size=size)

    if points is not None:
        pts = _normalize_points(points)
    elif kind is ElementKind.FREEHAND:
        pts = ((0.0, 0.0), (10.0, 10.0), (20.0, 0.0))
    else:
        ex, ey = end if end is not None else (x + w, y)
        pts = ((0.0, 0.0), (float(ex) - x, float(ey) - y))
    if len(pts) < 2:
        raise MalformedPoints(f"{kind.value} needs at least 2 points, got {len(pts)}")
    pw, ph = _path_extent(kind, pts)
    arrowhead = "arrow" if kind is ElementKind.ARROW else None
    return PathElement(element_id, kind, x, y, pw, ph, style, points=pts, end_arrowhead=arrowhead)


def element_from_dict(data: Dict[str, Any], config: LayoutConfig = DEFAULT_CONFIG) -> Element:
    """Parse one snapshot entry (Excalidraw-style keys) into an element."""
    kind = ElementKind.parse(data.get("type") or data.get("kind"))
    style = Style(
        stroke_color=data.get("strokeColor", config.stroke_color),
        background_color=data.get("backgroundColor", config.background_color),
        stroke_width=data.get("strokeWidth", config.stroke_width),
    )
    element_id = str(data.get("id") or new_element_id())
    x = float(data.get("x") or 0.0)
    y = float(data.get("y") or 0.0)

    if kind in PATH_KINDS:
        raw = data.get("points")
        if not raw:
            raise MalformedPoints(f"{kind.value} {element_id} has no points")
        pts = _normalize_points(raw)
        if len(pts) < 2:
            raise MalformedPoints(f"{kind.value} {element_id} needs at least 2 points")
        pw, ph = _path_extent(kind, pts)
        arrowhead = data.get("endArrowhead", "arrow" if kind is ElementKind.ARROW else None)
        return PathElement(element_id, kind, x, y, pw, ph, style, points=pts, end_arrowhead=arrowhead)

    if kind is ElementKind.TEXT:
        # text boxes follow the metrics used for placement, not the caller's numbers
        text = str(data.get("text") or "")
        font_size = float(data.get("fontSize") or config.font_size)
        width, height = measure_text(text, font_size, config)
        return TextElement(element_id, kind, x, y, width, height, style, text=text, font_size=font_size)
    width = float(data["width"]) if data.get("width") is not None else float(config.default_size)
    height = float(data["height"]) if data.get("height") is not None else float(config.default_size)
    return ShapeElement(element_id, kind, x, y, width, height, style)


def coerce_elements(items: Iterable[Any], config: LayoutConfig = DEFAULT_CONFIG) -> List[Element]:
    out: List[Element] = []
    for item in items or []:
        if isinstance(item, Element):
            out.append(item)
        else:
            out.append(element_from_dict(item, config))
    return out


def contains(outer: Element, inner: Element) -> bool:
    return (
        outer.x <= inner.x and outer.y <= inner.y
        and inner.right <= outer.right and inner.bottom <= outer.bottom
    )


def label_owner(elements: Sequence[Element], el: Element) -> Element:
    """A text label drawn inside a shape stands for that shape."""
    if el.kind is not ElementKind.TEXT:
        return el
    for other in reversed(elements):
        if other.is_shape and contains(other, el):
            return other
    return el
