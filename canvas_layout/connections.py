from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import Element, ElementKind, Style, create_element, label_owner

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass
class ConnectResult:
    success: bool
    message: str = ""
    elements: List[Element] = field(default_factory=list)


def should_auto_connect(elements: Sequence[Element]) -> bool:
    """Connect a new shape to the previous one while shapes outnumber connectors."""
    if not elements:
        return False
    shapes = sum(1 for el in elements if el.is_shape)
    connectors = sum(1 for el in elements if el.is_connector)
    return shapes > connectors and not elements[-1].is_connector


def connection_points(source: Element, target: Element) -> Tuple[Point, Point]:
    sx, sy = source.center
    tx, ty = target.center
    dx, dy = tx - sx, ty - sy
    if abs(dx) > abs(dy):
        if dx > 0:
            return (source.right, sy), (target.x, ty)
        return (source.x, sy), (target.right, ty)
    if dy > 0:
        return (sx, source.bottom), (tx, target.y)
    return (sx, source.y), (tx, target.bottom)


def smart_connector(
    source: Element,
    target: Element,
    style: Optional[Style] = None,
    kind: ElementKind = ElementKind.ARROW,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> Element:
    start, end = connection_points(source, target)
    logger.debug(
        "connector %s -> %s from (%.1f, %.1f) to (%.1f, %.1f)",
        source.kind.value, target.kind.value, start[0], start[1], end[0], end[1],
    )
    return create_element(kind, start[0], start[1], end=end, style=style, config=config)


def connect_source(existing: Sequence[Element]) -> Optional[Element]:
    if not existing or existing[-1].is_connector:
        return None
    return label_owner(existing, existing[-1])


def auto_connector(
    existing: Sequence[Element],
    new_element: Element,
    style: Optional[Style] = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> Optional[Element]:
    if not new_element.is_shape or not should_auto_connect(existing):
        return None
    source = connect_source(existing)
    if source is None:
        return None
    return smart_connector(source, new_element, style=style, config=config)


def connect_by_index(
    elements: Sequence[Element],
    from_index: Optional[int],
    to_index: Optional[int],
    style: Optional[Style] = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> ConnectResult:
    count = len(elements)
    valid = (
        from_index is not None
        and to_index is not None
        and 0 <= from_index < count
        and 0 <= to_index < count
        and from_index != to_index
    )
    if not valid:
        upper = f"0-{count - 1}" if count else "none"
        message = (
            f"Cannot connect elements - invalid indices (from: {from_index}, to: {to_index}, "
            f"valid elements available: {upper})"
        )
        logger.warning(message)
        return ConnectResult(False, message, [])
    arrow = smart_connector(elements[from_index], elements[to_index], style=style, config=config)
    return ConnectResult(True, "", [arrow])
