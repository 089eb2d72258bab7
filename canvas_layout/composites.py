from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, LayoutConfig
from .connections import smart_connector
from .elements import Element, ElementKind, Style, create_element, measure_text

STEP_W, STEP_H, STEP_GAP = 200, 80, 40
TITLE_H, TITLE_FONT = 60, 24
STEP_FONT, BRANCH_FONT, CENTER_FONT, COMPONENT_FONT = 16, 14, 18, 16
CENTER_W, CENTER_H = 200, 80
BRANCH_W, BRANCH_H = 120, 50
BRANCH_MARGIN = 140
COMPONENT_W, COMPONENT_H, COMPONENT_GAP = 150, 80, 100
LABEL_PAD = 10

DEFAULT_STEPS = ("Start", "Process", "Decision", "End")
DEFAULT_BRANCHES = ("Idea 1", "Idea 2", "Idea 3", "Idea 4")

STEP_STYLE = Style("#1971c2", "#e3f2fd", 2)
CENTER_STYLE = Style("#f57c00", "#fff3e0", 3)
BRANCH_STYLE = Style("#4caf50", "#e8f5e8", 2)
BRANCH_TEXT_STYLE = Style("#2e7d32", "transparent", 2)


def fitted_size(label: Optional[str], w: float, h: float, font_size: float,
                config: LayoutConfig = DEFAULT_CONFIG) -> Tuple[float, float]:
    """Smallest box at least ``w x h`` that holds the label with padding."""
    if not label:
        return float(w), float(h)
    tw, th = measure_text(label, font_size, config)
    return max(float(w), tw + 2 * LABEL_PAD), max(float(h), th + 2 * LABEL_PAD)


def _step_size(steps: Sequence[str], config: LayoutConfig) -> Tuple[float, float]:
    sizes = [fitted_size(s, STEP_W, STEP_H, STEP_FONT, config) for s in steps]
    return max(w for w, _ in sizes), max(h for _, h in sizes)


def _title_size(title: Optional[str], config: LayoutConfig) -> Tuple[float, float]:
    if not title:
        return 0.0, 0.0
    tw, th = measure_text(title, TITLE_FONT, config)
    return tw, max(float(TITLE_H), th + LABEL_PAD)


def flowchart_footprint(steps: Sequence[str], title: Optional[str], width: Optional[float] = None,
                        config: LayoutConfig = DEFAULT_CONFIG) -> Tuple[float, float]:
    steps = list(steps) or list(DEFAULT_STEPS)
    step_w, step_h = _step_size(steps, config)
    title_w, title_h = _title_size(title, config)
    w = max(220.0, float(width or 0.0), step_w, title_w)
    h = title_h + len(steps) * (step_h + STEP_GAP) + 40
    return w, float(h)


def _branch_size(branches: Sequence[str], config: LayoutConfig) -> Tuple[float, float]:
    sizes = [fitted_size(b, BRANCH_W, BRANCH_H, BRANCH_FONT, config) for b in branches]
    return max(w for w, _ in sizes), max(h for _, h in sizes)


def mindmap_footprint(branches: Sequence[str], width: Optional[float] = None, height: Optional[float] = None,
                      config: LayoutConfig = DEFAULT_CONFIG, topic: Optional[str] = None) -> Tuple[float, float]:
    branches = list(branches) or list(DEFAULT_BRANCHES)
    side = 2 * (config.radial_radius + BRANCH_MARGIN)
    bw, bh = _branch_size(branches, config)
    cw, ch = fitted_size(topic, CENTER_W, CENTER_H, CENTER_FONT, config)
    w = max(side, 2 * (config.radial_radius + bw / 2.0 + LABEL_PAD), cw, float(width or 0.0))
    h = max(side, 2 * (config.radial_radius + bh / 2.0 + LABEL_PAD), ch, float(height or 0.0))
    return w, h


def _component_sizes(first: str, second: str, font_size: float,
                     config: LayoutConfig) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    return (
        fitted_size(first, COMPONENT_W, COMPONENT_H, font_size, config),
        fitted_size(second, COMPONENT_W, COMPONENT_H, font_size, config),
    )


def diagram_footprint(width: Optional[float] = None, height: Optional[float] = None,
                      first: str = "", second: str = "", font_size: float = COMPONENT_FONT,
                      config: LayoutConfig = DEFAULT_CONFIG) -> Tuple[float, float]:
    (lw, lh), (rw, rh) = _component_sizes(first, second, font_size, config)
    w = max(420.0, float(width or 0.0), lw + COMPONENT_GAP + rw)
    h = max(140.0, float(height or 0.0), lh, rh)
    return w, h


def labelled_shape(kind: ElementKind, x: float, y: float, w: float, h: float, label: Optional[str],
                   style: Style, font_size: float, text_style: Optional[Style] = None,
                   config: LayoutConfig = DEFAULT_CONFIG) -> List[Element]:
    """A shape followed by a text label centred inside it.

    The shape grows to hold the label, so callers that place
    ``fitted_size(...)`` get a label that never leaves its shape.
    """
    w, h = fitted_size(label, w, h, font_size, config)
    shape = create_element(kind, x, y, w, h, style=style, config=config)
    if not label:
        return [shape]
    text_style = text_style or Style(style.stroke_color, "transparent", style.stroke_width)
    tw, th = measure_text(label, font_size, config)
    tx = x + (w - tw) / 2.0
    ty = y + (h - th) / 2.0
    text = create_element(ElementKind.TEXT, tx, ty, text=label, font_size=font_size,
                          style=text_style, config=config)
    return [shape, text]


def build_flowchart(x: float, y: float, steps: Sequence[str], title: Optional[str] = None,
                    style: Style = STEP_STYLE, config: LayoutConfig = DEFAULT_CONFIG) -> List[Element]:
    steps = list(steps) or list(DEFAULT_STEPS)
    step_w, step_h = _step_size(steps, config)
    out: List[Element] = []
    cur_y = y
    if title:
        out.append(create_element(ElementKind.TEXT, x, cur_y, text=title, font_size=TITLE_FONT,
                                  style=Style(style.stroke_color, "transparent", style.stroke_width),
                                  config=config))
        cur_y += _title_size(title, config)[1]
    prev: Optional[Element] = None
    for step in steps:
        parts = labelled_shape(ElementKind.RECTANGLE, x, cur_y, step_w, step_h, step, style, STEP_FONT,
                               config=config)
        box = parts[0]
        if prev is not None:
            out.append(smart_connector(prev, box, style=style, config=config))
        out.extend(parts)
        prev = box
        cur_y += step_h + STEP_GAP
    return out


def build_mindmap(x: float, y: float, topic: str, branches: Sequence[str], width: float, height: float,
                  config: LayoutConfig = DEFAULT_CONFIG) -> List[Element]:
    """Central ellipse with branches evenly spaced on a ring; (x, y) is the footprint origin."""
    branches = list(branches) or list(DEFAULT_BRANCHES)
    cx, cy = x + width / 2.0, y + height / 2.0
    cw, ch = fitted_size(topic, CENTER_W, CENTER_H, CENTER_FONT, config)
    out = labelled_shape(ElementKind.ELLIPSE, cx - cw / 2.0, cy - ch / 2.0, cw, ch,
                         topic, CENTER_STYLE, CENTER_FONT, config=config)
    step = 2 * math.pi / len(branches)
    r = config.radial_radius
    for i, label in enumerate(branches):
        bx = cx + math.cos(i * step) * r
        by = cy + math.sin(i * step) * r
        bw, bh = fitted_size(label, BRANCH_W, BRANCH_H, BRANCH_FONT, config)
        out.append(create_element(ElementKind.LINE, cx, cy, end=(bx, by), style=BRANCH_STYLE, config=config))
        out.extend(labelled_shape(ElementKind.RECTANGLE, bx - bw / 2.0, by - bh / 2.0,
                                  bw, bh, label, BRANCH_STYLE, BRANCH_FONT,
                                  text_style=BRANCH_TEXT_STYLE, config=config))
    return out


def build_component_pair(x: float, y: float, first: str, second: str, style: Style,
                         font_size: float = COMPONENT_FONT, config: LayoutConfig = DEFAULT_CONFIG) -> List[Element]:
    (lw, lh), (rw, rh) = _component_sizes(first, second, font_size, config)
    left = labelled_shape(ElementKind.RECTANGLE, x, y, lw, lh, first,
                          Style(style.stroke_color, "#e3f2fd", style.stroke_width), font_size, config=config)
    right = labelled_shape(ElementKind.RECTANGLE, x + lw + COMPONENT_GAP, y, rw, rh, second,
                           Style(style.stroke_color, "#fff3e0", style.stroke_width), font_size, config=config)
    arrow = smart_connector(left[0], right[0], style=style, config=config)
    return left + [arrow] + right


def entry_node(elements: Sequence[Element]) -> Optional[Element]:
    for kind in (ElementKind.ELLIPSE, ElementKind.RECTANGLE):
        for el in elements:
            if el.kind is kind:
                return el
    return elements[0] if elements else None
