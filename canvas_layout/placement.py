from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import Element, TextElement, label_owner
from .occupancy import Box, OccupancyIndex, RegionGrid
from .patterns import FlowDirection, PatternAnalysis, detect_pattern

logger = logging.getLogger(__name__)

DIRECTIONS = ("right", "below", "left", "above", "diagonal")


class Strategy(str, Enum):
    EXPLICIT = "explicit"
    EMPTY_CANVAS = "empty_canvas"
    RELATIVE = "relative"
    FOCUS = "focus"
    FLOW = "flow"
    REGION = "region"
    LEAST_DENSE = "least_dense"
    EXTEND = "extend"


@dataclass(frozen=True)
class PlacementHints:
    position: Optional[Tuple[float, float]] = None
    relative_to: Optional[str] = None
    direction: Optional[str] = None
    context_text: Optional[str] = None


@dataclass(frozen=True)
class Placement:
    x: float
    y: float
    strategy: Strategy

    @property
    def point(self) -> Tuple[float, float]:
        return (self.x, self.y)


def _tokens(text: str) -> List[str]:
    return [t for t in re.split(r"\s+", text.lower()) if len(t) > 2]


def find_anchor(elements: Sequence[Element], ref: str) -> Optional[Element]:
    """Resolve a reference by id, then exact label, then label containing it."""
    if not ref:
        return None
    for el in elements:
        if el.id == ref:
            return el
    texts = [el for el in elements if isinstance(el, TextElement)]
    for el in texts:
        if el.text == ref:
            return label_owner(elements, el)
    for el in texts:
        if ref in el.text:
            return label_owner(elements, el)
    return None


def find_focus_element(elements: Sequence[Element], context: Optional[str]) -> Optional[Element]:
    if not context or not elements:
        return None
    words = _tokens(context)
    for el in elements:
        if not isinstance(el, TextElement) or not el.text:
            continue
        text_words = _tokens(el.text)
        if any(w in tw or tw in w for w in words for tw in text_words):
            return label_owner(elements, el)
    return last_node(elements)


def last_node(elements: Sequence[Element]) -> Optional[Element]:
    for el in reversed(elements):
        if not el.is_connector:
            return label_owner(elements, el)
    return None


class PlacementSolver:
    """Resolve a non-overlapping origin for a new element of a given size.

    Strategies are tried in a fixed order and the first one that yields an
    in-bounds, non-overlapping spot wins. The last strategy is unconditional
    so ``place`` always returns.
    """

    def __init__(self, config: LayoutConfig = DEFAULT_CONFIG, rng: Optional[np.random.Generator] = None):
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng()

    # -------- helpers ----------
    def _jitter(self) -> float:
        if self.config.jitter <= 0:
            return 0.0
        return float(self.rng.uniform(-self.config.jitter, self.config.jitter))

    def _in_canvas(self, x: float, y: float, w: float, h: float) -> bool:
        c = self.config
        return (
            x >= c.canvas_margin
            and y >= c.canvas_margin
            and x + w <= c.canvas_width - c.canvas_margin
            and y + h <= c.canvas_height - c.canvas_margin
        )

    def _clamp(self, x: float, y: float, w: float, h: float) -> Tuple[float, float]:
        c = self.config
        max_x = max(c.canvas_margin, c.canvas_width - c.canvas_margin - w)
        max_y = max(c.canvas_margin, c.canvas_height - c.canvas_margin - h)
        return min(max(x, c.canvas_margin), max_x), min(max(y, c.canvas_margin), max_y)

    def _free(self, index: OccupancyIndex, x: float, y: float, w: float, h: float, padding: float) -> bool:
        return self._in_canvas(x, y, w, h) and not index.overlaps(Box.from_xywh(x, y, w, h), padding)

    # -------- strategies ----------
    def relative_position(self, anchor: Element, direction: str, w: float, h: float) -> Tuple[float, float]:
        gap = self.config.relative_gap
        direction = (direction or "right").lower()
        if direction == "below":
            x, y = anchor.x + self._jitter(), anchor.bottom + gap
        elif direction == "left":
            x, y = anchor.x - w - gap, anchor.y + self._jitter()
        elif direction == "above":
            x, y = anchor.x + self._jitter(), anchor.y - h - gap
        elif direction == "diagonal":
            x, y = anchor.right + gap / 2.0, anchor.bottom + gap / 2.0
        else:
            x, y = anchor.right + gap, anchor.y + self._jitter()
        return self._clamp(x, y, w, h)

    def _try_relative(self, elements, index, w, h, hints: PlacementHints) -> Optional[Tuple[float, float]]:
        if not hints.relative_to:
            return None
        anchor = find_anchor(elements, hints.relative_to)
        if anchor is None:
            logger.info("relative anchor %r not found, falling through", hints.relative_to)
            return None
        x, y = self.relative_position(anchor, hints.direction or "right", w, h)
        if index.overlaps(Box.from_xywh(x, y, w, h), self.config.fine_padding):
            logger.debug("relative spot (%.1f, %.1f) is taken", x, y)
            return None
        return x, y

    def focus_candidates(self, focus: Element, w: float, h: float) -> Iterator[Tuple[float, float]]:
        gap = self.config.focus_gap
        yield focus.right + gap, focus.y
        yield focus.x, focus.bottom + gap
        yield focus.x - w - gap, focus.y
        yield focus.x, focus.y - h - gap
        yield focus.right + gap, focus.bottom + gap
        yield focus.x - w - gap, focus.bottom + gap

    def _try_focus(self, elements, index, w, h, hints: PlacementHints) -> Optional[Tuple[float, float]]:
        focus = find_focus_element(elements, hints.context_text)
        if focus is None:
            return None
        for x, y in self.focus_candidates(focus, w, h):
            if self._free(index, x, y, w, h, self.config.fine_padding):
                return x, y
        logger.debug("no free spot around focus element %s", focus.id)
        return None

    def _row_of(self, elements: Sequence[Element], last: Element) -> List[Element]:
        tol = self.config.row_tolerance
        return [el for el in elements if not el.is_connector and abs(el.y - last.y) < tol]

    def _flow_horizontal(self, elements, index, last: Element, w, h) -> Optional[Tuple[float, float]]:
        c = self.config
        pad = c.fine_padding
        x, y = last.right + c.flow_gap, last.y
        if x + w <= c.canvas_width - c.canvas_margin and not index.overlaps(Box.from_xywh(x, y, w, h), pad):
            return x, y
        row = self._row_of(elements, last)
        x, y = c.start_x, max(el.bottom for el in row) + c.flow_gap
        if self._free(index, x, y, w, h, pad):
            return x, y
        return None

    def _flow_vertical(self, elements, index, last: Element, w, h) -> Optional[Tuple[float, float]]:
        c = self.config
        pad = c.fine_padding
        x, y = last.x, last.bottom + c.flow_gap
        if y + h <= c.canvas_height - c.canvas_margin and not index.overlaps(Box.from_xywh(x, y, w, h), pad):
            return x, y
        nodes = [el for el in elements if not el.is_connector]
        x, y = max(el.right for el in nodes) + c.flow_gap, c.start_y
        if self._free(index, x, y, w, h, pad):
            return x, y
        return None

    def radial_position(self, elements: Sequence[Element], centroid: Tuple[float, float], w: float, h: float) -> Tuple[float, float]:
        """Centre of the widest angular gap on the ring around the centroid."""
        cx, cy = centroid
        nodes = [el for el in elements if not el.is_connector]
        angles = sorted(
            math.atan2(el.center[1] - cy, el.center[0] - cx)
            for el in nodes
            if math.hypot(el.center[0] - cx, el.center[1] - cy) > 1e-6
        )
        best = 0.0
        if angles:
            max_gap = -1.0
            for i, a in enumerate(angles):
                nxt = angles[(i + 1) % len(angles)]
                gap = (nxt - a) % (2 * math.pi) or 2 * math.pi
                if gap > max_gap:
                    max_gap = gap
                    best = a + gap / 2.0
        r = self.config.radial_radius
        return cx + math.cos(best) * r - w / 2.0, cy + math.sin(best) * r - h / 2.0

    def _try_flow(self, elements, index, w, h, pattern: PatternAnalysis) -> Optional[Tuple[float, float]]:
        last = last_node(elements)
        if last is None:
            return None
        if pattern.direction is FlowDirection.RADIAL and pattern.centroid is not None:
            x, y = self.radial_position(elements, pattern.centroid, w, h)
            if self._free(index, x, y, w, h, self.config.fine_padding):
                return x, y
        if pattern.direction is FlowDirection.VERTICAL:
            return self._flow_vertical(elements, index, last, w, h)
        return self._flow_horizontal(elements, index, last, w, h)

    def _try_region(self, index, w, h) -> Optional[Tuple[float, float]]:
        grid = RegionGrid(self.config)
        # edge regions need at least the canvas margin to pass the bounds check
        inset = max(self.config.region_inset, self.config.canvas_margin)
        for region, count in zip(grid, grid.counts(index)):
            if count:
                continue
            x, y = region.box.left + inset, region.box.top + inset
            if self._free(index, x, y, w, h, self.config.coarse_padding):
                logger.debug("empty region [%d][%d]", region.row, region.col)
                return x, y
        return None

    def _try_least_dense(self, index, w, h) -> Optional[Tuple[float, float]]:
        c = self.config
        grid = RegionGrid(c)
        ranked = sorted(zip(grid.counts(index), range(len(grid.regions))))
        for count, idx in ranked:
            rb = grid.regions[idx].box
            y = rb.top + c.region_inset
            while y + h <= rb.bottom - c.region_inset:
                x = rb.left + c.region_inset
                while x + w <= rb.right - c.region_inset:
                    if self._free(index, x, y, w, h, c.coarse_padding):
                        logger.debug("scan hit in region %d (count=%d)", idx, count)
                        return x, y
                    x += c.scan_step
                y += c.scan_step
        return None

    def extend_position(self, index: OccupancyIndex) -> Tuple[float, float]:
        extent = index.extent()
        if extent is None:
            return self.config.start_point
        return extent.right + self.config.coarse_padding, self.config.start_y

    # -------- main ----------
    def place(
        self,
        elements: Sequence[Element],
        width: float,
        height: float,
        hints: Optional[PlacementHints] = None,
        pattern: Optional[PatternAnalysis] = None,
    ) -> Placement:
        hints = hints or PlacementHints()
        w, h = float(width), float(height)

        if hints.position is not None:
            x, y = hints.position
            return Placement(float(x), float(y), Strategy.EXPLICIT)

        if not elements:
            x, y = self.config.start_point
            return Placement(float(x), float(y), Strategy.EMPTY_CANVAS)

        index = OccupancyIndex(elements)
        pattern = pattern or detect_pattern(elements, self.config)

        chain = (
            (Strategy.RELATIVE, lambda: self._try_relative(elements, index, w, h, hints)),
            (Strategy.FOCUS, lambda: self._try_focus(elements, index, w, h, hints)),
            (Strategy.FLOW, lambda: self._try_flow(elements, index, w, h, pattern)),
            (Strategy.REGION, lambda: self._try_region(index, w, h)),
            (Strategy.LEAST_DENSE, lambda: self._try_least_dense(index, w, h)),
        )
        for strategy, attempt in chain:
            spot = attempt()
            if spot is not None:
                logger.debug("placed %.0fx%.0f via %s at (%.1f, %.1f)", w, h, strategy.value, *spot)
                return Placement(float(spot[0]), float(spot[1]), strategy)

        x, y = self.extend_position(index)
        logger.info("canvas full, extending to the right at (%.1f, %.1f)", x, y)
        return Placement(float(x), float(y), Strategy.EXTEND)
