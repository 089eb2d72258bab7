from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from shapely.geometry import Point, box as shapely_box
from shapely.strtree import STRtree

from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import Element


@dataclass(frozen=True)
class Box:
    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "Box":
        return cls(float(x), float(y), float(x + w), float(y + h))

    @classmethod
    def of(cls, el: Element) -> "Box":
        return cls.from_xywh(el.x, el.y, el.width, el.height)

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    def inflate(self, padding: float) -> "Box":
        return Box(self.left - padding, self.top - padding, self.right + padding, self.bottom + padding)

    def intersects(self, other: "Box", padding: float = 0.0) -> bool:
        # both boxes grow by padding; shared edges are not an intersection
        gap = 2.0 * padding
        return not (
            self.right + gap <= other.left
            or other.right + gap <= self.left
            or self.bottom + gap <= other.top
            or other.bottom + gap <= self.top
        )

    def contains_point(self, x: float, y: float, padding: float = 0.0) -> bool:
        return (
            self.left - padding <= x <= self.right + padding
            and self.top - padding <= y <= self.bottom + padding
        )

    def to_geometry(self):
        return shapely_box(self.left, self.top, self.right, self.bottom)

    def distance_to_point(self, x: float, y: float) -> float:
        return float(self.to_geometry().distance(Point(x, y)))


class OccupancyIndex:
    """Bounding boxes of a canvas snapshot with padded overlap queries."""

    def __init__(self, elements: Iterable[Element]):
        self.elements: List[Element] = list(elements)
        self._boxes: List[Box] = [Box.of(el) for el in self.elements]
        self._tree = STRtree([b.to_geometry() for b in self._boxes]) if self._boxes else None

    def __len__(self) -> int:
        return len(self._boxes)

    def boxes(self) -> List[Box]:
        return list(self._boxes)

    def _candidates(self, query: Box) -> Sequence[int]:
        if self._tree is None:
            return []
        return sorted(int(i) for i in self._tree.query(query.to_geometry()))

    def overlapping(self, candidate: Box, padding: float = 0.0) -> List[int]:
        # envelope lookup first, exact strict test after
        search = candidate.inflate(2.0 * padding)
        return [i for i in self._candidates(search) if candidate.intersects(self._boxes[i], padding)]

    def overlaps(self, candidate: Box, padding: float = 0.0) -> bool:
        return bool(self.overlapping(candidate, padding))

    def contains_point(self, x: float, y: float, padding: float = 0.0) -> bool:
        return any(b.contains_point(x, y, padding) for b in self._boxes)

    def count_in(self, region: Box) -> int:
        return len(self.overlapping(region, 0.0))

    def extent(self) -> Box | None:
        if not self._boxes:
            return None
        return Box(
            min(b.left for b in self._boxes),
            min(b.top for b in self._boxes),
            max(b.right for b in self._boxes),
            max(b.bottom for b in self._boxes),
        )


@dataclass(frozen=True)
class Region:
    row: int
    col: int
    box: Box


class RegionGrid:
    """Fixed partition of the canvas into equal regions, in reading order."""

    def __init__(self, config: LayoutConfig = DEFAULT_CONFIG):
        self.config = config
        self.cols = max(1, int(config.grid_cols))
        self.rows = max(1, int(config.grid_rows))
        self.cell_w = config.canvas_width / self.cols
        self.cell_h = config.canvas_height / self.rows
        self.regions: List[Region] = []
        for row in range(self.rows):
            for col in range(self.cols):
                x0 = col * self.cell_w
                y0 = row * self.cell_h
                self.regions.append(Region(row, col, Box(x0, y0, x0 + self.cell_w, y0 + self.cell_h)))

    def __iter__(self):
        return iter(self.regions)

    def counts(self, index: OccupancyIndex) -> List[int]:
        return [index.count_in(r.box) for r in self.regions]

    def count_matrix(self, index: OccupancyIndex) -> List[List[int]]:
        flat = self.counts(index)
        return [flat[r * self.cols:(r + 1) * self.cols] for r in range(self.rows)]
