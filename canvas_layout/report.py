from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import networkx as nx

from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import Element, PathElement, label_owner
from .occupancy import Box, OccupancyIndex, RegionGrid
from .patterns import detect_pattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Opportunity:
    from_index: int
    to_index: int
    axis: str
    distance: float


@dataclass
class CanvasReport:
    grid: List[List[int]]
    connections: List[Tuple[int, int]]
    empty_areas: List[Tuple[float, float]]
    opportunities: List[Opportunity]
    element_count: int = 0
    shape_count: int = 0
    connector_count: int = 0
    flow: str = "horizontal"
    clusters: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "elements": self.element_count,
                "shapes": self.shape_count,
                "connectors": self.connector_count,
                "flow": self.flow,
                "clusters": self.clusters,
            },
            "grid": [list(row) for row in self.grid],
            "connections": [{"from": a, "to": b} for a, b in self.connections],
            "empty_areas": [{"x": x, "y": y} for x, y in self.empty_areas],
            "opportunities": [
                {"from_index": o.from_index, "to_index": o.to_index, "axis": o.axis, "distance": o.distance}
                for o in self.opportunities
            ],
        }

    def to_text(self) -> str:
        lines = [
            f"Canvas: {self.element_count} elements "
            f"({self.shape_count} shapes, {self.connector_count} connectors), "
            f"flow {self.flow}, {self.clusters} cluster(s)",
            "Region occupancy:",
        ]
        for row in self.grid:
            lines.append("  " + " ".join(f"{n:2d}" for n in row))
        if self.connections:
            lines.append("Connections:")
            lines.extend(f"  {a} -> {b}" for a, b in self.connections)
        else:
            lines.append("Connections: none")
        lines.append("Empty areas:")
        lines.extend(f"  ({x:.0f}, {y:.0f})" for x, y in self.empty_areas)
        if self.opportunities:
            lines.append("Connection opportunities:")
            lines.extend(
                f"  connect_elements from_index={o.from_index} to_index={o.to_index} "
                f"({o.axis}, {o.distance:.0f}px)"
                for o in self.opportunities
            )
        return "\n".join(lines)


def _nearest_node(elements: Sequence[Element], boxes: Sequence[Box], x: float, y: float,
                  limit: float) -> Optional[int]:
    best, best_d = None, None
    for i, el in enumerate(elements):
        if el.is_connector:
            continue
        d = boxes[i].distance_to_point(x, y)
        if d <= limit and (best_d is None or d < best_d):
            best, best_d = i, d
    return best


def infer_connections(elements: Sequence[Element], config: LayoutConfig = DEFAULT_CONFIG) -> List[Tuple[int, int]]:
    """Map each connector to the pair of nodes nearest its endpoints."""
    boxes = [Box.of(el) for el in elements]
    pairs: List[Tuple[int, int]] = []
    for el in elements:
        if not el.is_connector or not isinstance(el, PathElement):
            continue
        a = _nearest_node(elements, boxes, *el.start, limit=config.proximity)
        b = _nearest_node(elements, boxes, *el.end, limit=config.proximity)
        if a is None or b is None or a == b:
            continue
        pairs.append((a, b))
    return pairs


def empty_areas(index: OccupancyIndex, config: LayoutConfig = DEFAULT_CONFIG) -> List[Tuple[float, float]]:
    grid = RegionGrid(config)
    counts = grid.counts(index)
    free = [(r.box.left, r.box.top) for r, n in zip(grid, counts) if n == 0]
    if free:
        return free
    last = grid.regions[max(i for i, n in enumerate(counts) if n)]
    return [(last.box.right + config.coarse_padding, last.box.top)]


def connection_opportunities(
    elements: Sequence[Element],
    connected: Sequence[Tuple[int, int]],
    config: LayoutConfig = DEFAULT_CONFIG,
) -> List[Opportunity]:
    linked = {frozenset(p) for p in connected}
    shapes = [i for i, el in enumerate(elements) if el.is_shape]
    out: List[Opportunity] = []
    for pos, i in enumerate(shapes):
        for j in shapes[pos + 1:]:
            if frozenset((i, j)) in linked:
                continue
            (ax, ay), (bx, by) = elements[i].center, elements[j].center
            dx, dy = abs(bx - ax), abs(by - ay)
            if dy < config.align_tolerance and config.opportunity_min <= dx <= config.opportunity_max:
                out.append(Opportunity(i, j, "horizontal", dx))
            elif dx < config.align_tolerance and config.opportunity_min <= dy <= config.opportunity_max:
                out.append(Opportunity(i, j, "vertical", dy))
            if len(out) >= config.max_opportunities:
                return out
    return out


def count_clusters(elements: Sequence[Element], connections: Sequence[Tuple[int, int]]) -> int:
    # labels drawn inside a shape belong to it and are not nodes of their own
    g = nx.Graph()
    g.add_nodes_from(
        i for i, el in enumerate(elements)
        if not el.is_connector and label_owner(elements, el) is el
    )
    g.add_edges_from((a, b) for a, b in connections if a in g and b in g)
    return nx.number_connected_components(g) if g.number_of_nodes() else 0


def build_report(elements: Sequence[Element], config: LayoutConfig = DEFAULT_CONFIG) -> CanvasReport:
    elements = list(elements)
    index = OccupancyIndex(elements)
    grid = RegionGrid(config)
    connections = infer_connections(elements, config)
    areas = empty_areas(index, config)
    report = CanvasReport(
        grid=grid.count_matrix(index),
        connections=connections,
        empty_areas=areas,
        opportunities=connection_opportunities(elements, connections, config),
        element_count=len(elements),
        shape_count=sum(1 for el in elements if el.is_shape),
        connector_count=sum(1 for el in elements if el.is_connector),
        flow=detect_pattern(elements, config).direction.value,
        clusters=count_clusters(elements, connections),
    )
    logger.debug("report: %d elements, %d connections, %d opportunities",
                 report.element_count, len(connections), len(report.opportunities))
    return report
