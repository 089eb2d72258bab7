from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import Element, ElementKind, PathElement

logger = logging.getLogger(__name__)


class FlowDirection(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    MIXED = "mixed"
    RADIAL = "radial"


@dataclass(frozen=True)
class PatternAnalysis:
    direction: FlowDirection
    centroid: Optional[Tuple[float, float]] = None
    evidence: str = "default"


def _arrow_bias(elements: Sequence[Element]) -> Optional[FlowDirection]:
    horizontal = vertical = 0
    for el in elements:
        if el.kind is not ElementKind.ARROW or not isinstance(el, PathElement):
            continue
        (x0, y0), (x1, y1) = el.points[0], el.points[-1]
        dx, dy = abs(x1 - x0), abs(y1 - y0)
        if dx > dy:
            horizontal += 1
        elif dy > dx:
            vertical += 1
    if horizontal:
        return FlowDirection.HORIZONTAL
    if vertical:
        return FlowDirection.VERTICAL
    return None


def radial_centroid(elements: Sequence[Element], config: LayoutConfig = DEFAULT_CONFIG) -> Optional[Tuple[float, float]]:
    """Centroid of the node centres when they ring it at a similar distance."""
    nodes = [el for el in elements if not el.is_connector]
    if len(nodes) < 3:
        return None
    centers = np.array([el.center for el in nodes], dtype=np.float64)
    centroid = centers.mean(axis=0)
    dists = np.hypot(centers[:, 0] - centroid[0], centers[:, 1] - centroid[1])
    mean = float(dists.mean())
    if mean <= 0:
        return None
    close = int(np.count_nonzero(np.abs(dists - mean) < mean * config.radial_band))
    if close < len(nodes) * config.radial_share:
        return None
    return float(centroid[0]), float(centroid[1])


def spread_direction(elements: Sequence[Element], config: LayoutConfig = DEFAULT_CONFIG) -> FlowDirection:
    if len(elements) < 2:
        return FlowDirection.HORIZONTAL
    origins = np.array([(el.x, el.y) for el in elements], dtype=np.float64)
    x_spread, y_spread = origins.max(axis=0) - origins.min(axis=0)
    if x_spread > config.flow_ratio * y_spread:
        return FlowDirection.HORIZONTAL
    if y_spread > config.flow_ratio * x_spread:
        return FlowDirection.VERTICAL
    return FlowDirection.MIXED


def detect_pattern(elements: Sequence[Element], config: LayoutConfig = DEFAULT_CONFIG) -> PatternAnalysis:
    """Classify the arrangement of a snapshot.

    Directed arrows win over geometry; then a ring of nodes around a common
    centre reads as radial; otherwise the spread of element origins decides.
    """
    positioned: List[Element] = [el for el in elements if el.x is not None and el.y is not None]
    if len(positioned) < 2:
        return PatternAnalysis(FlowDirection.HORIZONTAL)

    bias = _arrow_bias(positioned)
    if bias is not None:
        logger.debug("flow from arrows: %s", bias.value)
        return PatternAnalysis(bias, evidence="arrows")

    centroid = radial_centroid(positioned, config)
    if centroid is not None:
        logger.debug("radial layout around (%.1f, %.1f)", *centroid)
        return PatternAnalysis(FlowDirection.RADIAL, centroid=centroid, evidence="radial")

    direction = spread_direction(positioned, config)
    return PatternAnalysis(direction, evidence="spread")
