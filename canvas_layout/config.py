from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Tuple

OUT_PREVIEW_PNG = Path(os.getenv("OUT_PREVIEW_PNG", "canvas_preview.png"))

CANVAS_WIDTH = 1400
CANVAS_HEIGHT = 1000
CANVAS_MARGIN = 50
START_X = 150
START_Y = 150

DEFAULT_SIZE = 100
FINE_PADDING = 20
COARSE_PADDING = 60
RELATIVE_GAP = 100
FOCUS_GAP = 80
FLOW_GAP = 60
ROW_TOLERANCE = 50
JITTER = 10.0

GRID_COLS = 5
GRID_ROWS = 5
REGION_INSET = 20
SCAN_STEP = 30

FLOW_RATIO = 1.5
RADIAL_BAND = 0.3
RADIAL_SHARE = 0.6
RADIAL_RADIUS = 200

PROXIMITY = 100
ALIGN_TOLERANCE = 50
OPPORTUNITY_MIN = 100
OPPORTUNITY_MAX = 500
MAX_OPPORTUNITIES = 4

FONT_SIZE = 20
GLYPH_WIDTH_RATIO = 0.65
LINE_HEIGHT_RATIO = 1.3
TEXT_PAD_RATIO = 0.4
TEXT_MIN_WIDTH = 80
TEXT_MAX_WIDTH = 400

STROKE_COLOR = "#1971c2"
BACKGROUND_COLOR = "transparent"
STROKE_WIDTH = 2

DRAW_SCALE = 0.5


@dataclass(frozen=True)
class LayoutConfig:
    canvas_width: float = CANVAS_WIDTH
    canvas_height: float = CANVAS_HEIGHT
    canvas_margin: float = CANVAS_MARGIN
    start_x: float = START_X
    start_y: float = START_Y

    default_size: float = DEFAULT_SIZE
    fine_padding: float = FINE_PADDING        # overlap margin for near placements
    coarse_padding: float = COARSE_PADDING    # overlap margin for region search
    relative_gap: float = RELATIVE_GAP
    focus_gap: float = FOCUS_GAP
    flow_gap: float = FLOW_GAP
    row_tolerance: float = ROW_TOLERANCE
    jitter: float = JITTER

    grid_cols: int = GRID_COLS
    grid_rows: int = GRID_ROWS
    region_inset: float = REGION_INSET
    scan_step: float = SCAN_STEP

    flow_ratio: float = FLOW_RATIO
    radial_band: float = RADIAL_BAND
    radial_share: float = RADIAL_SHARE
    radial_radius: float = RADIAL_RADIUS

    proximity: float = PROXIMITY
    align_tolerance: float = ALIGN_TOLERANCE
    opportunity_min: float = OPPORTUNITY_MIN
    opportunity_max: float = OPPORTUNITY_MAX
    max_opportunities: int = MAX_OPPORTUNITIES

    font_size: float = FONT_SIZE
    glyph_width_ratio: float = GLYPH_WIDTH_RATIO
    line_height_ratio: float = LINE_HEIGHT_RATIO
    text_pad_ratio: float = TEXT_PAD_RATIO
    text_min_width: float = TEXT_MIN_WIDTH
    text_max_width: float = TEXT_MAX_WIDTH

    stroke_color: str = STROKE_COLOR
    background_color: str = BACKGROUND_COLOR
    stroke_width: float = STROKE_WIDTH

    draw_scale: float = DRAW_SCALE

    @property
    def start_point(self) -> Tuple[float, float]:
        return (self.start_x, self.start_y)

    @property
    def canvas(self) -> Tuple[float, float]:
        return (self.canvas_width, self.canvas_height)

    @classmethod
    def from_env(cls, prefix: str = "") -> "LayoutConfig":
        """Build a config where any field can be overridden by an env var.

        The variable name is the upper-cased field name, optionally prefixed,
        e.g. ``CANVAS_WIDTH=1800`` or ``GRID_COLS=4``.
        """
        overrides = {}
        for f in fields(cls):
            key = f"{prefix}{f.name.upper()}"
            if key not in os.environ:
                continue
            raw = os.environ[key]
            default = f.default
            if isinstance(default, bool):
                overrides[f.name] = raw.strip().lower() in ("1", "true", "yes")
            elif isinstance(default, int):
                overrides[f.name] = int(float(raw))
            elif isinstance(default, float):
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)


DEFAULT_CONFIG = LayoutConfig()
