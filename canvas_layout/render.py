from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from .config import DEFAULT_CONFIG, OUT_PREVIEW_PNG, LayoutConfig
from .elements import Element, ElementKind, PathElement, TextElement


def hex_to_bgr(color: str) -> Optional[Tuple[int, int, int]]:
    if not color or not color.startswith("#") or len(color) != 7:
        return None
    r, g, b = int(color[1:3], 16), int(color[3:5], 16), int(color[5:7], 16)
    return (b, g, r)


def _canvas_size(elements: Sequence[Element], config: LayoutConfig) -> Tuple[int, int]:
    # the extend fallback may leave the nominal canvas
    w = max([config.canvas_width] + [el.right + config.canvas_margin for el in elements])
    h = max([config.canvas_height] + [el.bottom + config.canvas_margin for el in elements])
    return int(w), int(h)


def render_preview(elements: Sequence[Element], config: LayoutConfig = DEFAULT_CONFIG) -> np.ndarray:
    """Rasterize a snapshot with cv2 at ``config.draw_scale``."""
    s = config.draw_scale
    w, h = _canvas_size(elements, config)
    img = np.full((max(1, int(h * s)), max(1, int(w * s)), 3), 255, dtype=np.uint8)

    grid_color = (235, 235, 235)
    for col in range(1, int(config.grid_cols)):
        x = int(col * config.canvas_width / config.grid_cols * s)
        cv2.line(img, (x, 0), (x, int(config.canvas_height * s)), grid_color, 1)
    for row in range(1, int(config.grid_rows)):
        y = int(row * config.canvas_height / config.grid_rows * s)
        cv2.line(img, (0, y), (int(config.canvas_width * s), y), grid_color, 1)

    for el in elements:
        stroke = hex_to_bgr(el.style.stroke_color) or (0, 0, 0)
        fill = hex_to_bgr(el.style.background_color)
        thickness = max(1, int(round(el.style.stroke_width * s)))
        x0, y0 = int(el.x * s), int(el.y * s)
        x1, y1 = int(el.right * s), int(el.bottom * s)

        if el.kind is ElementKind.RECTANGLE:
            if fill is not None:
                cv2.rectangle(img, (x0, y0), (x1, y1), fill, -1)
            cv2.rectangle(img, (x0, y0), (x1, y1), stroke, thickness, cv2.LINE_AA)
        elif el.kind is ElementKind.ELLIPSE:
            center = ((x0 + x1) // 2, (y0 + y1) // 2)
            axes = (max(1, (x1 - x0) // 2), max(1, (y1 - y0) // 2))
            if fill is not None:
                cv2.ellipse(img, center, axes, 0, 0, 360, fill, -1)
            cv2.ellipse(img, center, axes, 0, 0, 360, stroke, thickness, cv2.LINE_AA)
        elif el.kind is ElementKind.DIAMOND:
            cx, cy = (x0 + x1) // 2, (y0 + y1) // 2
            pts = np.array([[cx, y0], [x1, cy], [cx, y1], [x0, cy]], dtype=np.int32)
            if fill is not None:
                cv2.fillPoly(img, [pts], fill)
            cv2.polylines(img, [pts], True, stroke, thickness, cv2.LINE_AA)
        elif isinstance(el, PathElement):
            pts_scaled = np.array([[(el.x + dx) * s, (el.y + dy) * s] for dx, dy in el.points], dtype=np.int32)
            if el.kind is ElementKind.ARROW:
                (sx, sy), (ex, ey) = pts_scaled[-2], pts_scaled[-1]
                cv2.arrowedLine(img, (int(sx), int(sy)), (int(ex), int(ey)), stroke, thickness, cv2.LINE_AA,
                                tipLength=0.1)
                if len(pts_scaled) > 2:
                    cv2.polylines(img, [pts_scaled[:-1]], False, stroke, thickness, cv2.LINE_AA)
            else:
                cv2.polylines(img, [pts_scaled], False, stroke, thickness, cv2.LINE_AA)
        elif isinstance(el, TextElement):
            font_scale = el.font_size * s / 30.0
            line_h = el.font_size * config.line_height_ratio * s
            for i, line in enumerate(el.text.split("\n")):
                org = (x0, int(y0 + (i + 1) * line_h))
                cv2.putText(img, line, org, cv2.FONT_HERSHEY_SIMPLEX, font_scale, stroke, 1, cv2.LINE_AA)
    return img


def encode_png(elements: Sequence[Element], config: LayoutConfig = DEFAULT_CONFIG) -> bytes:
    ok, buf = cv2.imencode(".png", render_preview(elements, config))
    if not ok:
        raise RuntimeError("cv2 failed to encode preview")
    return buf.tobytes()


def write_preview_png(elements: Sequence[Element], out_path: Path = OUT_PREVIEW_PNG,
                      config: LayoutConfig = DEFAULT_CONFIG) -> Path:
    cv2.imwrite(str(out_path), render_preview(elements, config))
    return out_path
