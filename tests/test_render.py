import cv2

from canvas_layout import composites
from canvas_layout.config import DEFAULT_CONFIG
from canvas_layout.render import hex_to_bgr, render_preview, write_preview_png
from tests.helpers import rect


def test_hex_to_bgr():
    assert hex_to_bgr("#1971c2") == (0xC2, 0x71, 0x19)
    assert hex_to_bgr("transparent") is None


def test_preview_is_scaled_canvas():
    img = render_preview([rect(150, 150)])
    assert img.shape == (500, 700, 3)
    # stroke pixels on the rectangle's left edge
    assert (img[100, 75] != 255).any()


def test_preview_grows_past_the_canvas():
    img = render_preview([rect(1500, 150)])
    assert img.shape[1] == int((1600 + DEFAULT_CONFIG.canvas_margin) * DEFAULT_CONFIG.draw_scale)


def test_write_preview_png(tmp_path):
    elements = composites.build_mindmap(0, 0, "Topic", ["a", "b"], 680, 680)
    out = write_preview_png(elements, tmp_path / "preview.png")
    img = cv2.imread(str(out))
    assert img is not None
    assert img.shape[:2] == (500, 700)
