from canvas_layout.config import DEFAULT_CONFIG, LayoutConfig


def test_defaults():
    assert DEFAULT_CONFIG.start_point == (150, 150)
    assert DEFAULT_CONFIG.canvas == (1400, 1000)
    assert (DEFAULT_CONFIG.fine_padding, DEFAULT_CONFIG.coarse_padding) == (20, 60)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CANVAS_WIDTH", "1800")
    monkeypatch.setenv("GRID_COLS", "4")
    monkeypatch.setenv("JITTER", "0")
    monkeypatch.setenv("STROKE_COLOR", "#000000")
    config = LayoutConfig.from_env()
    assert config.canvas_width == 1800
    assert config.grid_cols == 4
    assert config.jitter == 0.0
    assert config.stroke_color == "#000000"
    assert config.canvas_height == 1000


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("CANVAS_START_X", "300")
    monkeypatch.setenv("START_X", "999")
    assert LayoutConfig.from_env(prefix="CANVAS_").start_x == 300
