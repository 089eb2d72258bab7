from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, List, Optional

from flask import Flask, Response, jsonify, request

from canvas_layout.config import LayoutConfig
from canvas_layout.elements import LayoutError, coerce_elements
from canvas_layout.engine import CanvasSession, PlacementEngine
from canvas_layout.render import encode_png

logger = logging.getLogger(__name__)


class SessionStore:
    """Canvas sessions keyed by id; each session owns its own engine."""

    def __init__(self, config: Optional[LayoutConfig] = None, seed: Optional[int] = None):
        self.config = config or LayoutConfig.from_env()
        self.seed = seed
        self._sessions: Dict[str, CanvasSession] = {}
        self._lock = threading.Lock()

    def get(self, sid: str) -> CanvasSession:
        with self._lock:
            session = self._sessions.get(sid)
            if session is None:
                engine = PlacementEngine(self.config, seed=self.seed)
                session = CanvasSession(sid, engine)
                self._sessions[sid] = session
                logger.info("new session %s", sid)
            return session

    def drop(self, sid: str) -> bool:
        with self._lock:
            return self._sessions.pop(sid, None) is not None

    def ids(self) -> List[str]:
        with self._lock:
            return sorted(self._sessions)


def create_app(store: Optional[SessionStore] = None, config: Optional[LayoutConfig] = None) -> Flask:
    app = Flask(__name__, static_folder=None)
    store = store or SessionStore(config)
    app.config["SESSION_STORE"] = store

    @app.errorhandler(LayoutError)
    def handle_layout_error(exc: LayoutError):
        logger.warning("rejected request: %s", exc)
        return jsonify({"ok": False, "error": str(exc)}), 400

    @app.errorhandler(ValueError)
    def handle_value_error(exc: ValueError):
        return jsonify({"ok": False, "error": str(exc)}), 400

    @app.get("/api/sessions")
    def api_sessions():
        return jsonify({"ok": True, "sessions": store.ids()})

    @app.post("/api/sessions/<sid>/draw")
    def api_draw(sid: str):
        payload: Dict[str, Any] = request.get_json(silent=True) or {}
        session = store.get(sid)
        result = session.draw(payload)
        data = result.to_dict()
        data["ok"] = result.success
        data["total"] = len(session)
        return jsonify(data)

    @app.get("/api/sessions/<sid>/elements")
    def api_elements(sid: str):
        session = store.get(sid)
        return jsonify({"ok": True, "elements": session.to_dicts()})

    @app.get("/api/sessions/<sid>/report")
    def api_report(sid: str):
        report = store.get(sid).report()
        if request.args.get("format") == "text":
            return Response(report.to_text(), mimetype="text/plain")
        return jsonify({"ok": True, "report": report.to_dict()})

    @app.get("/api/sessions/<sid>/preview.png")
    def api_preview(sid: str):
        session = store.get(sid)
        return Response(encode_png(session.elements, store.config), mimetype="image/png")

    @app.delete("/api/sessions/<sid>")
    def api_clear(sid: str):
        existed = store.drop(sid)
        return jsonify({"ok": True, "existed": existed})

    @app.post("/api/place")
    def api_place():
        payload: Dict[str, Any] = request.get_json(silent=True) or {}
        engine = PlacementEngine(store.config, seed=payload.get("seed", store.seed))
        elements = coerce_elements(payload.get("elements") or [], store.config)
        result = engine.handle(elements, payload.get("request") or {})
        data = result.to_dict()
        data["ok"] = result.success
        return jsonify(data)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    create_app().run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), debug=False)
