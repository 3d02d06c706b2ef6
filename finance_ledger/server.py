"""Static file server for a pre-built front-end.

Files under the asset directory are served as-is; any other GET returns
``index.html`` so client-side routes resolve. Other methods are left
unhandled.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from flask import Flask, send_from_directory

from .config import DEFAULT_PORT, AppConfig
from .logging_setup import configure_logging, get_logger

logger = get_logger(__name__)

INDEX_DOCUMENT = "index.html"


def create_static_app(dist_dir: str | Path) -> Flask:
    dist = Path(dist_dir).resolve()
    app = Flask(__name__, static_folder=None)
    app.config["DIST_DIR"] = dist

    @app.route("/", defaults={"path": ""}, methods=["GET"])
    @app.route("/<path:path>", methods=["GET"])
    def serve(path: str):
        if path and (dist / path).is_file():
            return send_from_directory(dist, path)
        return send_from_directory(dist, INDEX_DOCUMENT)

    return app


def resolve_port(value: Optional[str] = None) -> int:
    raw = value if value is not None else os.environ.get("PORT")
    try:
        return int(raw) if raw else DEFAULT_PORT
    except ValueError:
        logger.warning("Ignoring invalid port %r; using %d", raw, DEFAULT_PORT)
        return DEFAULT_PORT


def main(dist_dir: Optional[str | Path] = None, port: Optional[int] = None, log_level: Optional[str] = None) -> int:
    cfg = AppConfig.load()
    configure_logging(log_level, cfg.log_level)
    dist = Path(dist_dir) if dist_dir else cfg.static_dir
    port = port or resolve_port()
    app = create_static_app(dist)
    logger.info("Server listening on port %d. Serving %s", port, dist)
    app.run(host="0.0.0.0", port=port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
