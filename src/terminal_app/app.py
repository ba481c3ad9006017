"""
Factory for the terminal API service.

Serves derived dashboard views (sections, totals, kitchen load, today's sales,
sync status) of a single terminal under /api.
"""

from __future__ import annotations

import os

from flask import Flask, jsonify
from flask_cors import CORS

from orderline.config import AppConfig, load_config
from orderline.logging_config import configure_logging
from orderline.terminal import Terminal
from terminal_app.error_handlers import register_error_handlers
from terminal_app.extensions import TERMINAL_EXTENSION, init_terminal
from terminal_app.routes.api import api_bp


def create_app(terminal: Terminal | None = None, config: AppConfig | None = None) -> Flask:
    """
    Build the Flask app around `terminal`.

    When no terminal is given one is created from `config` (or the
    environment) and started; its lifecycle is then owned by the caller of
    `main`.
    """
    config = config or (terminal.config if terminal else load_config("orderline-terminal"))
    configure_logging(config.app_name, config.log_level)

    app = Flask(__name__)
    app.config["APP_NAME"] = config.app_name
    app.config["DEBUG_MODE"] = config.debug_mode
    app.config["DEBUG"] = config.debug_mode

    if terminal is None:
        terminal = Terminal(config).start()
    init_terminal(app, terminal)

    app.register_blueprint(api_bp, url_prefix="/api")
    register_error_handlers(app)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "service": config.app_name, "terminal": config.terminal_id}), 200

    return app


def main() -> None:
    app = create_app()
    terminal = app.extensions[TERMINAL_EXTENSION]
    try:
        app.run(host="0.0.0.0", port=int(os.getenv("PORT", "6090")), debug=False)
    finally:
        terminal.stop()
