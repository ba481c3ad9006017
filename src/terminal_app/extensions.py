"""
Terminal registration on the Flask app.
"""

from flask import Flask, current_app

from orderline.terminal import Terminal

TERMINAL_EXTENSION = "orderline.terminal"


def init_terminal(app: Flask, terminal: Terminal) -> None:
    app.extensions[TERMINAL_EXTENSION] = terminal


def current_terminal() -> Terminal:
    return current_app.extensions[TERMINAL_EXTENSION]
