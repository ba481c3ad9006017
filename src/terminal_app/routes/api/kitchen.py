"""
Kitchen API - queue depth and load.
"""

from flask import Blueprint, jsonify

from terminal_app.extensions import current_terminal
from terminal_app.serializers import success_response

kitchen_bp = Blueprint("kitchen", __name__)


@kitchen_bp.get("/kitchen/status")
def get_kitchen_status():
    return jsonify(success_response(current_terminal().kitchen_status().to_dict()))


@kitchen_bp.get("/kitchen/queue")
def get_kitchen_queue():
    return jsonify(success_response(current_terminal().queue_stats().to_dict()))
