"""
Sync API - online/offline state of the terminal.
"""

from flask import Blueprint, jsonify

from terminal_app.extensions import current_terminal
from terminal_app.serializers import success_response

sync_bp = Blueprint("sync", __name__)


@sync_bp.get("/sync/status")
def get_sync_status():
    terminal = current_terminal()
    data = terminal.sync.status.to_dict()
    data["unsyncedOrders"] = [order.id for order in terminal.store.unsynced()]
    return jsonify(success_response(data))
