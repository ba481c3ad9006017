"""
Sales API - totals for the current business day.
"""

from flask import Blueprint, jsonify, request

from terminal_app.extensions import current_terminal
from terminal_app.serializers import success_response

sales_bp = Blueprint("sales", __name__)


@sales_bp.get("/sales/today")
def get_sales_today():
    terminal = current_terminal()
    now = request.args.get("now", type=int)
    summary = terminal.sales_today(now)
    data = summary.to_dict()
    data["businessDay"] = terminal.bucketer.bucket(now).to_dict()
    return jsonify(success_response(data))
