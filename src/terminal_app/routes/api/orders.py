"""
Orders API - dashboard sections and per-order payment totals.
"""

from flask import Blueprint, jsonify, request

from terminal_app.extensions import current_terminal
from terminal_app.serializers import serialize_order, success_response

orders_bp = Blueprint("orders", __name__)


@orders_bp.get("/orders/sections")
def get_sections():
    """
    Active, served-not-paid and completed orders.

    `?now=<epoch ms>` evaluates the business day at another instant.
    """
    now = request.args.get("now", type=int)
    sections = current_terminal().sections(now)
    response = jsonify(
        success_response(
            {
                "active": [serialize_order(o) for o in sections.active],
                "servedNotPaid": [serialize_order(o) for o in sections.served_not_paid],
                "completed": [serialize_order(o) for o in sections.completed],
            }
        )
    )
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response


@orders_bp.get("/orders/<order_id>/totals")
def get_order_totals(order_id: str):
    totals = current_terminal().totals(order_id)
    return jsonify(success_response(totals.to_dict()))
