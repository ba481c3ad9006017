"""
Terminal API - Modular Blueprint Structure

Each module serves one group of derived views over the terminal's orders.
"""

from flask import Blueprint

api_bp = Blueprint("api", __name__)

from .kitchen import kitchen_bp  # noqa: E402
from .orders import orders_bp  # noqa: E402
from .sales import sales_bp  # noqa: E402
from .sync import sync_bp  # noqa: E402

api_bp.register_blueprint(orders_bp)
api_bp.register_blueprint(kitchen_bp)
api_bp.register_blueprint(sales_bp)
api_bp.register_blueprint(sync_bp)

__all__ = ["api_bp"]
