# Overview: Flask API routes for counter sales; parses input and returns JSON responses.

# backend/dealership/routes/sales.py

from flask import Blueprint, request, jsonify, current_app

from ..services import sales_service, receipt_service
from ..services.inventory_service import InsufficientStockError, PartNotFoundError
from ..validation import ValidationError
from ..decorators import require_auth, actor_name


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
@require_auth
def create_sale_route():
    """
    Check out a cart.

    Body: {"customer_name", "bike_model", "items": [{"part_id", "quantity"}]}
    Stock for every line is deducted with the sale, or not at all.
    """
    try:
        data = request.get_json(silent=True) or {}

        sale = sales_service.complete_sale(
            data.get("customer_name"),
            data.get("bike_model"),
            data.get("items"),
            created_by=actor_name(),
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except PartNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to complete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
@require_auth
def list_sales_route():
    """Sales of the open business day."""
    sales = sales_service.list_sales()
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/<sale_id>")
@require_auth
def get_sale_route(sale_id: str):
    sale = sales_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.get("/<sale_id>/receipt")
@require_auth
def sale_receipt_route(sale_id: str):
    sale = sales_service.get_sale(sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"receipt": receipt_service.build_receipt("SALE", sale)}), 200
