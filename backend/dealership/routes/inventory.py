# Overview: Flask API routes for the parts catalog and the stock ledger.

# backend/dealership/routes/inventory.py

from flask import Blueprint, request, jsonify, current_app, send_file
import io

from ..models import Part
from ..services import inventory_service
from ..services.inventory_service import InsufficientStockError, PartNotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role, actor_name


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


PART_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"id", "name", "part_number", "category", "price", "cost_price", "min_stock", "stock"},
    required_on_create={"name", "part_number", "category", "price"},
)

PART_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "part_number", "category", "price", "cost_price", "min_stock"},
)


@inventory_bp.get("/parts")
@require_auth
def list_parts_route():
    parts = inventory_service.list_parts(
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    return jsonify({"parts": [p.to_dict() for p in parts]}), 200


@inventory_bp.get("/parts/low-stock")
@require_auth
def low_stock_route():
    parts = inventory_service.list_low_stock()
    return jsonify({"parts": [p.to_dict() for p in parts]}), 200


@inventory_bp.get("/parts/<part_id>")
@require_auth
def get_part_route(part_id: str):
    part = inventory_service.get_part(part_id)
    if part is None:
        return jsonify({"error": "Part not found"}), 404
    return jsonify({"part": part.to_dict()}), 200


@inventory_bp.post("/parts")
@require_auth
@require_role("SUPER_ADMIN")
def create_part_route():
    """
    Register a part. Opening stock is booked as a RESTOCK ledger entry.

    Requires: SUPER_ADMIN
    """
    try:
        patch = validate_payload(
            model=Part,
            payload=request.get_json(silent=True),
            policy=PART_CREATE_POLICY,
            partial=False,
        )
        part_id = patch.pop("id", None)
        part = inventory_service.create_part(part_id=part_id, actor=actor_name(), **patch)
        return jsonify({"part": part.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create part")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.patch("/parts/<part_id>")
@require_auth
@require_role("SUPER_ADMIN")
def update_part_route(part_id: str):
    """
    Edit catalog fields. Stock cannot be set here; use /adjust.

    Requires: SUPER_ADMIN
    """
    try:
        payload = request.get_json(silent=True) or {}
        if "stock" in payload:
            return jsonify({"error": "stock can only be changed through a stock adjustment"}), 400

        patch = validate_payload(
            model=Part,
            payload=payload,
            policy=PART_UPDATE_POLICY,
            partial=True,
        )
        part = inventory_service.update_part(part_id, patch)
        return jsonify({"part": part.to_dict()}), 200

    except PartNotFoundError:
        return jsonify({"error": "Part not found"}), 404
    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update part")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.delete("/parts/<part_id>")
@require_auth
@require_role("SUPER_ADMIN")
def delete_part_route(part_id: str):
    try:
        inventory_service.delete_part(part_id)
        return "", 204
    except PartNotFoundError:
        return jsonify({"error": "Part not found"}), 404


@inventory_bp.post("/parts/<part_id>/adjust")
@require_auth
@require_role("SUPER_ADMIN")
def adjust_part_route(part_id: str):
    """
    Manual stock correction: {"delta": <signed int>}.

    Positive deltas are booked as RESTOCK, negative as ADJUSTMENT.

    Requires: SUPER_ADMIN
    """
    try:
        data = request.get_json(silent=True) or {}
        delta = data.get("delta")

        part, entry = inventory_service.record_manual_adjustment(part_id, delta, actor=actor_name())
        return jsonify({"part": part.to_dict(), "entry": entry.to_dict()}), 200

    except PartNotFoundError:
        return jsonify({"error": "Part not found"}), 404
    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/logs")
@require_auth
def list_logs_route():
    """Ledger entries, newest first. Optional ?part_id= and ?limit=."""
    try:
        limit = int(request.args.get("limit", 200))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400
    if limit < 1:
        return jsonify({"error": "limit must be >= 1"}), 400

    entries = inventory_service.list_inventory_logs(
        part_id=request.args.get("part_id"),
        limit=limit,
    )
    return jsonify({"logs": [e.to_dict() for e in entries]}), 200


@inventory_bp.get("/audit.xlsx")
@require_auth
@require_role("SUPER_ADMIN")
def audit_export_route():
    content = inventory_service.export_inventory_audit()
    return send_file(
        io.BytesIO(content),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name="inventory-audit.xlsx",
    )
