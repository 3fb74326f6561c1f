# Overview: Flask API routes for staff accounts and technicians (admin only).

# backend/dealership/routes/personnel.py

from flask import Blueprint, request, jsonify, current_app, g

from ..services import personnel_service
from ..services.personnel_service import PersonnelError, PersonnelNotFoundError
from ..validation import ValidationError, ConflictError
from ..time_utils import parse_iso_date
from ..decorators import require_auth, require_role


personnel_bp = Blueprint("personnel", __name__, url_prefix="/api/personnel")


@personnel_bp.get("/users")
@require_auth
@require_role("SUPER_ADMIN")
def list_users_route():
    return jsonify({"users": [u.to_dict() for u in personnel_service.list_users()]}), 200


@personnel_bp.post("/users")
@require_auth
@require_role("SUPER_ADMIN")
def create_user_route():
    try:
        data = request.get_json(silent=True) or {}
        user = personnel_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role", "USER"),
        )
        return jsonify({"user": user.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@personnel_bp.delete("/users/<user_id>")
@require_auth
@require_role("SUPER_ADMIN")
def delete_user_route(user_id: str):
    try:
        personnel_service.delete_user(user_id, acting_user_id=g.current_user.id)
        return "", 204
    except PersonnelNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PersonnelError as e:
        return jsonify({"error": str(e), "details": e.details}), 409


@personnel_bp.get("/technicians")
@require_auth
def list_technicians_route():
    techs = personnel_service.list_technicians()
    return jsonify({"technicians": [t.to_dict() for t in techs]}), 200


@personnel_bp.post("/technicians")
@require_auth
@require_role("SUPER_ADMIN")
def create_technician_route():
    try:
        data = request.get_json(silent=True) or {}
        try:
            joined = parse_iso_date(data.get("joined_date"))
        except (TypeError, ValueError, AttributeError):
            return jsonify({"error": "joined_date must be a YYYY-MM-DD date"}), 400

        tech = personnel_service.create_technician(
            name=data.get("name"),
            specialization=data.get("specialization"),
            status=data.get("status", "ACTIVE"),
            joined_date=joined,
        )
        return jsonify({"technician": tech.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create technician")
        return jsonify({"error": "Internal server error"}), 500


@personnel_bp.patch("/technicians/<technician_id>")
@require_auth
@require_role("SUPER_ADMIN")
def update_technician_status_route(technician_id: str):
    try:
        data = request.get_json(silent=True) or {}
        tech = personnel_service.set_technician_status(technician_id, data.get("status"))
        return jsonify({"technician": tech.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": "Validation failed", "messages": e.messages}), 400
    except PersonnelNotFoundError as e:
        return jsonify({"error": str(e)}), 404


@personnel_bp.delete("/technicians/<technician_id>")
@require_auth
@require_role("SUPER_ADMIN")
def delete_technician_route(technician_id: str):
    try:
        personnel_service.delete_technician(technician_id)
        return "", 204
    except PersonnelNotFoundError as e:
        return jsonify({"error": str(e)}), 404
