# Overview: Flask API routes for login, logout and the current session.

# backend/dealership/routes/auth.py

from flask import Blueprint, request, jsonify, g

from ..services import auth_service, session_service
from ..services.auth_service import AuthError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Token must be included as "Authorization: Bearer <token>" afterwards.
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username") or data.get("email")
    password = data.get("password")

    if not all([username, password]):
        return jsonify({"error": "username and password required"}), 400

    try:
        user = auth_service.authenticate(username, password)
    except AuthError as e:
        return jsonify({"error": str(e)}), 401

    session, token = session_service.create_session(user.id)

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.session_token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
