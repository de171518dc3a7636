# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/shopledger/routes/auth.py
"""
Login endpoint.

Confirms credentials only; no token or session is issued.
"""
from flask import Blueprint, request

from ..services.auth_service import authenticate
from ..decorators import ledger_errors

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@ledger_errors("log in")
def login():
    """
    Body: {username, password}

    - 200 {success, message, user}
    - 400 missing fields
    - 401 invalid credentials
    """
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""

    if not username or not password:
        return {"success": False, "error": "username and password required"}, 400

    user = authenticate(username, password)
    if not user:
        return {"success": False, "error": "Invalid username or password"}, 401

    return {"success": True, "message": "Login successful", "user": user.to_dict()}, 200
