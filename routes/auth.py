from flask import jsonify, request, session
from flask_login import current_user, login_required, login_user, logout_user

from models import db
from models.user import User
from routes import auth_bp


@auth_bp.post("/login")
def login_post():
    data = request.get_json(silent=True) or request.form
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = db.session.query(User).filter(User.email == email, User.is_active.is_(True)).first()
    if not user or not user.check_password(password):
        return jsonify({"error": "InvalidCredentials", "message": "Credenciales inválidas"}), 401

    session.clear()
    login_user(user)
    return jsonify({"user": user.to_dict()})


@auth_bp.get("/me")
@login_required
def me():
    memberships = [
        {"branchId": m.branch_id, "role": m.role}
        for m in current_user.memberships
        if m.is_active
    ]
    return jsonify({"user": current_user.to_dict(), "memberships": memberships})


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    session.clear()
    return jsonify({"ok": True})
