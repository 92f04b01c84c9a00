from datetime import datetime

from flask import Blueprint, g
from sqlalchemy import or_

from auth import generate_token, login_required
from errors import UnauthorizedError, ValidationError
from extensions import db
from models import User
from routes import json_body, ok
from statuses import AccountStatus, UserRole
from validation import require_text, validate_email, validate_phone

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

# Roles a user may pick for themselves at registration
SELF_SERVICE_ROLES = {UserRole.USER, UserRole.RESIDENT, UserRole.COLLECTOR}


def _authenticate(identifier, password):
    if not isinstance(identifier, str) or not identifier.strip() \
            or not isinstance(password, str) or not password:
        raise ValidationError("Username/email and password are required")

    ident = identifier.strip().lower()
    user = User.query.filter(or_(User.username == ident, User.email == ident)).first()
    if user is None or not user.check_password(password):
        raise UnauthorizedError("Invalid credentials")
    if not user.is_active or user.account_status == AccountStatus.SUSPENDED:
        raise UnauthorizedError("Account is inactive. Please contact support.")
    return user


def _new_password(value):
    if value is not None and not isinstance(value, str):
        raise ValidationError("Password must be text")
    if not value or len(value) < 6:
        raise ValidationError("Password must be at least 6 characters")
    return value


def _session_payload(user):
    user.last_login = datetime.utcnow()
    db.session.commit()
    return {"token": generate_token(user), "user": user.to_dict()}


@auth_bp.route("/register", methods=["POST"])
def register():
    data = json_body()

    username = require_text(data.get("username"), "Username", max_length=30).lower()
    if len(username) < 3:
        raise ValidationError("Username must be at least 3 characters")
    email = validate_email(data.get("email"))
    password = _new_password(data.get("password"))

    role = data.get("role")
    if role is not None and not isinstance(role, str):
        raise ValidationError("Role must be text")
    role = UserRole(role) if role in {r.value for r in SELF_SERVICE_ROLES} else UserRole.RESIDENT

    if User.query.filter(or_(User.username == username, User.email == email)).first():
        raise ValidationError("User with this username or email already exists")

    user = User(
        first_name=require_text(data.get("firstName"), "First name", max_length=50),
        last_name=require_text(data.get("lastName"), "Last name", max_length=50),
        username=username,
        email=email,
        phone_no=validate_phone(data.get("phoneNo")),
        address=data.get("address"),
        role=role,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.flush()

    return ok(_session_payload(user), "User registered successfully", 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    user = _authenticate(data.get("username") or data.get("email"), data.get("password"))
    return ok(_session_payload(user), "Login successful")


@auth_bp.route("/admin-login", methods=["POST"])
def admin_login():
    data = json_body()
    try:
        user = _authenticate(data.get("username") or data.get("email"), data.get("password"))
    except UnauthorizedError:
        raise UnauthorizedError("Invalid admin credentials")
    if user.role != UserRole.ADMIN:
        raise UnauthorizedError("Invalid admin credentials")
    return ok(_session_payload(user), "Admin login successful")


@auth_bp.route("/profile", methods=["GET"])
@login_required
def get_profile():
    return ok({"user": g.current_user.to_dict()})


@auth_bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    data = json_body()
    user = g.current_user

    if "firstName" in data:
        user.first_name = require_text(data["firstName"], "First name", max_length=50)
    if "lastName" in data:
        user.last_name = require_text(data["lastName"], "Last name", max_length=50)
    if "phoneNo" in data:
        user.phone_no = validate_phone(data["phoneNo"])
    if "address" in data:
        user.address = data["address"]
    if "email" in data:
        email = validate_email(data["email"])
        clash = User.query.filter(User.email == email, User.id != user.id).first()
        if clash:
            raise ValidationError("Email already in use")
        user.email = email

    db.session.commit()
    return ok({"user": user.to_dict()}, "Profile updated successfully")


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = json_body()
    user = g.current_user

    old_password = data.get("oldPassword")
    new_password = data.get("newPassword")
    confirm = data.get("confirmPassword")
    if not all(isinstance(v, str) and v for v in (old_password, new_password, confirm)):
        raise ValidationError("All fields are required")
    if new_password != confirm:
        raise ValidationError("New passwords do not match")
    _new_password(new_password)
    if not user.check_password(old_password):
        raise UnauthorizedError("Current password is incorrect")

    user.set_password(new_password)
    db.session.commit()
    return ok(message="Password changed successfully")


@auth_bp.route("/account-settings", methods=["PUT"])
@login_required
def update_account_settings():
    data = json_body()
    user = g.current_user

    if data.get("email") is not None:
        email = validate_email(data["email"])
        clash = User.query.filter(User.email == email, User.id != user.id).first()
        if clash:
            raise ValidationError("Email already in use")
        user.email = email
    if data.get("username") is not None:
        username = require_text(data["username"], "Username", max_length=30).lower()
        if len(username) < 3:
            raise ValidationError("Username must be at least 3 characters")
        clash = User.query.filter(User.username == username, User.id != user.id).first()
        if clash:
            raise ValidationError("Username already taken")
        user.username = username
    if "address" in data:
        user.address = data["address"]

    db.session.commit()
    return ok({"user": user.to_dict()}, "Account settings updated successfully")


@auth_bp.route("/deactivate", methods=["PUT"])
@login_required
def deactivate_account():
    user = g.current_user
    user.is_active = False
    user.account_status = AccountStatus.SUSPENDED
    db.session.commit()
    return ok(message="Account deactivated successfully")
