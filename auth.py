"""
Bearer-token authentication.

Tokens are signed user ids (itsdangerous) that expire after TOKEN_MAX_AGE
seconds. ``login_required`` resolves the caller into ``g.current_user``.
"""
import functools
import logging

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from errors import ForbiddenError, UnauthorizedError
from extensions import db
from models import User
from statuses import AccountStatus

logger = logging.getLogger(__name__)

TOKEN_SALT = "binroute-auth"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def generate_token(user):
    return _serializer().dumps({"uid": user.id})


def load_user_from_token(token):
    try:
        payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except SignatureExpired:
        raise UnauthorizedError("Token expired, please log in again")
    except BadSignature:
        raise UnauthorizedError("Not authorized, token failed")

    user = db.session.get(User, payload.get("uid"))
    if user is None:
        raise UnauthorizedError("User no longer exists")
    if not user.is_active or user.account_status == AccountStatus.SUSPENDED:
        raise UnauthorizedError("Account is inactive. Please contact support.")
    return user


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Not authorized, no token")
    return token.strip()


def login_required(view):
    @functools.wraps(view)
    def wrapped(*args, **kwargs):
        g.current_user = load_user_from_token(_bearer_token())
        return view(*args, **kwargs)

    return wrapped


def roles_required(*roles):
    """Restrict a view to users holding one of ``roles``."""

    def decorator(view):
        @functools.wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            user = g.current_user
            if user.role not in roles:
                logger.warning("User %s (%s) denied access to %s",
                               user.id, user.role.value, request.path)
                raise ForbiddenError(
                    f"User role '{user.role.value}' is not authorized to access this route"
                )
            return view(*args, **kwargs)

        return wrapped

    return decorator
