from __future__ import annotations

import datetime as dt
from functools import wraps
from typing import Any, Callable, Optional

import jwt
from flask import current_app, g, request

from ponnect_alerts.errors import AuthenticationError, AuthorizationError

JWT_ALGORITHM = "HS256"
ADMIN_ROLE = "ADMIN"


def create_token(user_id: str, secret: str, expires_minutes: int = 60 * 24 * 7) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "userId": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + dt.timedelta(minutes=expires_minutes)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> Optional[dict[str, Any]]:
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


def _request_token(cookie_name: str) -> Optional[str]:
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return None


def get_current_user() -> Optional[dict[str, Any]]:
    """Resolve the caller from the auth cookie; anonymous on any token problem."""
    if "current_user" in g:
        return g.current_user

    config = current_app.config["PONNECT_CONFIG"]
    user = None
    token = _request_token(config.auth_cookie_name)
    if token:
        payload = decode_token(token, config.jwt_secret)
        user_id = (payload or {}).get("userId")
        if user_id:
            user = current_app.config["ALERT_STORE"].get_user(str(user_id))
    g.current_user = user
    return user


def login_required(f: Callable) -> Callable:
    @wraps(f)
    def decorated(*args, **kwargs):
        if get_current_user() is None:
            raise AuthenticationError()
        return f(*args, **kwargs)

    return decorated


def admin_required(f: Callable) -> Callable:
    @wraps(f)
    def decorated(*args, **kwargs):
        user = get_current_user()
        if user is None or user.get("role") != ADMIN_ROLE:
            raise AuthorizationError()
        return f(*args, **kwargs)

    return decorated
