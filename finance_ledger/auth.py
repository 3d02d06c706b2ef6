"""Sign-in roles and the admin gate for mutating views."""

from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, flash, redirect, session, url_for
from werkzeug.security import check_password_hash

from .logging_setup import get_logger

logger = get_logger(__name__)

ADMIN = "admin"
GUEST = "guest"
ROLES = (ADMIN, GUEST)

LIGHT = "light"
DARK = "dark"
THEMES = (LIGHT, DARK)


def current_role() -> Optional[str]:
    role = session.get("role")
    return role if role in ROLES else None


def current_theme() -> str:
    theme = session.get("theme")
    return theme if theme in THEMES else DARK


def set_role(role: Optional[str]) -> None:
    session.permanent = True
    if role is None:
        session.pop("role", None)
    else:
        session["role"] = role


def toggle_theme() -> str:
    session.permanent = True
    theme = LIGHT if current_theme() == DARK else DARK
    session["theme"] = theme
    return theme


def verify_admin_password(password: str) -> bool:
    """Check ``password`` against the configured admin password hash."""
    password_hash = current_app.config.get("ADMIN_PASSWORD_HASH")
    if not password_hash:
        return False
    return check_password_hash(password_hash, str(password or "").strip())


def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        if current_role() is None:
            return redirect(url_for("login"))
        return view(**kwargs)

    return wrapped_view


def admin_required(action: str):
    """Block non-admin requests with ``Only admin can <action>`` before the view runs."""

    def decorator(view):
        @wraps(view)
        def wrapped_view(**kwargs):
            role = current_role()
            if role is None:
                return redirect(url_for("login"))
            if role != ADMIN:
                logger.info("Blocked %s for role %s", action, role)
                flash(f"Only admin can {action}", "error")
                return redirect(url_for("records"))
            return view(**kwargs)

        return wrapped_view

    return decorator
