from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.actor import Actor
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from .datetime_utils import parse_iso_date, parse_iso_datetime

log = logging.getLogger(__name__)

# Checked in order; the first non-empty header wins.
_IP_HEADERS = (
    "X-Real-IP",
    "X-Forwarded-For",
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Client-IP",
    "X-Cluster-Client-IP",
)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def client_ip() -> str:
    """Best-effort caller IP behind proxies/CDNs."""
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            # X-Forwarded-For: client, proxy1, proxy2
            return value.split(",")[0].strip()

    forwarded = request.headers.get("Forwarded")
    if forwarded:
        for part in forwarded.split(";"):
            key, _, value = part.strip().partition("=")
            if key.lower() == "for" and value:
                return value.split(",")[0].strip().strip('"')

    return request.remote_addr or "unknown"


def user_agent() -> Optional[str]:
    return request.headers.get("User-Agent")


def current_actor() -> Actor:
    if "user_id" not in session:
        raise AuthenticationError("Please log in to continue")
    try:
        role = Role(session.get("role"))
    except ValueError:
        raise AuthenticationError("Session role is not recognised")
    return Actor(user_id=int(session["user_id"]), role=role, name=session.get("name"))


def error_response(exc: DomainError):
    for error_cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return jsonify({"success": False, "message": str(exc)}), status
    return jsonify({"success": False, "message": str(exc)}), 400


def json_endpoint(view):
    """Map domain errors to JSON responses; log anything unexpected as a 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return error_response(e)
        except Exception:
            log.exception("Unhandled error in %s", view.__name__)
            return jsonify({"success": False, "message": "Internal server error"}), 500

    return wrapper


def role_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = current_actor()
            if actor.role not in roles:
                raise AuthorizationError("You do not have permission for this action")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_arg(name: str, default: Optional[date] = None) -> Optional[date]:
    value = request.args.get(name)
    if not value:
        return default
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def datetime_field(data: dict[str, Any], name: str) -> Optional[datetime]:
    value = data.get(name)
    if value in (None, ""):
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 timestamp")


def date_field(data: dict[str, Any], name: str) -> date:
    value = data.get(name)
    if not value:
        raise ValidationError(f"{name} is required")
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
