from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Dict, Iterable, Optional, Tuple

from flask import jsonify, session

from ..core.enums import Role, ScanRejection
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    IssuanceFailed,
    PersistenceConflict,
    RecordingIncomplete,
    ScanRejected,
    SubjectNotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)

_REJECTION_STATUS = {
    ScanRejection.SESSION_NOT_FOUND: 404,
    ScanRejection.SESSION_EXPIRED: 400,
    ScanRejection.NOT_ENROLLED: 403,
    ScanRejection.OUT_OF_RANGE: 403,
    ScanRejection.ALREADY_SCANNED: 409,
    ScanRejection.LIMIT_REACHED: 409,
}


def current_role() -> Optional[Role]:
    try:
        return Role(session.get("role"))
    except ValueError:
        return None


def current_user_id() -> int:
    return int(session["user_id"])


def json_login_required(*roles: Role):
    """Require an authenticated session, optionally with one of ``roles``.

    The auth layer owns login; it leaves ``user_id`` and ``role`` in the
    Flask session.
    """

    allowed = set(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Authentication required"}), 401
            if allowed and current_role() not in allowed:
                return jsonify({"success": False, "message": "You do not have permission for this action"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


def error_response(exc: DomainError) -> Tuple[Any, int]:
    if isinstance(exc, ScanRejected):
        reasons: Iterable[ScanRejection] = exc.reasons
        reason = exc.reason
        body: Dict[str, Any] = {
            "success": False,
            "reason": reason.value if reason else None,
            "message": reason.message if reason else str(exc),
            "reasons": [{"reason": r.value, "message": r.message} for r in reasons],
        }
        return jsonify(body), _REJECTION_STATUS.get(reason, 400)

    if isinstance(exc, RecordingIncomplete):
        return jsonify({"success": False, "message": str(exc), "retryRecording": True}), 503
    if isinstance(exc, PersistenceConflict):
        return jsonify({"success": False, "message": "The server is busy, please try again"}), 503
    if isinstance(exc, IssuanceFailed):
        return jsonify({"success": False, "message": str(exc)}), 500
    if isinstance(exc, ValidationError):
        return jsonify({"success": False, "message": str(exc)}), 400
    if isinstance(exc, AuthorizationError):
        return jsonify({"success": False, "message": str(exc)}), 403
    if isinstance(exc, SubjectNotFound):
        return jsonify({"success": False, "message": str(exc)}), 404

    logger.error("Unmapped domain error: %r", exc)
    return jsonify({"success": False, "message": str(exc)}), 400
