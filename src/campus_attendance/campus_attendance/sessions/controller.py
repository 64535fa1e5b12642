from __future__ import annotations

import logging

from flask import Flask, Response, jsonify, request

from ..common.datetime_utils import now_local
from ..common.http import current_role, current_user_id, error_response, json_login_required
from ..common.validators import require_mapping
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..container import Container
from .model import QRSession

logger = logging.getLogger(__name__)


def _session_json(s: QRSession, now) -> dict:
    fence = s.geofence
    return {
        "qrCodeId": s.session_id,
        "code": s.code,
        "token": s.token,
        "subjectId": s.subject_id,
        "classStartTime": s.class_window.start.isoformat(),
        "classEndTime": s.class_window.end.isoformat(),
        "expiresAt": s.expires_at.isoformat(),
        "validFor": s.remaining_seconds(now),
        "scanCount": s.scan_count,
        "maxScans": s.max_scans,
        "isActive": s.active,
        "isValid": s.is_valid(now),
        "location": (
            {
                "latitude": fence.latitude,
                "longitude": fence.longitude,
                "radius": fence.radius_meters,
                "address": fence.address,
            }
            if fence
            else None
        ),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/qr/generate", methods=["POST"], endpoint="api_qr_generate")
    @json_login_required(Role.TEACHER, Role.ADMIN)
    def api_qr_generate():
        try:
            data = require_mapping(request.get_json(silent=True), "body") or {}
            qr_session = container.qr_session_service.generate(
                role=current_role(),
                teacher_id=current_user_id(),
                subject_id=data.get("subjectId"),
                class_start=data.get("classStartTime"),
                class_end=data.get("classEndTime"),
                location=data.get("location"),
                expiry_minutes=data.get("expiryMinutes"),
                max_scans=data.get("maxScans"),
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("QR generation failed")
            return jsonify({"success": False, "message": "Internal error while generating QR code"}), 500

        return jsonify({"success": True, "data": _session_json(qr_session, now_local())}), 201

    @app.route("/api/qr/generate", methods=["GET"], endpoint="api_qr_active")
    @json_login_required(Role.TEACHER, Role.ADMIN)
    def api_qr_active():
        now = now_local()
        try:
            sessions = container.qr_session_service.list_active(
                role=current_role(), teacher_id=current_user_id(), now=now
            )
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "data": [_session_json(s, now) for s in sessions]}), 200

    @app.route("/api/qr/<code>/image", methods=["GET"], endpoint="api_qr_image")
    @json_login_required(Role.TEACHER, Role.ADMIN)
    def api_qr_image(code: str):
        try:
            png = container.qr_session_service.render_image(
                code, role=current_role(), teacher_id=current_user_id()
            )
        except DomainError as e:
            return error_response(e)
        return Response(png, mimetype="image/png")
