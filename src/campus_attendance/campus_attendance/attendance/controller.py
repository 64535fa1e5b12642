from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, request, url_for

from ..common.datetime_utils import parse_iso_date
from ..common.http import current_role, current_user_id, error_response, json_login_required
from ..common.validators import require_float, require_latitude, require_longitude, require_mapping
from ..core.enums import Role
from ..core.exceptions import DomainError, RecordingIncomplete, ValidationError
from ..container import Container
from ..sessions.model import DeviceInfo, ScanLocation
from ..sessions.validator import ScanRequest
from .model import AttendanceRecord

logger = logging.getLogger(__name__)


def _record_json(r: AttendanceRecord) -> dict:
    return {
        "attendanceId": r.attendance_id,
        "studentId": r.student_id,
        "subjectId": r.subject_id,
        "date": r.attendance_date.isoformat(),
        "status": r.status.value,
        "markedAt": r.marked_at.isoformat(),
        "isLate": r.is_late,
        "sourceSessionId": r.source_session_id,
        "remarks": r.remarks,
    }


def _result_json(result) -> dict:
    return {
        "status": result.status.value,
        "markedAt": result.marked_at.isoformat(),
        "isLate": result.is_late,
    }


def _parse_location(value: Any) -> Optional[ScanLocation]:
    raw = require_mapping(value, "location")
    if not raw:
        return None
    accuracy = raw.get("accuracy")
    return ScanLocation(
        latitude=require_latitude(raw.get("latitude")),
        longitude=require_longitude(raw.get("longitude")),
        accuracy=None if accuracy is None else require_float(accuracy, "accuracy", min_value=0.0),
    )


def _optional_text(value: Any, field_name: str, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    return value[:max_length]


def _client_ip() -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()[:64]
    return request.remote_addr


def _parse_device(value: Any) -> DeviceInfo:
    raw = require_mapping(value, "deviceInfo") or {}
    return DeviceInfo(
        user_agent=_optional_text(raw.get("userAgent"), "deviceInfo.userAgent", 255) or request.headers.get("User-Agent"),
        device_type=_optional_text(raw.get("deviceType"), "deviceInfo.deviceType", 50),
        ip_address=_client_ip(),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/qr/scan", methods=["POST"], endpoint="api_qr_scan")
    @json_login_required(Role.STUDENT)
    def api_qr_scan():
        try:
            data = require_mapping(request.get_json(silent=True), "body") or {}
            scan = ScanRequest(
                code=data.get("code", ""),
                token=data.get("token", ""),
                student_id=current_user_id(),
                location=_parse_location(data.get("location")),
                device_info=_parse_device(data.get("deviceInfo")),
            )
            result = container.attendance_service.submit_scan(
                scan, collect_all=request.args.get("diagnose") == "1"
            )
        except RecordingIncomplete as e:
            body, status = error_response(e)
            payload = body.get_json()
            payload["retryUrl"] = url_for("api_qr_scan_record")
            return jsonify(payload), status
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("QR scan failed")
            return jsonify({"success": False, "message": "Internal error while scanning QR code"}), 500

        return jsonify(
            {
                "success": True,
                "message": "Attendance marked successfully",
                "data": _result_json(result),
            }
        ), 200

    @app.route("/api/qr/scan/record", methods=["POST"], endpoint="api_qr_scan_record")
    @json_login_required(Role.STUDENT)
    def api_qr_scan_record():
        """Retry recording after a scan was accepted but not saved."""
        try:
            data = require_mapping(request.get_json(silent=True), "body") or {}
            result = container.attendance_service.resume_recording(
                code=data.get("code", ""),
                token=data.get("token", ""),
                student_id=current_user_id(),
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("Resuming attendance recording failed")
            return jsonify({"success": False, "message": "Internal error while recording attendance"}), 500

        return jsonify({"success": True, "message": "Attendance marked successfully", "data": _result_json(result)}), 200

    @app.route("/api/attendance", methods=["GET"], endpoint="api_attendance")
    @json_login_required()
    def api_attendance():
        role = current_role()
        try:
            if role == Role.STUDENT:
                records = container.attendance_service.history_for_student(
                    current_user_id(), request.args.get("limit", 30)
                )
            elif role in {Role.TEACHER, Role.ADMIN}:
                subject_id = request.args.get("subjectId")
                day_s = request.args.get("date")
                if not subject_id or not day_s:
                    raise ValidationError("subjectId and date are required")
                try:
                    day = parse_iso_date(day_s)
                except ValueError:
                    raise ValidationError("date must be YYYY-MM-DD")
                records = container.attendance_service.records_for_subject(subject_id, day)
            else:
                return jsonify({"success": False, "message": "You do not have permission for this action"}), 403
        except DomainError as e:
            return error_response(e)

        return jsonify({"success": True, "data": [_record_json(r) for r in records]}), 200
