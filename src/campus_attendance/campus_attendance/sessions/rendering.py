from __future__ import annotations

import io
import json
from typing import Any, Dict

import qrcode

from .model import QRSession


def session_payload(session: QRSession) -> Dict[str, Any]:
    """What the student's scanner reads out of the printed/projected code."""

    return {
        "code": session.code,
        "token": session.token,
        "subjectId": session.subject_id,
        "issuedAt": session.created_at.isoformat(),
    }


def render_png(data: str, *, box_size: int = 10, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_session_png(session: QRSession) -> bytes:
    return render_png(json.dumps(session_payload(session), separators=(",", ":")))
