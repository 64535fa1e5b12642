from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.campus_attendance.campus_attendance.container import build_container


def main() -> None:
    """Mark expired QR sessions inactive. Safe to run from cron at any interval."""

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format="%(levelname)s %(message)s")

    container = build_container(db_config=dict(settings.DB_CONFIG))
    count = container.qr_session_service.sweep_expired()
    print(f"OK: deactivated {count} expired QR session(s)")


if __name__ == "__main__":
    main()
