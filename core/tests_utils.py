import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from core.utils.jsonable import to_jsonable
from core.utils.logging import REDACTED, safe_extra


def test_safe_extra_renames_reserved_keys():
    out = safe_extra({"name": "x", "module": "y", "log_name": "taken", "run_crew_id": 3})

    assert out["run_crew_id"] == 3
    assert out["log_module"] == "y"
    assert {"log_name", "log_name_1"} <= set(out)
    assert "name" not in out

    # Must not raise "Attempt to overwrite ... in LogRecord"
    logging.getLogger("core.tests").info("safe_extra.check", extra=out)


def test_safe_extra_redacts_oauth_credentials():
    out = safe_extra({"access_token": "abc", "refresh_token": "def", "has_access_token": True})

    assert out["access_token"] == REDACTED
    assert out["refresh_token"] == REDACTED
    assert out["has_access_token"] is True


def test_safe_extra_empty():
    assert safe_extra(None) == {}


def test_to_jsonable():
    uid = UUID("12345678-1234-5678-1234-567812345678")
    payload = {
        1: [Decimal("1.50"), date(2026, 3, 2)],
        "at": datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc),
        "ids": (uid,),
        "ok": True,
    }

    assert to_jsonable(payload) == {
        "1": ["1.50", "2026-03-02"],
        "at": "2026-03-02T06:00:00+00:00",
        "ids": [str(uid)],
        "ok": True,
    }
