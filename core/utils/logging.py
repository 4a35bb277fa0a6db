from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

# Atributos propios de LogRecord: pasarlos en `extra` rompe con
#   KeyError: "Attempt to overwrite '<attr>' in LogRecord"
RESERVED_LOGRECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

# Credenciales OAuth: nunca llegan a los logs.
REDACTED_KEYS: frozenset[str] = frozenset({
    "access_token",
    "refresh_token",
    "client_secret",
    "code_verifier",
})
REDACTED = "[redacted]"


def safe_extra(extra: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Copy of `extra` that stdlib logging accepts.

    Reserved LogRecord keys get a `log_` prefix (with a numeric suffix on
    collision) and OAuth credentials are replaced by a placeholder.
    """
    out: dict[str, Any] = {}
    for raw_key, value in (extra or {}).items():
        key = str(raw_key)
        if key in REDACTED_KEYS:
            value = REDACTED
        if key in RESERVED_LOGRECORD_ATTRS:
            key = f"log_{key}"

        candidate, n = key, 1
        while candidate in out:
            candidate = f"{key}_{n}"
            n += 1
        out[candidate] = value
    return out
