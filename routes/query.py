"""
Query-string parsing shared by the read routes.

Bad values raise InvalidQuery so they come back through the app's error
handler like every other pipeline error.
"""

from typing import Optional

from flask import request

from errors import InvalidQuery
from models import ValidationStatus


def int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidQuery(f"{name} must be an integer (got {raw!r})", field=name)


def status_arg(name: str = "status") -> Optional[ValidationStatus]:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return ValidationStatus(raw)
    except ValueError:
        allowed = ", ".join(s.value for s in ValidationStatus)
        raise InvalidQuery(f"Unknown status: {raw} (expected one of {allowed})", field=name)
