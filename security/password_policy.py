import re
from typing import List, Tuple

from flask import current_app, has_app_context

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"\d")

_DEFAULTS = {
    "PASSWORD_MIN_LEN": 8,
    "PASSWORD_MAX_LEN": 72,  # bcrypt ignores anything past 72 bytes
    "PASSWORD_REQUIRE_UPPER": False,
    "PASSWORD_REQUIRE_LOWER": True,
    "PASSWORD_REQUIRE_DIGIT": True,
}


def _cfg(name: str):
    if not has_app_context():
        return _DEFAULTS[name]
    return current_app.config.get(name, _DEFAULTS[name])


def validate_password(pw: str) -> Tuple[bool, List[str]]:
    errors: List[str] = []

    if not isinstance(pw, str):
        return False, ["Password must be a string"]

    min_len = int(_cfg("PASSWORD_MIN_LEN"))
    max_len = int(_cfg("PASSWORD_MAX_LEN"))

    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw.encode("utf-8")) > max_len:
        errors.append(f"Password must be at most {max_len} bytes")

    if _cfg("PASSWORD_REQUIRE_UPPER") and not _UPPER.search(pw):
        errors.append("Password must include an uppercase letter")
    if _cfg("PASSWORD_REQUIRE_LOWER") and not _LOWER.search(pw):
        errors.append("Password must include a lowercase letter")
    if _cfg("PASSWORD_REQUIRE_DIGIT") and not _DIGIT.search(pw):
        errors.append("Password must include a number")

    return len(errors) == 0, errors
