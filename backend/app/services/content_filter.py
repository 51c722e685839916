"""Message screening for contact details shared off-platform."""

import re

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"(?:\+?\d{1,3}[\s.-]?)?(?:\(\d{3}\)|\d{3})[\s.-]?\d{3}[\s.-]?\d{4}")


def screen_message(content: str) -> list[dict]:
    """Return the violations found in ``content`` (empty when clean)."""
    violations = [{"type": "email", "content": match} for match in EMAIL_PATTERN.findall(content or "")]
    violations += [{"type": "phone", "content": match} for match in PHONE_PATTERN.findall(content or "")]
    return violations


def flag_reason(violations: list[dict]) -> str:
    kinds = sorted({v["type"] for v in violations})
    return "Contains " + " and ".join(kinds)
