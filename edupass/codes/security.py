"""Redemption code generation."""

import secrets
import string


# Excludes visually ambiguous characters (0, O, I, 1)
CODE_ALPHABET = string.ascii_uppercase.replace("O", "").replace("I", "") + string.digits.replace(
    "0", ""
).replace("1", "")

CODE_LENGTH = 8


def generate_code(length: int = CODE_LENGTH) -> str:
    """Generate one human-readable code, e.g. ``"K7MX3QPA"``."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_codes(count: int, length: int = CODE_LENGTH) -> list[str]:
    """Generate ``count`` distinct codes (distinct within the returned list)."""
    codes: set[str] = set()
    while len(codes) < count:
        codes.add(generate_code(length))
    return sorted(codes)
