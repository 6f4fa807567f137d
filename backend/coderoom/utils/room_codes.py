"""
Generation and normalization of room codes and role secrets.
"""

import re
import secrets
from typing import Optional


# Uppercase alphanumerics without the visually ambiguous 0/O and 1/I
ROOM_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

_CODE_PATTERN = re.compile(rf"^[{ROOM_ALPHABET}]+$")


def generate_room_code(length: int = 8) -> str:
    """
    Generate a short public room code.

    32 symbols over 8 positions gives ~1.1 trillion combinations.
    """
    return ''.join(secrets.choice(ROOM_ALPHABET) for _ in range(length))


def generate_secret(length: int = 8) -> str:
    """Generate a per-role secret from the same restricted alphabet."""
    return ''.join(secrets.choice(ROOM_ALPHABET) for _ in range(length))


def normalize_room_code(value: Optional[str], length: int = 8) -> Optional[str]:
    """
    Upper-case and validate a user supplied room code.

    Returns None for anything that cannot be a room code, so callers can
    treat malformed input exactly like an unknown room.
    """
    if not value:
        return None
    code = value.strip().upper()
    if len(code) != length or not _CODE_PATTERN.match(code):
        return None
    return code
