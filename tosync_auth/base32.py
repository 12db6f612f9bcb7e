"""
RFC 4648 Base32 codec for TOTP secrets.

Output is never padded with "="; authenticator apps accept unpadded
secrets and the enrollment URI carries them as-is.
"""

import base64

from .errors import InvalidCharacter

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

# unpadded lengths (mod 8) whose last character completes no byte
_DANGLING_LENGTHS = (1, 3, 6)


def encode(data: bytes) -> str:
    """
    Encode bytes as unpadded Base32.
    """
    return base64.b32encode(data).decode("ascii").rstrip("=")


def decode(text: str) -> bytes:
    """
    Decode a Base32 string, case-insensitively.

    Trailing "=" padding is ignored and a final partial byte is dropped.

    Raises:
        InvalidCharacter if any character is outside the alphabet.
    """
    cleaned = text.rstrip("=")

    # ASCII-only case folding; str.upper() would map e.g. "ß" to "SS"
    for position, char in enumerate(cleaned):
        if not char.isascii() or char.upper() not in ALPHABET:
            raise InvalidCharacter(char, position)

    if len(cleaned) % 8 in _DANGLING_LENGTHS:
        cleaned = cleaned[:-1]
    cleaned += "=" * (-len(cleaned) % 8)

    return base64.b32decode(cleaned, casefold=True)
