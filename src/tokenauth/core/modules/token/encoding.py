"""Base62 binary-to-text encoding (alphabet 0-9A-Za-z)."""

import string

ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
_INDEX = {char: i for i, char in enumerate(ALPHABET)}


def b62encode(data: bytes) -> str:
    # Each leading zero byte is kept as a literal "0", as base58 does
    stripped = data.lstrip(b"\0")
    zeros = len(data) - len(stripped)
    number = int.from_bytes(stripped, "big")
    chars = []
    while number:
        number, rem = divmod(number, 62)
        chars.append(ALPHABET[rem])
    return "0" * zeros + "".join(reversed(chars))


def b62decode(text: str) -> bytes:
    """Decode base62 text, raising ValueError on characters outside the alphabet."""
    stripped = text.lstrip("0")
    zeros = len(text) - len(stripped)
    number = 0
    for char in stripped:
        if char not in _INDEX:
            raise ValueError(f"Invalid base62 character: {char!r}")
        number = number * 62 + _INDEX[char]
    return b"\0" * zeros + number.to_bytes((number.bit_length() + 7) // 8, "big")
