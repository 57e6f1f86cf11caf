"""Token construction and verification.

A token is base62(payload + "&&" + signature_hex). The payload holds three
length-prefixed fields, "{len}:{value}", for the user key, the session key
and a random nonce, so field values may contain any character including
the delimiters.
"""

import math

import structlog

from tokenauth.core.modules.signer.service import Signer
from tokenauth.core.modules.token.encoding import b62decode, b62encode
from tokenauth.core.modules.token.models import TokenClaims
from tokenauth.errors import ValidationError
from tokenauth.utils import random_string

logger = structlog.get_logger(__name__)

SIGNATURE_SEPARATOR = "&&"
MAX_PAYLOAD_BYTES = 1024
# Base62 digits needed per byte
BASE62_EXPANSION = math.log(256) / math.log(62)


def pack_fields(*fields: str) -> str:
    return "".join(f"{len(field)}:{field}" for field in fields)


def unpack_fields(payload: str, count: int) -> list[str] | None:
    """Split a length-prefixed payload into exactly `count` fields, None if malformed."""
    fields = []
    pos = 0
    for _ in range(count):
        colon = payload.find(":", pos)
        if colon == -1:
            return None
        length_str = payload[pos:colon]
        # Only canonical decimal lengths, no signs, spaces or leading zeros
        if not length_str.isdigit() or not length_str.isascii() or (len(length_str) > 1 and length_str[0] == "0"):
            return None
        end = colon + 1 + int(length_str)
        if end > len(payload):
            return None
        fields.append(payload[colon + 1 : end])
        pos = end
    if pos != len(payload):
        return None
    return fields


class TokenCodec:
    """Encodes signed tokens and decodes them back to their claims."""

    def __init__(self, signer: Signer, nonce_min_length: int = 10, nonce_max_length: int = 20) -> None:
        self._signer = signer
        self._nonce_min_length = nonce_min_length
        self._nonce_max_length = nonce_max_length
        # Longest token encode can produce; base62 decoding is quadratic so longer input is refused unread
        max_bytes = MAX_PAYLOAD_BYTES + len(SIGNATURE_SEPARATOR) + signer.signature_hex_length
        self.max_token_length = math.ceil(max_bytes * BASE62_EXPANSION) + 1

    def encode(self, user_key: str, session_key: str) -> str:
        nonce = random_string(self._nonce_min_length, self._nonce_max_length)
        payload = pack_fields(user_key, session_key, nonce).encode("utf-8")
        if len(payload) > MAX_PAYLOAD_BYTES:
            raise ValidationError("User key or session key is too long")
        signature_hex = self._signer.sign(payload)
        return b62encode(payload + SIGNATURE_SEPARATOR.encode() + signature_hex.encode())

    def decode(self, token: str) -> TokenClaims | None:
        """Return the claims of a valid token.

        Every failure (oversized input, bad encoding, missing signature,
        signature mismatch, malformed payload) yields None without telling
        which one happened.
        """
        try:
            if len(token) > self.max_token_length:
                return None
            text = b62decode(token).decode("utf-8")
        except (ValueError, TypeError, AttributeError):
            return None
        payload, sep, signature_hex = text.rpartition(SIGNATURE_SEPARATOR)
        if not sep or not payload or not signature_hex:
            return None
        if not self._signer.verify(payload.encode("utf-8"), signature_hex):
            return None
        fields = unpack_fields(payload, 3)
        if fields is None:
            # A validly signed but malformed payload means the signing side is misbehaving
            logger.warning("token_payload_malformed")
            return None
        user_key, session_key, _nonce = fields
        return TokenClaims(user_key=user_key, session_key=session_key)
