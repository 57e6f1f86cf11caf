"""RSA signatures over token payloads."""

import base64
import binascii

import structlog
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from tokenauth.errors import ConfigError

logger = structlog.get_logger(__name__)

HEX_DIGITS = frozenset("0123456789abcdef")


def generate_key_pair(key_size: int = 2048) -> tuple[str, str]:
    """Generate an RSA key pair as (base64 PKCS#8 private key, base64 SubjectPublicKeyInfo public key)."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_der = private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_der = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(private_der).decode("ascii"), base64.b64encode(public_der).decode("ascii")


class Signer:
    """SHA256withRSA (PKCS#1 v1.5) signer.

    The private key signs, the public key verifies. A signer built without a
    private key can only verify, which is all a stateless verifying instance needs.
    """

    def __init__(self, public_key_b64: str, private_key_b64: str | None = None) -> None:
        self._public_key = _load_public_key(public_key_b64)
        self._private_key = _load_private_key(private_key_b64) if private_key_b64 else None
        if self._private_key is not None:
            own_public = self._private_key.public_key().public_numbers()
            if own_public != self._public_key.public_numbers():
                raise ConfigError("Private and public keys do not form a pair")

    @property
    def can_sign(self) -> bool:
        return self._private_key is not None

    @property
    def signature_hex_length(self) -> int:
        return (self._public_key.key_size + 7) // 8 * 2

    def sign(self, payload: bytes) -> str:
        if self._private_key is None:
            raise ConfigError("Signer has no private key")
        signature = self._private_key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
        return signature.hex()

    def verify(self, payload: bytes, signature_hex: str) -> bool:
        """Check a lowercase hex signature. Any failure, including malformed input, returns False."""
        # Only the canonical form is accepted, so one signature has exactly one spelling
        if not isinstance(signature_hex, str) or not set(signature_hex) <= HEX_DIGITS:
            return False
        try:
            signature = bytes.fromhex(signature_hex)
            self._public_key.verify(signature, payload, padding.PKCS1v15(), hashes.SHA256())
        except (InvalidSignature, ValueError, TypeError):
            return False
        return True


def _decode_key(value: str, name: str) -> bytes:
    try:
        return base64.b64decode("".join(value.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigError(f"{name} is not valid base64") from e


def _load_public_key(value: str) -> rsa.RSAPublicKey:
    try:
        key = serialization.load_der_public_key(_decode_key(value, "Public key"))
    except (ValueError, UnsupportedAlgorithm) as e:
        raise ConfigError("Public key is not a DER encoded key") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise ConfigError("Public key is not an RSA key")
    return key


def _load_private_key(value: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_der_private_key(_decode_key(value, "Private key"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ConfigError("Private key is not an unencrypted DER encoded key") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ConfigError("Private key is not an RSA key")
    logger.debug("signer_private_key_loaded", key_size=key.key_size)
    return key
