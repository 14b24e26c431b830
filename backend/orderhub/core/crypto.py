import base64
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from orderhub.core.config import settings


NONCE_SIZE = 12

_aesgcm: AESGCM | None = None


def _load_key() -> bytes:
    key_value = settings.SITE_SECRETS_KEY or os.getenv("SITE_SECRETS_KEY")
    if not key_value:
        raise ValueError("SITE_SECRETS_KEY is not set")
    key_bytes = base64.b64decode(key_value)
    if len(key_bytes) != 32:
        raise ValueError("SITE_SECRETS_KEY must decode to 32 bytes")
    return key_bytes


def _get_aesgcm() -> AESGCM:
    global _aesgcm
    if _aesgcm is None:
        try:
            _aesgcm = AESGCM(_load_key())
        except Exception as exc:
            raise ValueError("Invalid SITE_SECRETS_KEY") from exc
    return _aesgcm


def reset_cipher() -> None:
    global _aesgcm
    _aesgcm = None


def encrypt_secret(plaintext: str) -> str:
    nonce = os.urandom(NONCE_SIZE)
    sealed = _get_aesgcm().encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_secret(blob: str) -> str:
    try:
        raw = base64.b64decode(blob, validate=True)
    except (ValueError, TypeError) as exc:
        raise ValueError("Invalid encrypted secret") from exc
    if len(raw) <= NONCE_SIZE:
        raise ValueError("Invalid encrypted secret")
    nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
    try:
        plaintext = _get_aesgcm().decrypt(nonce, sealed, None)
    except InvalidTag as exc:
        raise ValueError("Invalid encrypted secret") from exc
    return plaintext.decode("utf-8")
