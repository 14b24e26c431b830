import base64
import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SITE_SECRETS_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ["SKIP_MIGRATIONS"] = "1"

from orderhub.core.config import settings
from orderhub.core.crypto import NONCE_SIZE, decrypt_secret, encrypt_secret, reset_cipher
from orderhub.core.keys import generate_api_key, generate_api_secret, hash_secret, verify_secret


def test_encrypt_round_trip_uses_fresh_nonce():
    first = encrypt_secret("s3cret-value")
    second = encrypt_secret("s3cret-value")
    assert first != second
    assert len(base64.b64decode(first)) > NONCE_SIZE
    assert decrypt_secret(first) == "s3cret-value"
    assert decrypt_secret(second) == "s3cret-value"


def test_decrypt_rejects_tampered_blob():
    raw = bytearray(base64.b64decode(encrypt_secret("s3cret-value")))
    raw[-1] ^= 0x01
    with pytest.raises(ValueError):
        decrypt_secret(base64.b64encode(bytes(raw)).decode("ascii"))


@pytest.mark.parametrize("blob", ["", "%%%not-base64%%%", base64.b64encode(b"short").decode("ascii")])
def test_decrypt_rejects_garbage(blob):
    with pytest.raises(ValueError):
        decrypt_secret(blob)


def test_generated_credentials_and_hashes():
    api_key = generate_api_key()
    secret = generate_api_secret()
    assert len(api_key) == 32
    assert api_key != generate_api_key()
    assert len(secret) >= 32

    hashed = hash_secret(secret)
    assert hashed != secret
    assert verify_secret(secret, hashed)
    assert not verify_secret("wrong", hashed)
    assert not verify_secret(secret, "not-a-bcrypt-hash")


def test_rotating_the_key_invalidates_stored_secrets(monkeypatch):
    blob = encrypt_secret("s3cret-value")
    monkeypatch.setattr(settings, "SITE_SECRETS_KEY", base64.b64encode(b"f" * 32).decode("ascii"))
    reset_cipher()
    try:
        with pytest.raises(ValueError):
            decrypt_secret(blob)
    finally:
        monkeypatch.undo()
        reset_cipher()
    assert decrypt_secret(blob) == "s3cret-value"
