import json
import time
from collections.abc import Callable
from typing import Any

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from flask import Flask
from jwt import PyJWKClient
from jwt.utils import base64url_encode, to_base64url_uint

HMAC_SECRET = "a-shared-secret-that-is-long-enough-for-hs512-signing-0123456789"


@pytest.fixture
def hmac_secret() -> str:
    return HMAC_SECRET


@pytest.fixture()
def app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    return app


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def jwk_entry(public_key: rsa.RSAPublicKey, kid: str | None = None) -> dict[str, str]:
    numbers = public_key.public_numbers()
    entry = {
        "kty": "RSA",
        "alg": "RS256",
        "use": "sig",
        "n": to_base64url_uint(numbers.n).decode("ascii"),
        "e": to_base64url_uint(numbers.e).decode("ascii"),
    }
    if kid is not None:
        entry["kid"] = kid
    return entry


@pytest.fixture
def make_jwks():
    """
    Factory fixture that returns a function.

    Usage in tests:
        doc = make_jwks(key.public_key(), kids=["k1"])
    """

    def _make(*public_keys: rsa.RSAPublicKey, kids: list[str] | None = None) -> dict:
        kids = kids or [None] * len(public_keys)  # type: ignore[list-item]
        return {"keys": [jwk_entry(k, kid) for k, kid in zip(public_keys, kids)]}

    return _make


@pytest.fixture
def make_token(rsa_private_key: rsa.RSAPrivateKey):
    """
    Factory fixture minting signed JWTs.

    Usage in tests:
        token = make_token({"scope": "system/*.read"})
        token = make_token(claims, key=other_key, algorithm="RS384", kid="k1")
    """

    def _make(
        claims: dict[str, Any] | None = None,
        *,
        key: Any = None,
        algorithm: str = "RS256",
        kid: str | None = None,
        expires_in: int | None = 300,
    ) -> str:
        payload = dict(claims or {})
        if expires_in is not None and "exp" not in payload:
            payload["exp"] = int(time.time()) + expires_in
        headers = {"kid": kid} if kid is not None else None
        return jwt.encode(
            payload,
            rsa_private_key if key is None else key,
            algorithm=algorithm,
            headers=headers,
        )

    return _make


def unsigned_token(header: dict[str, Any], payload: dict[str, Any] | None = None) -> str:
    """Build a three-segment token with an arbitrary header and a junk signature."""
    segments = [
        base64url_encode(json.dumps(header).encode("utf-8")),
        base64url_encode(json.dumps(payload or {}).encode("utf-8")),
        base64url_encode(b"signature"),
    ]
    return b".".join(segments).decode("ascii")


@pytest.fixture
def make_unsigned_token() -> Callable[..., str]:
    return unsigned_token


class FakeJWKClient(PyJWKClient):
    """
    PyJWKClient stand-in serving a fixed document (or error) without network.
    """

    def __init__(self, document: Any = None, error: Exception | None = None, delay: float = 0.0):
        self.document = document
        self.error = error
        self.delay = delay
        self.calls = 0

    def fetch_data(self) -> Any:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.document


@pytest.fixture
def fake_jwk_client() -> Callable[..., FakeJWKClient]:
    return FakeJWKClient


class FakeRedis:
    """
    Minimal redis stub for RedisCache tests.
    Stores bytes under keys and supports setex/delete.
    """

    def __init__(self):
        self._store: dict[str, tuple[bytes, int]] = {}

    def get(self, key: str):
        item = self._store.get(key)
        if item is None:
            return None
        data, expires_at = item
        if int(time.time()) >= expires_at:
            self._store.pop(key, None)
            return None
        return data

    def setex(self, key: str, ttl_seconds: int, value: str | bytes):
        expires_at = int(time.time()) + int(ttl_seconds)
        if isinstance(value, str):
            value = value.encode("utf-8")
        self._store[key] = (value, expires_at)

    def delete(self, key: str):
        self._store.pop(key, None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
