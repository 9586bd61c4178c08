"""
Issuer key-set (JWKS) key provider.

Resolves RSA signing keys from the authorization server's published key set,
with TTL caching, single-flight fetching and rate-limited forced refresh.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey, RSAPublicNumbers
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientError
from jwt.utils import from_base64url_uint

from ..cache_stores import InMemoryCache
from ..errors import KeyFetchError
from ..protocols import CacheStore, KeyProvider, KeySet
from ..refresh_gate import RefreshGate

logger = logging.getLogger(__name__)

_fetch_locks: dict[str, threading.Lock] = {}
_fetch_locks_guard = threading.Lock()


def _fetch_lock_for(address: str) -> threading.Lock:
    """Return the process-wide lock serializing fetches of one address."""
    with _fetch_locks_guard:
        return _fetch_locks.setdefault(address, threading.Lock())


def rsa_public_key_from_jwk(entry: Any) -> RSAPublicKey:
    """Build an RSA public key from a key-set entry's ``n`` and ``e``.

    Both values are base64url-encoded unsigned big-endian integers. Other
    entry fields (``kty``, ``alg``, ``use``) are not consulted.

    Raises:
        KeyFetchError: If the entry is not an object, lacks ``n``/``e``, or
            the numbers do not form a valid RSA key.
    """
    if not isinstance(entry, Mapping):
        raise KeyFetchError("Signing key entry is not a JSON object")

    raw_n = entry.get("n")
    raw_e = entry.get("e")
    if not isinstance(raw_n, str) or not isinstance(raw_e, str):
        raise KeyFetchError("Signing key entry is missing modulus or exponent")

    try:
        n = from_base64url_uint(raw_n)
        e = from_base64url_uint(raw_e)
        return RSAPublicNumbers(e, n).public_key()
    except (ValueError, TypeError) as exc:
        raise KeyFetchError("Signing key entry is not a valid RSA key") from exc


class JWKSKeyProvider(KeyProvider):
    """
    Resolves RSA verification keys from an issuer key-set endpoint.

    Resolution Strategy
    -------------------
    1) Key-set lookup
        - Cached document if present and not expired.
        - Otherwise one HTTP GET per address at a time; concurrent callers
          wait on the same fetch and then read the cached result.

    2) Entry selection
        - Default: the FIRST entry of ``keys``, regardless of the token's
          ``kid``. Suits authorization servers that publish a single key.
        - ``match_kid=True``: the entry whose ``kid`` equals the token
          header's ``kid``. Tokens without a ``kid`` fall back to the first
          entry.

    3) Forced refresh (``match_kid`` only, rate-limited)
        - If the ``kid`` is not in the cached set and the RefreshGate allows,
          refetch once and retry. Otherwise fail fast.

    4) Key construction
        - ``n``/``e`` decoded into an RSA public key.

    Failure never falls back to a default key: a KeyFetchError is raised.

    Parameters
    ----------
    address : str
        Issuer key-set URL.

    cache : CacheStore
        Cache for fetched key-set documents.

    ttl_seconds : int
        Cache lifetime. ``0`` disables caching; every call refetches.

    timeout : float
        Socket timeout for the key-set request, in seconds.

    match_kid : bool
        Select the key by the token's ``kid`` instead of taking the first.

    min_interval, alert_threshold :
        RefreshGate settings for forced refreshes.

    client : PyJWKClient
        Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        address: str,
        cache: CacheStore | None = None,
        ttl_seconds: int = 300,
        timeout: float = 30.0,
        match_kid: bool = False,
        min_interval: float = 60.0,
        alert_threshold: int = 40,
        client: PyJWKClient | None = None,
    ) -> None:
        if not address:
            raise ValueError("Key-set address is required")
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds cannot be negative, got {ttl_seconds}")

        self._address = address
        self._ttl = ttl_seconds
        self._cache = cache or InMemoryCache()
        self._match_kid = match_kid
        self._gate = RefreshGate(
            min_interval=min_interval, alert_threshold=alert_threshold
        )
        self._client = client or PyJWKClient(
            address,
            cache_jwk_set=False,
            timeout=timeout,
        )

    @property
    def address(self) -> str:
        return self._address

    def get_key_for_token(self, kid: str | None = None) -> RSAPublicKey:
        key_set = self._get_key_set()
        entry = self._select_entry(key_set, kid)
        if entry is not None:
            return rsa_public_key_from_jwk(entry)

        # Only reachable with match_kid: the kid may belong to a rotated key
        if not self._gate.allow():
            raise KeyFetchError("Signing key refresh throttled")

        logger.info("Refreshing key set from %s for unknown key ID", self._address)
        self._cache.delete(self._address)
        key_set = self._get_key_set()
        entry = self._select_entry(key_set, kid)
        if entry is None:
            raise KeyFetchError("No signing key matches the token key ID")
        return rsa_public_key_from_jwk(entry)

    def _select_entry(self, key_set: KeySet, kid: str | None) -> Any:
        keys = key_set["keys"]
        if self._match_kid and kid is not None:
            for entry in keys:
                if isinstance(entry, Mapping) and entry.get("kid") == kid:
                    return entry
            return None
        return keys[0]

    def _get_key_set(self) -> KeySet:
        if self._ttl == 0:
            return self._fetch()

        cached = self._cache.get(self._address)
        if cached is not None:
            return cached

        with _fetch_lock_for(self._address):
            # Another thread may have completed the fetch while we waited
            cached = self._cache.get(self._address)
            if cached is not None:
                return cached

            key_set = self._fetch()
            self._cache.set(self._address, key_set, ttl_seconds=self._ttl)
            return key_set

    def _fetch(self) -> KeySet:
        logger.debug("Fetching key set from %s", self._address)
        try:
            data = self._client.fetch_data()
        except PyJWKClientError as e:
            logger.warning("Unable to fetch key set from %s: %s", self._address, e)
            raise KeyFetchError("Unable to fetch signing keys") from e
        except ValueError as e:
            logger.warning("Key set from %s is not valid JSON", self._address)
            raise KeyFetchError("Signing key set is not valid JSON") from e

        if not isinstance(data, Mapping):
            raise KeyFetchError("Signing key set is not a JSON object")
        keys = data.get("keys")
        if not isinstance(keys, list) or not keys:
            raise KeyFetchError("Signing key set contains no keys")

        logger.info("Fetched %d signing key(s) from %s", len(keys), self._address)
        return data
