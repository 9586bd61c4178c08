"""Static key provider for issuers that do not publish a key set."""

from ..protocols import KeyProvider, SigningKey


class StaticKeyProvider(KeyProvider):
    """Returns the same verification key for every token.

    Useful for HMAC deployments, where the "key" is a shared secret that is
    never published, and for pinning a single public key.

    The ``kid`` hint is ignored. The key is used for whatever algorithm the
    token names; a key of the wrong type fails at verification time.
    """

    def __init__(self, key: SigningKey) -> None:
        if isinstance(key, str) and not key:
            raise ValueError("Static signing key cannot be empty")
        self._key = key

    def get_key_for_token(self, kid: str | None = None) -> SigningKey:
        return self._key
