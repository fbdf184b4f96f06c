"""
SQRL Test Identity

Holds the key pairs a SQRL client uses to identify itself to a server and
signs cli requests with them. There is no master identity behind these
keys, so the server unlock key is a throwaway value.
"""

from typing import Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey, Ed25519PublicKey
)

from protocol import CliRequest, ClientBody, sqrl64_encode


def _raw_public(key: Ed25519PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw
    )


def _generate_key() -> Tuple[Ed25519PrivateKey, bytes]:
    private_key = Ed25519PrivateKey.generate()
    return private_key, _raw_public(private_key.public_key())


class FakeIdentity:
    """
    Key material for making test requests to a SQRL server.

    - idk: identity key, signs every request (ids)
    - vuk: verify unlock key, signs enable/remove requests (urs)
    - suk: server unlock key, only stored by the server
    """

    def __init__(self, idk_private: Ed25519PrivateKey,
                 vuk_private: Ed25519PrivateKey, suk: bytes):
        self._idk_private = idk_private
        self._vuk_private = vuk_private
        self.idk = _raw_public(idk_private.public_key())
        self.vuk = _raw_public(vuk_private.public_key())
        self.suk = suk

    @classmethod
    def generate(cls) -> 'FakeIdentity':
        """Create an identity from three freshly generated key pairs"""
        idk_private, _ = _generate_key()
        vuk_private, _ = _generate_key()
        # no master identity to derive suk from
        _, suk = _generate_key()
        return cls(idk_private, vuk_private, suk)

    @property
    def idk64(self) -> str:
        return sqrl64_encode(self.idk)

    @property
    def vuk64(self) -> str:
        return sqrl64_encode(self.vuk)

    @property
    def suk64(self) -> str:
        return sqrl64_encode(self.suk)

    def _client(self, req: CliRequest) -> ClientBody:
        if req.client is None:
            req.client = ClientBody()
        return req.client

    def sign_idk(self, req: CliRequest) -> None:
        """Set idk and sign the request with the identity key"""
        self._client(req).idk = self.idk64
        req.ids = self._sign_ids(req)

    def sign_idk_and_urs(self, req: CliRequest) -> None:
        """Set idk and vuk, then sign with both the identity and unlock keys"""
        client = self._client(req)
        client.idk = self.idk64
        client.vuk = self.vuk64
        req.ids = self._sign_ids(req)
        req.urs = self._sign_urs(req)

    def _sign_ids(self, req: CliRequest) -> str:
        return sqrl64_encode(self._idk_private.sign(req.signing_string()))

    def _sign_urs(self, req: CliRequest) -> str:
        return sqrl64_encode(self._vuk_private.sign(req.signing_string()))
