"""
Unit Tests for the SQRL test identity

Signatures are checked with the public keys the identity publishes, over the
same bytes the server verifies.
"""

import pytest
import os

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from identity import FakeIdentity
from protocol import ClientBody, CliRequest, sqrl64_decode


def _verify(public_key: bytes, signature64: str, message: bytes) -> None:
    Ed25519PublicKey.from_public_bytes(public_key).verify(sqrl64_decode(signature64), message)


class TestKeyGeneration:
    """Test identity key material"""

    def test_key_sizes(self):
        """Test that public keys are raw 32 byte ed25519 keys"""
        fi = FakeIdentity.generate()
        assert len(fi.idk) == 32
        assert len(fi.vuk) == 32
        assert len(fi.suk) == 32

    def test_keys_independent(self):
        """Test that the three keys differ"""
        fi = FakeIdentity.generate()
        assert len({fi.idk, fi.vuk, fi.suk}) == 3

    def test_identities_unique(self):
        """Test that every generated identity is new"""
        idks = {FakeIdentity.generate().idk for _ in range(10)}
        assert len(idks) == 10

    def test_encoded_keys(self):
        """Test the sqrl64 forms of the public keys"""
        fi = FakeIdentity.generate()
        assert sqrl64_decode(fi.idk64) == fi.idk
        assert sqrl64_decode(fi.vuk64) == fi.vuk
        assert sqrl64_decode(fi.suk64) == fi.suk
        assert "=" not in fi.idk64


class TestSigning:
    """Test which fields each signing method fills in"""

    def test_sign_idk(self):
        """Test that authentication sets idk and a valid ids only"""
        fi = FakeIdentity.generate()
        req = CliRequest(client=ClientBody(cmd="query"), server="c2VydmVy")
        fi.sign_idk(req)

        assert req.client.idk == fi.idk64
        assert req.ids
        assert req.urs == ""
        assert req.client.vuk == ""
        _verify(fi.idk, req.ids, req.signing_string())

    def test_sign_idk_and_urs(self):
        """Test that both signatures validate over the same bytes"""
        fi = FakeIdentity.generate()
        req = CliRequest(client=ClientBody(cmd="enable"), server="c2VydmVy")
        fi.sign_idk_and_urs(req)

        assert req.client.idk == fi.idk64
        assert req.client.vuk == fi.vuk64
        message = req.signing_string()
        _verify(fi.idk, req.ids, message)
        _verify(fi.vuk, req.urs, message)

    def test_urs_not_valid_for_idk(self):
        """Test that the unlock signature uses the unlock key"""
        fi = FakeIdentity.generate()
        req = CliRequest(client=ClientBody(cmd="remove"), server="c2VydmVy")
        fi.sign_idk_and_urs(req)
        with pytest.raises(InvalidSignature):
            _verify(fi.idk, req.urs, req.signing_string())

    def test_signature_covers_server_value(self):
        """Test that changing the server context breaks ids"""
        fi = FakeIdentity.generate()
        req = CliRequest(client=ClientBody(cmd="query"), server="Zmlyc3Q")
        fi.sign_idk(req)
        req.server = "c2Vjb25k"
        with pytest.raises(InvalidSignature):
            _verify(fi.idk, req.ids, req.signing_string())

    def test_sign_empty_request(self):
        """Test that signing creates a client body when missing"""
        fi = FakeIdentity.generate()
        req = CliRequest(server="c2VydmVy")
        fi.sign_idk(req)
        assert req.client.idk == fi.idk64
        _verify(fi.idk, req.ids, req.signing_string())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
