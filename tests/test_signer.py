"""Tests for repo-sign metadata signing."""

import json
from pathlib import Path

import pytest
from Crypto.Hash import SHA256
from Crypto.PublicKey.RSA import RsaKey
from Crypto.Signature import pss

from repo_sign import canonical
from repo_sign.errors import SerializationError, SignError
from repo_sign.keys import RsaKeyPair
from repo_sign.resolver import resolve_authorized_keys
from repo_sign.schema import RoleType, Root, Signed, Snapshot, Targets, Timestamp, load_signed
from repo_sign.signer import sign_metadata
from repo_sign.verify import verify_role

from conftest import EXPIRES


def failing_after(successes: int):
    """Randomness source that fails once ``successes`` reads are used up."""
    remaining = [successes]

    def rng(n: int) -> bytes:
        if remaining[0] == 0:
            raise OSError("entropy exhausted")
        remaining[0] -= 1
        return b"\x11" * n

    return rng


class TestEndToEnd:
    """End-to-end signing scenarios."""

    def test_sign_root_with_trusted_key(
        self, root: Root, root_document: Signed[Root], key_file: Path, rsa_key: RsaKey
    ):
        """Test a trusted file-backed key signs the root role."""
        keys = resolve_authorized_keys([str(key_file)], root)
        k1 = RsaKeyPair(rsa_key).key_id()

        count = sign_metadata(root, keys, root_document)

        assert count == 1
        assert [s.keyid for s in root_document.signatures] == [k1]
        sig = root_document.signatures[0].sig_bytes
        assert len(sig) == rsa_key.size_in_bytes()

        message = canonical.encode(root_document.signed)
        pss.new(rsa_key.public_key()).verify(SHA256.new(message), sig)

    def test_untrusted_key_signs_nothing(
        self, root: Root, root_document: Signed[Root], other_key_file: Path
    ):
        """Test an unrelated key resolves to nothing and signing still succeeds."""
        keys = resolve_authorized_keys([str(other_key_file)], root)
        assert keys == {}

        count = sign_metadata(root, keys, root_document)

        assert count == 0
        assert root_document.signatures == []


class TestSignMetadata:
    """Tests for sign_metadata."""

    def test_one_signature_per_authorized_key(
        self,
        root: Root,
        targets_document: Signed[Targets],
        key_file: Path,
        third_key_file: Path,
    ):
        """Test every authorized and available key signs once, in role order."""
        keys = resolve_authorized_keys([str(third_key_file), str(key_file)], root)

        count = sign_metadata(root, keys, targets_document)

        assert count == 2
        signed_keyids = [s.keyid for s in targets_document.signatures]
        assert signed_keyids == root.roles[RoleType.TARGETS].keyids

    def test_only_role_keys_sign(
        self,
        root: Root,
        root_document: Signed[Root],
        key_file: Path,
        third_key_file: Path,
        rsa_key: RsaKey,
    ):
        """Test a key trusted for another role does not sign this one."""
        keys = resolve_authorized_keys([str(key_file), str(third_key_file)], root)
        assert len(keys) == 2

        assert sign_metadata(root, keys, root_document) == 1
        assert [s.keyid for s in root_document.signatures] == [RsaKeyPair(rsa_key).key_id()]

    def test_under_provisioned_role(
        self, root: Root, targets_document: Signed[Targets], key_file: Path
    ):
        """Test fewer keys than the threshold still signs with what is present."""
        keys = resolve_authorized_keys([str(key_file)], root)

        assert sign_metadata(root, keys, targets_document) == 1
        assert root.roles[RoleType.TARGETS].threshold == 2

    def test_undeclared_role(self, root: Root, key_file: Path):
        """Test a role missing from the root produces no signatures."""
        keys = resolve_authorized_keys([str(key_file)], root)
        document = Signed[Snapshot](signed=Snapshot(expires=EXPIRES))

        assert sign_metadata(root, keys, document) == 0
        assert document.signatures == []

    def test_keys_outside_map_never_used(self, root: Root):
        """Test a root-declared key absent from the key map does not sign."""
        document = Signed[Root](signed=root)
        assert sign_metadata(root, {}, document) == 0

    def test_payload_not_mutated(
        self, root: Root, targets_document: Signed[Targets], key_file: Path
    ):
        """Test signing leaves the payload unchanged."""
        keys = resolve_authorized_keys([str(key_file)], root)
        before = canonical.encode(targets_document.signed)

        sign_metadata(root, keys, targets_document)

        assert canonical.encode(targets_document.signed) == before

    def test_uses_randomness_source(
        self, root: Root, root_document: Signed[Root], key_file: Path
    ):
        """Test the supplied randomness source makes signatures reproducible."""
        keys = resolve_authorized_keys([str(key_file)], root)
        other = Signed[Root](signed=root)

        sign_metadata(root, keys, root_document, lambda n: b"\x07" * n)
        sign_metadata(root, keys, other, lambda n: b"\x07" * n)

        assert root_document.signatures == other.signatures

    def test_serialization_failure(self, root: Root, key_file: Path):
        """Test an unencodable payload raises SerializationError with the role."""
        keys = resolve_authorized_keys([str(key_file)], root)
        payload = Targets.model_validate(
            {
                "expires": EXPIRES,
                "targets": {"a": {"length": 1, "hashes": {}, "custom": {"x": object()}}},
            }
        )
        document = Signed[Targets](signed=payload)

        with pytest.raises(SerializationError) as exc_info:
            sign_metadata(root, keys, document)
        assert exc_info.value.role == "targets"
        assert document.signatures == []


class TestPartialFailure:
    """A failing key leaves the document untouched."""

    def test_all_or_nothing(
        self,
        root: Root,
        targets_document: Signed[Targets],
        key_file: Path,
        third_key_file: Path,
    ):
        """Test the first key's signature is discarded when the second key fails."""
        keys = resolve_authorized_keys([str(key_file), str(third_key_file)], root)

        with pytest.raises(SignError) as exc_info:
            sign_metadata(root, keys, targets_document, failing_after(1))

        assert targets_document.signatures == []
        assert exc_info.value.role == "targets"
        assert exc_info.value.keyid == root.roles[RoleType.TARGETS].keyids[1]

    def test_existing_signatures_kept_on_failure(
        self, root: Root, root_document: Signed[Root], key_file: Path
    ):
        """Test earlier signatures survive a failed re-sign."""
        keys = resolve_authorized_keys([str(key_file)], root)
        sign_metadata(root, keys, root_document)
        existing = list(root_document.signatures)

        with pytest.raises(SignError):
            sign_metadata(root, keys, root_document, failing_after(0))

        assert root_document.signatures == existing


class TestRepeatedSigning:
    """Re-signing replaces the entry for the same key ID."""

    def test_no_duplicate_signature(
        self, root: Root, root_document: Signed[Root], key_file: Path
    ):
        """Test signing twice keeps one entry per key ID."""
        keys = resolve_authorized_keys([str(key_file)], root)

        sign_metadata(root, keys, root_document, lambda n: b"\x01" * n)
        sign_metadata(root, keys, root_document, lambda n: b"\x02" * n)

        assert len(root_document.signatures) == 1

        expected = Signed[Root](signed=root)
        sign_metadata(root, keys, expected, lambda n: b"\x02" * n)
        assert root_document.signatures == expected.signatures

    def test_replace_keeps_position_and_other_keys(
        self,
        root: Root,
        targets_document: Signed[Targets],
        key_file: Path,
        third_key_file: Path,
    ):
        """Test replacing one key's signature leaves the other key's entry alone."""
        both = resolve_authorized_keys([str(key_file), str(third_key_file)], root)
        sign_metadata(root, both, targets_document)
        first, second = targets_document.signatures

        only_second = {second.keyid: both[second.keyid]}
        sign_metadata(root, only_second, targets_document)

        assert [s.keyid for s in targets_document.signatures] == [first.keyid, second.keyid]
        assert targets_document.signatures[0] == first

    def test_timestamp_role(self, rsa_key: RsaKey, key_file: Path):
        """Test signing a role other than root/targets."""
        key = RsaKeyPair(rsa_key).public_key()
        root = Root.model_validate(
            {
                "expires": EXPIRES,
                "keys": {key.key_id(): key},
                "roles": {"timestamp": {"keyids": [key.key_id()], "threshold": 1}},
            }
        )
        keys = resolve_authorized_keys([str(key_file)], root)
        document = Signed[Timestamp](
            signed=Timestamp.model_validate(
                {"expires": EXPIRES, "meta": {"snapshot.json": {"version": 4}}}
            )
        )

        assert sign_metadata(root, keys, document) == 1


class TestLoadedDocuments:
    """Signing metadata read from disk covers the document as written."""

    TARGETS = {
        "signed": {
            "_type": "targets",
            "spec_version": "1.0.0",
            "version": 1,
            "expires": "2030-01-01T00:00:00Z",
            "delegations": {"keys": {}, "roles": []},
            "targets": {"a": {"length": 1, "hashes": {"sha256": "00"}, "custom": None}},
        },
        "signatures": [],
    }

    def test_signature_covers_file_payload(
        self, root: Root, temp_dir: Path, key_file: Path, third_key_file: Path, rsa_key: RsaKey
    ):
        """Test undeclared members and explicit nulls are signed and written back."""
        path = temp_dir / "targets.json"
        path.write_text(json.dumps(self.TARGETS))
        on_disk = canonical.encode(self.TARGETS["signed"])

        document = load_signed(path, Targets)
        keys = resolve_authorized_keys([str(key_file), str(third_key_file)], root)
        assert sign_metadata(root, keys, document) == 2

        assert canonical.encode(document.signed) == on_disk
        k1 = RsaKeyPair(rsa_key).key_id()
        (sig,) = [s.sig_bytes for s in document.signatures if s.keyid == k1]
        pss.new(rsa_key.public_key()).verify(SHA256.new(on_disk), sig)

        path.write_text(document.to_json())
        written = json.loads(path.read_text())
        assert written["signed"]["delegations"] == {"keys": {}, "roles": []}
        assert written["signed"]["targets"]["a"]["custom"] is None
        assert canonical.encode(written["signed"]) == on_disk
        assert verify_role(root, load_signed(path, Targets)).is_valid()
