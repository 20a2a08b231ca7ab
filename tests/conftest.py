"""Pytest configuration and fixtures for repo-sign tests."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Generator

import pytest
from Crypto.PublicKey import RSA
from Crypto.PublicKey.RSA import RsaKey

from repo_sign.keys import RsaKeyPair
from repo_sign.schema import RoleKeys, RoleType, Root, Signed, Targets

EXPIRES = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="session")
def rsa_key() -> RsaKey:
    """RSA private key trusted by the sample root."""
    return RSA.generate(2048)


@pytest.fixture(scope="session")
def other_rsa_key() -> RsaKey:
    """RSA private key unrelated to the sample root."""
    return RSA.generate(2048)


@pytest.fixture(scope="session")
def third_rsa_key() -> RsaKey:
    """Second RSA key, authorized for targets only in the sample root."""
    return RSA.generate(2048)


@pytest.fixture
def write_key(temp_dir: Path) -> Callable[[RsaKey, str], Path]:
    """Write an RSA key as a PKCS#1 PEM file with owner-only permissions."""

    def write(key: RsaKey, name: str) -> Path:
        path = temp_dir / name
        path.write_bytes(key.export_key(format="PEM", pkcs=1))
        path.chmod(0o600)
        return path

    return write


@pytest.fixture
def key_file(write_key, rsa_key: RsaKey) -> Path:
    """PEM file holding the trusted key."""
    return write_key(rsa_key, "root.pem")


@pytest.fixture
def other_key_file(write_key, other_rsa_key: RsaKey) -> Path:
    """PEM file holding the untrusted key."""
    return write_key(other_rsa_key, "other.pem")


@pytest.fixture
def third_key_file(write_key, third_rsa_key: RsaKey) -> Path:
    """PEM file holding the targets-only key."""
    return write_key(third_rsa_key, "targets.pem")


@pytest.fixture
def root(rsa_key: RsaKey, third_rsa_key: RsaKey) -> Root:
    """Root trusting the first key for root/targets and the third for targets."""
    k1 = RsaKeyPair(rsa_key).public_key()
    k3 = RsaKeyPair(third_rsa_key).public_key()
    return Root(
        expires=EXPIRES,
        keys={k1.key_id(): k1, k3.key_id(): k3},
        roles={
            RoleType.ROOT: RoleKeys(keyids=[k1.key_id()], threshold=1),
            RoleType.TARGETS: RoleKeys(keyids=[k1.key_id(), k3.key_id()], threshold=2),
        },
    )


@pytest.fixture
def root_document(root: Root) -> Signed[Root]:
    """Unsigned root envelope."""
    return Signed[Root](signed=root)


@pytest.fixture
def targets_document() -> Signed[Targets]:
    """Unsigned targets envelope with one target."""
    return Signed[Targets](
        signed=Targets.model_validate(
            {
                "_type": "targets",
                "version": 3,
                "expires": EXPIRES,
                "targets": {
                    "os-1.2.0.img": {
                        "length": 1024,
                        "hashes": {"sha512": "ab" * 64},
                        "custom": {"variant": "aws-k8s", "arch": "x86_64"},
                    }
                },
            }
        )
    )
