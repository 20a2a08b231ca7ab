"""Key material parsing and the signing primitive.

Private keys arrive as PEM containers. The container tag selects the key
pair variant through a closed dispatch table; adding an algorithm means
adding a tag entry and a ``KeyPair`` subclass, callers stay unchanged.

Supported algorithms:
- RSA with RSASSA-PSS / SHA-256 ("RSA PRIVATE KEY" containers)
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from Crypto.Hash import SHA256
from Crypto.IO import PEM
from Crypto.PublicKey import RSA
from Crypto.PublicKey.RSA import RsaKey
from Crypto.Random import get_random_bytes
from Crypto.Signature import pss

from .errors import KeyRejectedError, KeyUnrecognizedError, SignError
from .schema import Key, KeyScheme, KeyType, KeyVal

# Takes a byte count, returns that many random bytes.
RandomSource = Callable[[int], bytes]

# PSS salt length used by RSASSA-PSS-SHA256 (equal to the digest size).
PSS_SALT_BYTES = 32


def _checked_random(rng: RandomSource) -> RandomSource:
    def read(n: int) -> bytes:
        data = rng(n)
        if len(data) != n:
            raise ValueError(f"randomness source returned {len(data)} of {n} bytes")
        return data

    return read


class KeyPair(ABC):
    """An operational private key able to sign metadata.

    Private material is never compared or exposed; correlate a key pair with
    a trusted descriptor through ``matches`` only.
    """

    @abstractmethod
    def public_key(self) -> Key:
        """Export the public key descriptor for embedding in a root."""

    @abstractmethod
    def sign(self, message: bytes, rng: Optional[RandomSource] = None) -> bytes:
        """Sign a message.

        Raises:
            SignError: If the cryptographic operation fails
        """

    @abstractmethod
    def matches(self, key: Key) -> bool:
        """Check whether ``key`` describes this pair's public key."""

    @abstractmethod
    def release(self) -> None:
        """Drop the private material. Later ``sign`` calls fail."""

    def key_id(self) -> str:
        return self.public_key().key_id()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(keyid={self.key_id()[:16]})"


class RsaKeyPair(KeyPair):
    """RSA key pair signing with RSASSA-PSS over SHA-256."""

    def __init__(self, key: RsaKey, source: Optional[str] = None) -> None:
        if not key.has_private():
            raise KeyRejectedError("container holds no private key", source)
        self._key: Optional[RsaKey] = key
        self._public = key.public_key()

    @classmethod
    def from_der(cls, der: bytes, source: Optional[str] = None) -> "RsaKeyPair":
        """Decode PKCS#1 DER key bytes.

        Raises:
            KeyRejectedError: If the bytes are not a valid RSA private key
        """
        try:
            key = RSA.import_key(der)
        except (ValueError, IndexError, TypeError) as e:
            raise KeyRejectedError(f"invalid RSA key: {e}", source) from e
        return cls(key, source)

    @classmethod
    def generate(cls, bits: int = 3072) -> "RsaKeyPair":
        """Generate a fresh RSA key pair."""
        return cls(RSA.generate(bits))

    @property
    def modulus_len(self) -> int:
        """Modulus length in bytes (also the signature length)."""
        return self._public.size_in_bytes()

    def public_key(self) -> Key:
        return Key(
            keytype=KeyType.RSA,
            scheme=KeyScheme.RSASSA_PSS_SHA256,
            keyval=KeyVal(public=self._public.export_key(format="PEM").decode("ascii")),
        )

    def sign(self, message: bytes, rng: Optional[RandomSource] = None) -> bytes:
        if self._key is None:
            raise SignError("key pair has been released")

        signer = pss.new(
            self._key,
            salt_bytes=PSS_SALT_BYTES,
            rand_func=_checked_random(rng or get_random_bytes),
        )
        try:
            signature = signer.sign(SHA256.new(message))
        except Exception as e:
            raise SignError(str(e) or type(e).__name__) from e

        if len(signature) != self.modulus_len:
            raise SignError(
                f"signature is {len(signature)} bytes, expected {self.modulus_len}"
            )
        return signature

    def matches(self, key: Key) -> bool:
        if key.keytype != KeyType.RSA or key.scheme != KeyScheme.RSASSA_PSS_SHA256:
            return False
        try:
            declared = public_key_der(key)
        except ValueError:
            return False
        return declared == self._public.export_key(format="DER")

    def release(self) -> None:
        self._key = None


# PEM tag -> key pair constructor
_PEM_PARSERS: dict[str, Callable[[bytes, Optional[str]], KeyPair]] = {
    "RSA PRIVATE KEY": RsaKeyPair.from_der,
}


def parse_keypair(raw: bytes, source: Optional[str] = None) -> KeyPair:
    """Parse raw PEM bytes into an operational key pair.

    Args:
        raw: PEM-encoded private key
        source: Locator of the key source, attached to errors

    Returns:
        Key pair variant matching the PEM tag

    Raises:
        KeyUnrecognizedError: Not a PEM container, or the tag is unsupported
        KeyRejectedError: Tag recognized but the key bytes are invalid
    """
    try:
        der, tag, _ = PEM.decode(raw.decode("ascii"))
    except (ValueError, IndexError) as e:
        raise KeyUnrecognizedError(f"not a PEM container ({e})", source) from e

    parser = _PEM_PARSERS.get(tag)
    if parser is None:
        raise KeyUnrecognizedError(f"unsupported PEM type {tag!r}", source)
    return parser(der, source)


def public_key_der(key: Key) -> bytes:
    """Decode a descriptor's public key to DER SubjectPublicKeyInfo.

    Raises:
        ValueError: If the encoded public key cannot be decoded
    """
    try:
        imported = RSA.import_key(key.keyval.public)
    except (IndexError, TypeError) as e:
        raise ValueError(f"invalid public key: {e}") from e
    return imported.public_key().export_key(format="DER")


def rsa_public_key(n: int, e: int) -> Key:
    """Build a descriptor from a public modulus and exponent."""
    public = RSA.construct((n, e))
    return Key(keyval=KeyVal(public=public.export_key(format="PEM").decode("ascii")))


def public_key_from_pem(pem: bytes) -> Key:
    """Build a descriptor from PEM public key bytes."""
    public = RSA.import_key(pem).public_key()
    return Key(keyval=KeyVal(public=public.export_key(format="PEM").decode("ascii")))


def verify_signature(key: Key, message: bytes, signature: bytes) -> bool:
    """Verify an RSASSA-PSS-SHA256 signature against a descriptor."""
    if key.keytype != KeyType.RSA or key.scheme != KeyScheme.RSASSA_PSS_SHA256:
        return False
    try:
        public = RSA.import_key(key.keyval.public)
        pss.new(public, salt_bytes=PSS_SALT_BYTES).verify(SHA256.new(message), signature)
        return True
    except (ValueError, TypeError, IndexError):
        return False
