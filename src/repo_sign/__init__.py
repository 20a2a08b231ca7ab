"""Repository Metadata Signing Tool.

This package signs TUF repository metadata, including:
- Private key parsing from pluggable key sources
- Key authorization against a root of trust
- Canonical JSON encoding of role payloads
- RSASSA-PSS-SHA256 metadata signing
- Threshold verification of signed metadata
"""

__version__ = "0.1.0"
__author__ = "repo-sign maintainers"

from .errors import (
    ConfigError,
    KeyRejectedError,
    KeyUnrecognizedError,
    RepoSignError,
    SerializationError,
    SignError,
    SourceReadError,
)
from .keys import KeyPair, RsaKeyPair, parse_keypair
from .resolver import resolve_authorized_keys
from .schema import Key, Root, RoleType, Signature, Signed
from .session import SigningSession
from .signer import sign_metadata
from .source import EnvKeySource, KeySource, LocalKeySource, register_source_scheme
from .verify import VerificationResult, verify_role

__all__ = [
    "ConfigError",
    "KeyRejectedError",
    "KeyUnrecognizedError",
    "RepoSignError",
    "SerializationError",
    "SignError",
    "SourceReadError",
    "KeyPair",
    "RsaKeyPair",
    "parse_keypair",
    "resolve_authorized_keys",
    "Key",
    "Root",
    "RoleType",
    "Signature",
    "Signed",
    "SigningSession",
    "sign_metadata",
    "EnvKeySource",
    "KeySource",
    "LocalKeySource",
    "register_source_scheme",
    "VerificationResult",
    "verify_role",
]
