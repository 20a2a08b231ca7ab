"""Error taxonomy for repository metadata signing.

Every error carries the offending key source or role in ``details`` so the
caller can report it without re-deriving context. None of these are
transient: retrying with the same input reproduces the same failure.
"""

from typing import Any, Optional


class RepoSignError(Exception):
    """Base exception for all signing and key-management errors.

    Attributes:
        code: Error code following the repo-sign:<area>/<reason> pattern
        message: Human-readable error message
        details: Additional error context (source, role, ...)
    """

    def __init__(
        self, code: str, message: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class KeyUnrecognizedError(RepoSignError):
    """Input is not a PEM container, or its declared type is unsupported."""

    def __init__(self, reason: str, source: Optional[str] = None) -> None:
        super().__init__(
            code="repo-sign:key/unrecognized",
            message=f"Unrecognized key: {reason}",
            details={"source": source, "reason": reason},
        )
        self.source = source


class KeyRejectedError(RepoSignError):
    """PEM tag is recognized but the key bytes are structurally invalid."""

    def __init__(self, reason: str, source: Optional[str] = None) -> None:
        super().__init__(
            code="repo-sign:key/rejected",
            message=f"Key rejected: {reason}",
            details={"source": source, "reason": reason},
        )
        self.source = source


class SignError(RepoSignError):
    """The underlying cryptographic signing operation failed."""

    def __init__(
        self,
        reason: str,
        keyid: Optional[str] = None,
        role: Optional[str] = None,
    ) -> None:
        super().__init__(
            code="repo-sign:sign/failed",
            message=f"Signing failed: {reason}",
            details={"keyid": keyid, "role": role, "reason": reason},
        )
        self.keyid = keyid
        self.role = role


class SerializationError(RepoSignError):
    """The canonical encoding cannot represent the payload."""

    def __init__(self, reason: str, role: Optional[str] = None) -> None:
        super().__init__(
            code="repo-sign:serialize/failed",
            message=f"Canonical serialization failed: {reason}",
            details={"role": role, "reason": reason},
        )
        self.role = role


class SourceReadError(RepoSignError):
    """A key source's bytes could not be retrieved."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(
            code="repo-sign:source/read_failed",
            message=f"Failed to read key source {source!r}: {reason}",
            details={"source": source, "reason": reason},
        )
        self.source = source


class ConfigError(RepoSignError):
    """Signing configuration is unreadable or invalid."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            code="repo-sign:config/invalid",
            message=f"Invalid configuration {path!r}: {reason}",
            details={"path": path, "reason": reason},
        )
        self.path = path
