"""Key sources: where private key bytes come from.

A locator string is resolved to a ``KeySource`` through a scheme registry:

- ``file:///abs/path/key.pem`` or a bare path: a PEM file on disk
- ``env:VARNAME``: a PEM string held in an environment variable

Other stores (remote KMS, SSM, ...) plug in with ``register_source_scheme``.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Union
from urllib.parse import unquote, urlsplit

from .errors import SourceReadError
from .keys import KeyPair, parse_keypair
from .log import get_logger

logger = get_logger(__name__)

# Recommended mode for private key files (owner read/write only).
KEY_FILE_RECOMMENDED_MODE = 0o600


class KeySource(ABC):
    """A location yielding exactly one private key."""

    @property
    @abstractmethod
    def locator(self) -> str:
        """Locator string identifying this source in errors and logs."""

    @abstractmethod
    def read(self) -> bytes:
        """Retrieve the raw key bytes.

        Raises:
            SourceReadError: If the bytes cannot be retrieved
        """

    def as_keypair(self) -> KeyPair:
        """Read and parse the key held by this source."""
        return parse_keypair(self.read(), source=self.locator)

    def __str__(self) -> str:
        return self.locator


class LocalKeySource(KeySource):
    """PEM private key file on the local filesystem."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    @property
    def locator(self) -> str:
        return str(self.path)

    def read(self) -> bytes:
        warn_if_key_file_permissions_loose(self.path)
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise SourceReadError(self.locator, e.strerror or str(e)) from e

    @classmethod
    def from_locator(cls, locator: str) -> "LocalKeySource":
        parts = urlsplit(locator)
        if parts.scheme == "file":
            if parts.netloc not in ("", "localhost"):
                raise SourceReadError(locator, f"file URL names remote host {parts.netloc!r}")
            return cls(unquote(parts.path))
        return cls(locator)


class EnvKeySource(KeySource):
    """PEM private key held in an environment variable."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name

    @property
    def locator(self) -> str:
        return f"env:{self.var_name}"

    def read(self) -> bytes:
        value = os.environ.get(self.var_name)
        if not value:
            raise SourceReadError(self.locator, "environment variable is not set or empty")
        return value.encode("utf-8")

    @classmethod
    def from_locator(cls, locator: str) -> "EnvKeySource":
        return cls(locator.split(":", 1)[1])


def warn_if_key_file_permissions_loose(path: Path) -> None:
    """Warn when a key file is group/other readable."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return
    if (mode & 0o77) != 0:
        logger.warning(
            "source.key_file_permissions_loose",
            path=str(path),
            mode=oct(mode & 0o777),
            recommended=oct(KEY_FILE_RECOMMENDED_MODE),
        )


SourceFactory = Callable[[str], KeySource]

_SCHEMES: dict[str, SourceFactory] = {
    "": LocalKeySource.from_locator,
    "file": LocalKeySource.from_locator,
    "env": EnvKeySource.from_locator,
}


def register_source_scheme(scheme: str, factory: SourceFactory) -> None:
    """Register a factory for locators using ``scheme``.

    Args:
        scheme: URL scheme, e.g. "kms"
        factory: Called with the full locator, returns a KeySource
    """
    _SCHEMES[scheme.lower()] = factory


def key_source_from_locator(locator: str) -> KeySource:
    """Resolve a locator string into a key source.

    Raises:
        SourceReadError: If no factory is registered for the locator's scheme
    """
    scheme = urlsplit(locator).scheme.lower()
    # Windows drive letters parse as one-letter schemes.
    if len(scheme) == 1:
        scheme = ""
    factory = _SCHEMES.get(scheme)
    if factory is None:
        raise SourceReadError(locator, f"no key source registered for scheme {scheme!r}")
    return factory(locator)
