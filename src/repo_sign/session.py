"""Signing sessions bounding the lifetime of resolved private keys."""

from typing import Iterable, Optional, Union

from pydantic import ValidationError

from .config import SigningConfig
from .errors import ConfigError
from .keys import RandomSource
from .log import configure_logging, get_logger
from .resolver import RootKeys, resolve_authorized_keys
from .schema import Root, Signed, load_root
from .signer import sign_metadata
from .source import KeySource

logger = get_logger(__name__)


class SigningSession:
    """Resolve keys on entry, sign documents, release keys on exit.

    Example:
        >>> with SigningSession(root, ["keys/root.pem"]) as session:
        ...     session.sign(signed_root)
    """

    def __init__(
        self,
        root: Root,
        key_sources: Iterable[Union[KeySource, str]],
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.root = root
        self.key_sources = list(key_sources)
        self.rng = rng
        self._keys: Optional[RootKeys] = None

    @classmethod
    def from_config(
        cls, config: SigningConfig, rng: Optional[RandomSource] = None
    ) -> "SigningSession":
        """Create a session from configuration, loading the root from disk.

        Raises:
            ConfigError: If the configured root cannot be loaded
        """
        configure_logging(config.logging.format, config.logging.level, force=True)
        try:
            root = load_root(config.root_path)
        except OSError as e:
            raise ConfigError(str(config.root_path), e.strerror or str(e)) from e
        except ValidationError as e:
            raise ConfigError(str(config.root_path), f"invalid root metadata: {e}") from e
        return cls(root, config.key_sources, rng)

    @property
    def keys(self) -> RootKeys:
        if self._keys is None:
            raise RuntimeError("Signing session is not open")
        return self._keys

    def __enter__(self) -> "SigningSession":
        self._keys = resolve_authorized_keys(self.key_sources, self.root)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def sign(self, document: Signed) -> int:
        """Sign a document with the session's authorized keys."""
        return sign_metadata(self.root, self.keys, document, self.rng)

    def close(self) -> None:
        """Release every resolved key pair."""
        if self._keys is None:
            return
        for key_pair in self._keys.values():
            key_pair.release()
        logger.debug("session.closed", released=len(self._keys))
        self._keys.clear()
        self._keys = None
