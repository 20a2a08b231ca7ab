"""Resolution of key sources into the key pairs a root actually trusts."""

from typing import Iterable, Optional, Union

from .keys import KeyPair
from .log import get_logger
from .schema import Root
from .source import KeySource, key_source_from_locator

logger = get_logger(__name__)

# Key ID -> key pair authorized by the root
RootKeys = dict[str, KeyPair]


def match_root_key(key_pair: KeyPair, root: Root) -> Optional[str]:
    """Find the key ID under which ``root`` declares this key pair's public key."""
    for keyid, key in root.keys.items():
        if key_pair.matches(key):
            return keyid
    return None


def resolve_authorized_keys(
    key_sources: Iterable[Union[KeySource, str]], root: Root
) -> RootKeys:
    """Materialize key sources and keep the ones the root trusts.

    Sources whose key is not in the root's key dictionary are excluded without
    error. When two sources resolve to the same key ID the later one wins.

    Args:
        key_sources: KeySource objects or locator strings
        root: Root of trust, read only

    Returns:
        Mapping of key ID to key pair; the only keys usable for signing

    Raises:
        SourceReadError: If a source cannot be read
        KeyUnrecognizedError: If a source does not hold a supported key
        KeyRejectedError: If a source holds an invalid key
    """
    keys: RootKeys = {}
    for entry in key_sources:
        source = key_source_from_locator(entry) if isinstance(entry, str) else entry
        key_pair = source.as_keypair()

        keyid = match_root_key(key_pair, root)
        if keyid is None:
            logger.info("resolver.key_excluded", source=source.locator)
            key_pair.release()
            continue

        previous = keys.get(keyid)
        if previous is not None:
            logger.info("resolver.key_replaced", source=source.locator, keyid=keyid)
            previous.release()
        keys[keyid] = key_pair
        logger.debug("resolver.key_authorized", source=source.locator, keyid=keyid)

    logger.info("resolver.resolved", authorized=len(keys))
    return keys
