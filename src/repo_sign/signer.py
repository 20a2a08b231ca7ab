"""Signing of role metadata with every authorized key available.

The signer is a best-effort partial signer: it produces one signature per
key that is both authorized for the document's role and present in the
resolved key map. Whether enough signatures exist is decided at verification
time against the role threshold (see ``repo_sign.verify``), never here.

A call is all-or-nothing: signatures are attached only after every key has
signed, so a failure leaves the document untouched. Re-signing with a key
that already has a signature on the document replaces that entry in place.
"""

from typing import Optional

from . import canonical
from .errors import SignError
from .keys import RandomSource
from .log import get_logger
from .resolver import RootKeys
from .schema import Root, Signature, Signed

logger = get_logger(__name__)


def sign_metadata(
    root: Root,
    keys: RootKeys,
    document: Signed,
    rng: Optional[RandomSource] = None,
) -> int:
    """Sign a document with every authorized key available.

    Args:
        root: Root of trust declaring the role's key IDs
        keys: Authorized key map from ``resolve_authorized_keys``
        document: Signed envelope, updated in place
        rng: Randomness source for PSS padding

    Returns:
        Number of signatures produced; 0 is a success with nothing signed

    Raises:
        SerializationError: If the payload has no canonical encoding
        SignError: If any contributing key fails to sign
    """
    role = document.role
    role_keys = root.roles.get(role)
    if role_keys is None:
        logger.warning("signer.role_not_declared", role=role.value)
        return 0

    signing_keyids = [keyid for keyid in dict.fromkeys(role_keys.keyids) if keyid in keys]
    if not signing_keyids:
        logger.warning(
            "signer.no_authorized_keys",
            role=role.value,
            threshold=role_keys.threshold,
        )
        return 0

    data = canonical.encode(document.signed, role=role.value)

    produced = []
    for keyid in signing_keyids:
        try:
            sig = keys[keyid].sign(data, rng)
        except SignError as e:
            raise SignError(e.details["reason"], keyid=keyid, role=role.value) from e
        produced.append(Signature(keyid=keyid, sig=sig.hex()))

    positions = {signature.keyid: i for i, signature in enumerate(document.signatures)}
    for signature in produced:
        if signature.keyid in positions:
            document.signatures[positions[signature.keyid]] = signature
        else:
            positions[signature.keyid] = len(document.signatures)
            document.signatures.append(signature)
        logger.debug("signer.signature_added", role=role.value, keyid=signature.keyid)

    logger.info(
        "signer.signed",
        role=role.value,
        signatures=len(produced),
        threshold=role_keys.threshold,
    )
    return len(produced)
