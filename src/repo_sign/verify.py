"""Threshold verification of signed role metadata.

Kept apart from signing: the signer only produces signatures, this module
decides whether a document carries enough of them.
"""

from dataclasses import dataclass, field
from typing import Optional

from . import canonical
from .keys import verify_signature
from .schema import RoleType, Root, Signed


@dataclass
class VerificationResult:
    """Result of verifying one signed document against a root."""

    role: RoleType
    threshold: int = 0
    role_declared: bool = False

    # Distinct key IDs, in signature order
    valid_keyids: list[str] = field(default_factory=list)
    invalid_keyids: list[str] = field(default_factory=list)
    unauthorized_keyids: list[str] = field(default_factory=list)

    details: str = ""

    def is_valid(self) -> bool:
        """Check if the role threshold is met by valid signatures."""
        return self.role_declared and len(self.valid_keyids) >= self.threshold

    @property
    def missing(self) -> int:
        """Signatures still needed to reach the threshold."""
        return max(self.threshold - len(self.valid_keyids), 0)


def verify_role(root: Root, document: Signed, payload: Optional[bytes] = None) -> VerificationResult:
    """Verify a signed document's signatures against its role's threshold.

    Each key ID counts once, however many signature entries carry it.

    Args:
        root: Root of trust declaring keys and thresholds
        document: Signed envelope to check
        payload: Pre-computed canonical payload bytes (encoded if omitted)

    Returns:
        VerificationResult with per-key outcome
    """
    result = VerificationResult(role=document.role)

    role_keys = root.roles.get(document.role)
    if role_keys is None:
        result.details = f"Role {document.role.value!r} is not declared in root"
        return result

    result.role_declared = True
    result.threshold = role_keys.threshold

    if payload is None:
        payload = canonical.encode(document.signed, role=document.role.value)

    authorized = set(role_keys.keyids)
    # key ID -> verified; a later entry may still verify an earlier failure
    outcomes: dict[str, bool] = {}
    for signature in document.signatures:
        keyid = signature.keyid
        if outcomes.get(keyid):
            continue

        key = root.keys.get(keyid)
        if keyid not in authorized or key is None:
            if keyid not in result.unauthorized_keyids:
                result.unauthorized_keyids.append(keyid)
            continue

        try:
            outcomes[keyid] = verify_signature(key, payload, signature.sig_bytes)
        except ValueError:
            outcomes.setdefault(keyid, False)

    result.valid_keyids = [keyid for keyid, ok in outcomes.items() if ok]
    result.invalid_keyids = [keyid for keyid, ok in outcomes.items() if not ok]

    result.details = (
        f"{len(result.valid_keyids)}/{result.threshold} valid signatures "
        f"for {document.role.value}"
    )
    return result
