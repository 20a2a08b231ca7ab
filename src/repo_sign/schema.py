"""TUF metadata model: key descriptors, role payloads and signed envelopes."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Generic, Literal, Optional, TypeVar, Union

from Crypto.Hash import SHA256
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    SerializerFunctionWrapHandler,
    model_serializer,
)

from . import canonical


class RoleType(str, Enum):
    """Top-level roles declared by a root of trust."""

    ROOT = "root"
    TARGETS = "targets"
    SNAPSHOT = "snapshot"
    TIMESTAMP = "timestamp"


class KeyType(str, Enum):
    """Supported key types."""

    RSA = "rsa"


class KeyScheme(str, Enum):
    """Supported signature schemes."""

    RSASSA_PSS_SHA256 = "rsassa-pss-sha256"


class MetadataModel(BaseModel):
    """Base for every metadata object.

    Fields this model does not declare are kept and written back, and a
    ``null`` read from a document stays ``null``. Optional fields that were
    never set are left out, so a loaded document serializes to the same
    members it was read from.
    """

    model_config = ConfigDict(extra="allow")

    @model_serializer(mode="wrap")
    def _omit_unset_nulls(
        self, handler: SerializerFunctionWrapHandler, info: SerializationInfo
    ) -> dict[str, Any]:
        data = handler(self)
        for name, field in type(self).model_fields.items():
            if name in self.model_fields_set or getattr(self, name) is not None:
                continue
            key = (field.serialization_alias or field.alias or name) if info.by_alias else name
            data.pop(key, None)
        return data


class KeyVal(MetadataModel):
    """Encoded public key material (PEM SubjectPublicKeyInfo)."""

    model_config = ConfigDict(frozen=True)

    public: str


class Key(MetadataModel):
    """Public key descriptor as it appears in a root's key dictionary."""

    model_config = ConfigDict(frozen=True)

    keytype: KeyType = KeyType.RSA
    scheme: KeyScheme = KeyScheme.RSASSA_PSS_SHA256
    keyval: KeyVal

    def key_id(self) -> str:
        """SHA-256 of the descriptor's canonical JSON, as lowercase hex."""
        return SHA256.new(canonical.encode(self)).hexdigest()


class RoleKeys(MetadataModel):
    """Key IDs authorized for a role and the number of signatures required."""

    model_config = ConfigDict(frozen=True)

    keyids: list[str]
    threshold: int = Field(ge=1)


class Role(MetadataModel):
    """Fields shared by every role payload."""

    model_config = ConfigDict(populate_by_name=True)

    ROLE: ClassVar[RoleType]

    spec_version: str = "1.0.0"
    version: int = Field(default=1, ge=1)
    expires: datetime


class Root(Role):
    """Root of trust: role table and key dictionary.

    Read-only for the whole signing process.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ROLE: ClassVar[RoleType] = RoleType.ROOT

    type_: Literal["root"] = Field(default="root", alias="_type")
    consistent_snapshot: bool = True
    keys: dict[str, Key] = Field(default_factory=dict)
    roles: dict[RoleType, RoleKeys] = Field(default_factory=dict)


class TargetFile(MetadataModel):
    """A target file entry."""

    length: int = Field(ge=0)
    hashes: dict[str, str]
    custom: Optional[dict[str, Any]] = None


class Targets(Role):
    ROLE: ClassVar[RoleType] = RoleType.TARGETS

    type_: Literal["targets"] = Field(default="targets", alias="_type")
    targets: dict[str, TargetFile] = Field(default_factory=dict)


class MetaFile(MetadataModel):
    """Version (and optionally length and hashes) of another metadata file."""

    version: int = Field(ge=1)
    length: Optional[int] = Field(default=None, ge=0)
    hashes: Optional[dict[str, str]] = None


class Snapshot(Role):
    ROLE: ClassVar[RoleType] = RoleType.SNAPSHOT

    type_: Literal["snapshot"] = Field(default="snapshot", alias="_type")
    meta: dict[str, MetaFile] = Field(default_factory=dict)


class Timestamp(Role):
    ROLE: ClassVar[RoleType] = RoleType.TIMESTAMP

    type_: Literal["timestamp"] = Field(default="timestamp", alias="_type")
    meta: dict[str, MetaFile] = Field(default_factory=dict)


class Signature(MetadataModel):
    """One signature over a role payload."""

    model_config = ConfigDict(frozen=True)

    keyid: str
    sig: str  # hex

    @property
    def sig_bytes(self) -> bytes:
        return bytes.fromhex(self.sig)


T = TypeVar("T", bound=Role)


class Signed(MetadataModel, Generic[T]):
    """Signed envelope: a role payload plus its signatures."""

    signed: T
    signatures: list[Signature] = Field(default_factory=list)

    @property
    def role(self) -> RoleType:
        return type(self.signed).ROLE

    def to_json(self) -> str:
        """Serialize the envelope as pretty-printed JSON."""
        return self.model_dump_json(by_alias=True, indent=2)


def load_signed(path: Union[str, Path], role_cls: type[T]) -> "Signed[T]":
    """Load a signed metadata file.

    Args:
        path: Path to the JSON metadata file
        role_cls: Payload type expected in the file

    Returns:
        Parsed signed envelope
    """
    return Signed[role_cls].model_validate_json(Path(path).read_bytes())  # type: ignore[valid-type]


def load_root(path: Union[str, Path]) -> Root:
    """Load the root payload from a signed ``root.json``."""
    return load_signed(path, Root).signed
