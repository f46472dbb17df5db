"""
Core record definitions for the Cow Ledger.

This module defines the entity model stored in the key-value store:
- Remark: an append-only (key, value) extension attribute
- Owner: a farm, slaughterhouse, processor or retailer
- Cow: an animal with an embedded Owner snapshot
- Certification: a HACCP certificate for a facility
- TagAttachment: an RFID tag attached to a cow
- Bundle: a processing/packaging lot cut from a cow

Owner subtypes share six base fields. Subtype-specific fields are not
struct fields; they are stored as namespaced remarks on the Owner
(e.g. "registerOwner.slaughter_tel") and read back through the typed
profile views defined here.

Invariants:
    - Base fields are always present on a stored record
    - Remarks keep insertion order and may repeat a key
    - A Cow's Owner is a snapshot of the custodian at registration or
      last transfer; edits made to the Owner record afterwards are not
      reflected until the next transfer
    - to_dict() field names are the persisted wire names

How to change safely:
    - Add new optional fields with defaults; never rename wire names
    - New owner subtypes need a discriminator prefix that overlaps no other
    - Subtype fields go in OwnerKind.remark_keys, not on Owner
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, ClassVar

from ..errors import ValidationError

EMPTY = "Empty"


@dataclass(frozen=True)
class Remark:
    """A single extension attribute.

    Attributes:
        key: Namespaced attribute name, e.g. "addInfoDead.det_date"
        value: Attribute value
    """

    key: str
    value: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary representation."""
        return {"Key": self.key, "Value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Remark:
        """Create from dictionary representation."""
        return cls(key=_require_str(data, "Key"), value=_require_str(data, "Value"))


def _require_str(data: dict[str, Any], name: str) -> str:
    value = data[name]
    if not isinstance(value, str):
        raise TypeError(f"Field '{name}' must be a string, got {type(value).__name__}")
    return value


def _remarks_from(data: dict[str, Any]) -> list[Remark]:
    raw = data.get("Remarks")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise TypeError("Field 'Remarks' must be a list")
    return [Remark.from_dict(r) for r in raw]


def find_remark(remarks: list[Remark], key: str) -> str | None:
    """Value of the first remark with this key, by linear scan."""
    for remark in remarks:
        if remark.key == key:
            return remark.value
    return None


# Owner subtype views


@dataclass(frozen=True)
class FarmProfile:
    """Farm owners carry no fields beyond the base set."""

    pass


@dataclass(frozen=True)
class SlaughterhouseProfile:
    """Slaughterhouse-specific fields.

    Attributes:
        tel: Facility phone number
        reg_no: Business registration number
    """

    tel: str | None
    reg_no: str | None


@dataclass(frozen=True)
class ProcessorProfile:
    biz_no: str | None


@dataclass(frozen=True)
class RetailerProfile:
    biz_no: str | None


class OwnerKind(Enum):
    """Owner subtypes, selected by the prefix of the Owner_id discriminator.

    Each member carries the ordered remark keys that hold its extra fields.
    Registration takes the six base fields plus one argument per key.
    """

    FARM = ("FARM", ())
    SLAUGHTERHOUSE = (
        "SLAUGHTER",
        ("registerOwner.slaughter_tel", "registerOwner.slaughter_reg_no"),
    )
    PROCESSOR = ("PROCESS", ("registerOwner.process_biz_no",))
    RETAILER = ("SALE", ("registerOwner.sale_biz_no",))

    def __init__(self, discriminator_prefix: str, remark_keys: tuple[str, ...]) -> None:
        self.discriminator_prefix = discriminator_prefix
        self.remark_keys = remark_keys

    @classmethod
    def from_discriminator(cls, owner_id: str) -> OwnerKind:
        """Resolve the subtype from an Owner_id such as "SLAUGHTER0".

        Raises:
            ValidationError: If the discriminator starts with no known prefix
        """
        for kind in cls:
            if owner_id.startswith(kind.discriminator_prefix):
                return kind
        valid = [k.discriminator_prefix for k in cls]
        raise ValidationError(
            f"Unrecognized owner discriminator '{owner_id}'. Must start with one of: {valid}"
        )

    @property
    def arity(self) -> int:
        """Total registerOwner argument count for this subtype."""
        return 1 + len(Owner.BASE_FIELDS) + len(self.remark_keys)


@dataclass
class Owner:
    """A custodian of cattle: farm, slaughterhouse, processor or retailer.

    Attributes:
        owner_id: Discriminator, e.g. "FARM0" or "SALE3" (not the storage key)
        name: Business name
        address: Business address
        livestock: Kind of livestock handled, or "Empty"
        user_name: Manager name
        user_birth: Manager birth date, or "Empty"
        remarks: Subtype fields and audit trail
    """

    BASE_FIELDS: ClassVar[tuple[str, ...]] = (
        "Owner_id",
        "Owner_nm",
        "Owner_addr",
        "Livestock",
        "Owner_user_nm",
        "Owner_user_birth",
    )

    owner_id: str
    name: str
    address: str
    livestock: str
    user_name: str
    user_birth: str
    remarks: list[Remark] = dataclass_field(default_factory=list)

    @property
    def kind(self) -> OwnerKind:
        return OwnerKind.from_discriminator(self.owner_id)

    def profile(self) -> FarmProfile | SlaughterhouseProfile | ProcessorProfile | RetailerProfile:
        """Typed view of the subtype fields held in remarks.

        The first remark carrying each subtype key wins; later audit remarks
        with the same key do not shadow the registered value.
        """
        kind = self.kind
        values = [find_remark(self.remarks, key) for key in kind.remark_keys]
        if kind is OwnerKind.SLAUGHTERHOUSE:
            return SlaughterhouseProfile(tel=values[0], reg_no=values[1])
        if kind is OwnerKind.PROCESSOR:
            return ProcessorProfile(biz_no=values[0])
        if kind is OwnerKind.RETAILER:
            return RetailerProfile(biz_no=values[0])
        return FarmProfile()

    def add_remark(self, key: str, value: str) -> None:
        self.remarks.append(Remark(key, value))

    def snapshot(self) -> Owner:
        """Independent copy suitable for embedding in a Cow."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "Owner_id": self.owner_id,
            "Owner_nm": self.name,
            "Owner_addr": self.address,
            "Livestock": self.livestock,
            "Owner_user_nm": self.user_name,
            "Owner_user_birth": self.user_birth,
            "Remarks": [r.to_dict() for r in self.remarks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Owner:
        """Create from dictionary representation."""
        return cls(
            owner_id=_require_str(data, "Owner_id"),
            name=_require_str(data, "Owner_nm"),
            address=_require_str(data, "Owner_addr"),
            livestock=_require_str(data, "Livestock"),
            user_name=_require_str(data, "Owner_user_nm"),
            user_birth=_require_str(data, "Owner_user_birth"),
            remarks=_remarks_from(data),
        )


@dataclass
class Cow:
    """An animal record.

    Attributes:
        id_no: Animal identity number
        birth_date: Birth date
        sex: Sex
        father_id: Father's identity number
        mother_id: Mother's identity number
        origin: Place of origin
        owner: Snapshot of the current custodian
        remarks: Audit trail (vaccinations, inspections, reports, ...)
    """

    id_no: str
    birth_date: str
    sex: str
    father_id: str
    mother_id: str
    origin: str
    owner: Owner
    remarks: list[Remark] = dataclass_field(default_factory=list)

    def add_remark(self, key: str, value: str) -> None:
        self.remarks.append(Remark(key, value))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "Id_no": self.id_no,
            "Birth_date": self.birth_date,
            "Sex": self.sex,
            "Father_id": self.father_id,
            "Mother_id": self.mother_id,
            "Origin": self.origin,
            "Owner": self.owner.to_dict(),
            "Remarks": [r.to_dict() for r in self.remarks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cow:
        """Create from dictionary representation."""
        owner = data["Owner"]
        if not isinstance(owner, dict):
            raise TypeError("Field 'Owner' must be an object")
        return cls(
            id_no=_require_str(data, "Id_no"),
            birth_date=_require_str(data, "Birth_date"),
            sex=_require_str(data, "Sex"),
            father_id=_require_str(data, "Father_id"),
            mother_id=_require_str(data, "Mother_id"),
            origin=_require_str(data, "Origin"),
            owner=Owner.from_dict(owner),
            remarks=_remarks_from(data),
        )


@dataclass(frozen=True)
class Certification:
    """HACCP certificate for a facility.

    Linked to an Owner only through remarks written on that Owner.
    """

    farm_id: str
    farm_name: str
    farm_address: str
    apply_item: str
    validity_date: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "Farm_id": self.farm_id,
            "Farm_nm": self.farm_name,
            "Farm_addr": self.farm_address,
            "Apply_item": self.apply_item,
            "Validity_date": self.validity_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Certification:
        """Create from dictionary representation."""
        return cls(
            farm_id=_require_str(data, "Farm_id"),
            farm_name=_require_str(data, "Farm_nm"),
            farm_address=_require_str(data, "Farm_addr"),
            apply_item=_require_str(data, "Apply_item"),
            validity_date=_require_str(data, "Validity_date"),
        )


@dataclass(frozen=True)
class TagAttachment:
    """RFID tag attached to a cow; stored under the tag id."""

    cow_key: str
    rfid_no: str

    def to_dict(self) -> dict[str, str]:
        return {"Id_no": self.cow_key, "Rfid_no": self.rfid_no}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TagAttachment:
        return cls(cow_key=_require_str(data, "Id_no"), rfid_no=_require_str(data, "Rfid_no"))


@dataclass(frozen=True)
class Bundle:
    """A packaging lot cut from a cow.

    Attributes:
        cow_key: Storage key of the source cow
        barcode_id: Lot barcode
        package_date: Packaging date
        part: Cut
        weight: Weight
        purchase_name: Counterparty business name
        purchase_biz_no: Counterparty business registration number
    """

    cow_key: str
    barcode_id: str
    package_date: str
    part: str
    weight: str
    purchase_name: str
    purchase_biz_no: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "Id_no": self.cow_key,
            "Barcode_id": self.barcode_id,
            "Package_date": self.package_date,
            "Part": self.part,
            "Weight": self.weight,
            "Purchase_nm": self.purchase_name,
            "Purchase_biz_no": self.purchase_biz_no,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Bundle:
        """Create from dictionary representation."""
        return cls(
            cow_key=_require_str(data, "Id_no"),
            barcode_id=_require_str(data, "Barcode_id"),
            package_date=_require_str(data, "Package_date"),
            part=_require_str(data, "Part"),
            weight=_require_str(data, "Weight"),
            purchase_name=_require_str(data, "Purchase_nm"),
            purchase_biz_no=_require_str(data, "Purchase_biz_no"),
        )
