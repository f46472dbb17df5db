"""
Remark trail: the append-only extension mechanism of Cow and Owner records.

Most ledger transactions do the same thing: load a Cow or Owner, append
one remark per trailing argument under a fixed list of namespaced keys,
and write the record back. Each of those transactions is described here
by a RemarkTransaction; the handlers run them all through one primitive.

Invariants:
    - Remarks are appended in argument order
    - Existing remarks, including ones with the same key, are never touched
    - len(keys) must equal the number of trailing arguments
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from ..errors import ValidationError
from ..schema.types import Cow, Owner


def namespaced(namespace: str, *names: str) -> tuple[str, ...]:
    """Remark keys under a namespace: namespaced("a", "x") -> ("a.x",)."""
    return tuple(f"{namespace}.{name}" for name in names)


def append_remarks(
    entity: Union[Cow, Owner],
    keys: Sequence[str],
    values: Sequence[str],
) -> None:
    """Append one remark per (key, value) pair, in order.

    Raises:
        ValidationError: If keys and values differ in length
    """
    if len(keys) != len(values):
        raise ValidationError(
            f"Expected {len(keys)} remark values, got {len(values)}",
            expected=len(keys),
            actual=len(values),
        )
    for key, value in zip(keys, values):
        entity.add_remark(key, value)


@dataclass(frozen=True)
class RemarkTransaction:
    """A transaction that only appends remarks to one record.

    Attributes:
        name: Function name callers invoke
        target: Entity class of the record named by the first argument
        keys: Remark keys, one per trailing argument
    """

    name: str
    target: type
    keys: tuple[str, ...]

    @property
    def arity(self) -> int:
        return 1 + len(self.keys)


REMARK_TRANSACTIONS: dict[str, RemarkTransaction] = {
    txn.name: txn
    for txn in (
        # Tuberculosis / brucellosis inspection
        RemarkTransaction(
            "addBTVaccine",
            Cow,
            namespaced(
                "addBTVaccine",
                "farm_id",
                "farm_nm",
                "farm_addr",
                "farm_user_nm",
                "farm_user_birth",
                "farm_user_addr",
                "inspection_date",
                "inspection_head",
                "inspection_method",
                "livestock",
                "kind",
                "sex",
                "age",
                "id_no",
                "inspection_result",
                "inspection_part",
                "inspection_user_nm",
            ),
        ),
        # Foot-and-mouth disease vaccination
        RemarkTransaction(
            "addFAMDVaccine",
            Cow,
            namespaced(
                "addFAMDVaccine",
                "farm_id",
                "farm_addr",
                "farm_tel",
                "breed_head",
                "item",
                "sex",
                "age",
                "id_no",
                "vaccination_date",
            ),
        ),
        RemarkTransaction(
            "addInfoDead",
            Cow,
            namespaced("addInfoDead", "farm_id", "id_no", "det_date", "det_reason", "det_method"),
        ),
        # Shipment to slaughter
        RemarkTransaction(
            "addInfoDeliver",
            Cow,
            namespaced("addInfoDeliver", "id_no", "rfid_no"),
        ),
        # Slaughter inspection
        RemarkTransaction(
            "addInfoInspect",
            Cow,
            namespaced(
                "addInfoInspect",
                "livestock",
                "id_no",
                "weight",
                "slaughter_nm",
                "seal_no",
                "slaughter_date",
                "farm_id",
                "farm_addr",
                "haccp_yn",
                "fale_method",
                "inspection_date",
                "inspection_part",
                "inspection_user_nm",
                "veterinarian_no",
            ),
        ),
        RemarkTransaction(
            "addInfoGradeResult",
            Cow,
            namespaced(
                "addInfoGradeResult",
                "grade_date",
                "quality_part",
                "quality_nm",
                "subscriber_nm",
                "subscriber_birth",
                "subscriber_company",
                "subscriber_addr",
                "slaughter_nm",
                "slaughter_addr",
                "id_no",
                "weight",
                "meat_quality_grade",
                "meat_weight_grade",
                "grade_head",
            ),
        ),
        RemarkTransaction(
            "addInfoInProcessesReportPurchase",
            Cow,
            namespaced(
                "addInfoInProcessesReportPurchase",
                "barcode_id",
                "deal_date",
                "origin",
                "part",
                "weight",
                "purchase_nm",
                "purchase_biz_no",
            ),
        ),
        RemarkTransaction(
            "addInfoReportPacking",
            Cow,
            namespaced(
                "addInfoReportPacking",
                "id_no",
                "barcode_id",
                "package_date",
                "part",
                "weight",
                "purchase_nm",
                "purchase_biz_no",
            ),
        ),
        RemarkTransaction(
            "addInfoReportSale",
            Cow,
            namespaced(
                "addInfoReportSale",
                "id_no",
                "barcode_id",
                "sale_date",
                "part",
                "weight",
                "sale_nm",
                "sale_biz_no",
            ),
        ),
        RemarkTransaction(
            "addInfoInSalesReportPurchase",
            Cow,
            namespaced(
                "addInfoInSalesReportPurchase",
                "barcode_id",
                "deal_date",
                "origin",
                "part",
                "weight",
                "purchase_nm",
                "purchase_biz_no",
            ),
        ),
        # Eco-friendly food certification
        RemarkTransaction(
            "addAut",
            Owner,
            namespaced(
                "addAut",
                "aut_flag",
                "validity_date",
                "farm_nm",
                "farm_birth_date",
                "farm_addr",
                "biz_addr",
                "aut_item",
                "breed_head",
                "aut_com",
                "aut_id",
                "aut_date",
            ),
        ),
    )
}

# Remarks written as a side effect of registering a linked record.
HACCP_OWNER_REMARKS = ("haccp.Id_no", "haccp.Rfid_no")
RFID_COW_REMARKS = ("rfid.Id_no", "rfid.Rfid_no")

_BUNDLE_FIELDS = (
    "id_no",
    "barcode_id",
    "package_date",
    "part",
    "weight",
    "purchase_nm",
    "purchase_biz_no",
)
BUNDLE_COW_REMARKS: dict[str, tuple[str, ...]] = {
    "registerInProcessesBundleNum": namespaced("registerInProcessesBundleNum", *_BUNDLE_FIELDS),
    "registerInSalesBundleNum": namespaced("registerInSalesBundleNum", *_BUNDLE_FIELDS),
}
