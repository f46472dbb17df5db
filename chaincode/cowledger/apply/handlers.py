"""
Transaction handlers for the Cow Ledger.

Every handler takes a TransactionContext and the positional string
arguments of the call, validates arity first, then loads, patches and
stages whole records. The dispatcher commits the context afterwards.

Handler families:
- Registration: registerCow, registerOwner, registerHACCP, registerRFID,
  registerInProcessesBundleNum, registerInSalesBundleNum
- Remark append: addRemark plus every RemarkTransaction in remarks.py
- Transfer: changeCowOwner
- Deletion: deleteCow
- Queries: query, queryAll*
- Seeding: initLedger

Invariants:
    - Arity is checked before any read
    - Registration is an unconditional upsert (no existence check on the key)
    - A registration key never carries another record type's prefix
    - Side records (certificate, tag, bundle) are staged before the record
      that receives the remarks
    - A Cow's embedded Owner is replaced wholesale, never merged

How to change safely:
    - Remark-only transactions belong in REMARK_TRANSACTIONS, not here
    - Keep all validation ahead of the first ctx.save()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Optional

from ..errors import CorruptRecordError, NotFoundError, ValidationError
from ..schema.keys import KeyType
from ..schema.types import Bundle, Certification, Cow, Owner, OwnerKind, TagAttachment
from .context import TransactionContext
from .query import QueryEngine
from .remarks import (
    BUNDLE_COW_REMARKS,
    HACCP_OWNER_REMARKS,
    REMARK_TRANSACTIONS,
    RFID_COW_REMARKS,
    RemarkTransaction,
    append_remarks,
)
from .seed import seed_records

logger = logging.getLogger(__name__)

Handler = Callable[[TransactionContext, Sequence[str]], Optional[bytes]]

# Listing transaction for each record type.
LISTING_FUNCTIONS: dict[KeyType, str] = {
    KeyType.COW: "queryAllCows",
    KeyType.OWNER: "queryAllOwners",
    KeyType.HACCP: "queryAllHACCPs",
    KeyType.RFID: "queryAllRFIDs",
    KeyType.BUNDLE: "queryAllBundles",
}


def check_arity(function: str, args: Sequence[str], expected: int) -> None:
    """Raise ValidationError unless exactly `expected` arguments were given."""
    if len(args) != expected:
        raise ValidationError.arity(function, expected, len(args))


def check_key(key_type: KeyType, key: str) -> None:
    """Reject keys carrying another type's prefix; log keys no listing will show.

    Raises:
        ValidationError: If the key starts with a different type's prefix
    """
    prefix_type = KeyType.of_key(key)
    if prefix_type is not None and prefix_type is not key_type:
        raise ValidationError(
            f"Key '{key}' belongs to {prefix_type.value} records, not {key_type.value}"
        )
    if not key_type.in_scan_range(key):
        start, end = key_type.scan_bounds()
        logger.warning(
            "Key falls outside the listing range for its type",
            extra={"key": key, "type": key_type.value, "range": f"[{start}, {end})"},
        )


class LedgerHandlers:
    """Implementation of every ledger transaction.

    Attributes:
        query_engine: Read path used by the query transactions

    Example:
        >>> handlers = LedgerHandlers(QueryEngine(store))
        >>> ctx = TransactionContext(store, "registerOwner")
        >>> handlers.register_owner(ctx, ["OWNER0", "FARM0", "Farm", "Iksan", "C", "Kim", "530118"])
        >>> ctx.commit()
    """

    def __init__(self, query_engine: QueryEngine) -> None:
        self.query_engine = query_engine

    def table(self) -> dict[str, Handler]:
        """Function name -> handler for every supported transaction."""
        table: dict[str, Handler] = {
            "initLedger": self.init_ledger,
            "registerCow": self.register_cow,
            "registerOwner": self.register_owner,
            "registerHACCP": self.register_haccp,
            "registerRFID": self.register_rfid,
            "registerInProcessesBundleNum": self._bundle_handler("registerInProcessesBundleNum"),
            "registerInSalesBundleNum": self._bundle_handler("registerInSalesBundleNum"),
            "changeCowOwner": self.change_cow_owner,
            "addRemark": self.add_remark,
            "deleteCow": self.delete_cow,
            "query": self.query,
        }
        for name, txn in REMARK_TRANSACTIONS.items():
            table[name] = self._remark_handler(txn)
        for key_type, name in LISTING_FUNCTIONS.items():
            table[name] = self._list_handler(name, key_type)
        return table

    # Registration

    def register_cow(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """registerCow(cowKey, id_no, birth_date, sex, father_id, mother_id, origin, ownerKey)"""
        check_arity("registerCow", args, 8)
        cow_key, owner_key = args[0], args[7]

        owner = ctx.load(Owner, owner_key)
        cow = Cow(
            id_no=args[1],
            birth_date=args[2],
            sex=args[3],
            father_id=args[4],
            mother_id=args[5],
            origin=args[6],
            owner=owner.snapshot(),
        )

        check_key(KeyType.COW, cow_key)
        ctx.save(cow_key, cow)
        logger.info(
            "Registered cow",
            extra={"key": cow_key, "id_no": cow.id_no, "owner_key": owner_key},
        )

    def register_owner(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """registerOwner(ownerKey, owner_id, name, addr, livestock, user_nm, user_birth, *subtype_fields)

        The subtype is chosen by the prefix of owner_id (FARM, SLAUGHTER,
        PROCESS, SALE) and fixes how many subtype fields must follow.
        """
        if len(args) < 2:
            raise ValidationError(
                "registerOwner needs at least an owner key and a discriminator",
                actual=len(args),
            )
        kind = OwnerKind.from_discriminator(args[1])
        check_arity("registerOwner", args, kind.arity)

        owner = Owner(
            owner_id=args[1],
            name=args[2],
            address=args[3],
            livestock=args[4],
            user_name=args[5],
            user_birth=args[6],
        )
        append_remarks(owner, kind.remark_keys, args[7:])

        check_key(KeyType.OWNER, args[0])
        ctx.save(args[0], owner)
        logger.info(
            "Registered owner",
            extra={"key": args[0], "owner_id": owner.owner_id, "kind": kind.name},
        )

    def register_haccp(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """registerHACCP(haccpKey, ownerKey, farm_id, farm_nm, farm_addr, apply_item, validity_date)"""
        check_arity("registerHACCP", args, 7)
        haccp_key, owner_key = args[0], args[1]

        owner = ctx.load(Owner, owner_key)
        certification = Certification(
            farm_id=args[2],
            farm_name=args[3],
            farm_address=args[4],
            apply_item=args[5],
            validity_date=args[6],
        )
        append_remarks(
            owner, HACCP_OWNER_REMARKS, (certification.farm_id, certification.farm_name)
        )

        check_key(KeyType.HACCP, haccp_key)
        ctx.save(haccp_key, certification)
        ctx.save(owner_key, owner)
        logger.info(
            "Registered HACCP certification",
            extra={"key": haccp_key, "owner_key": owner_key},
        )

    def register_rfid(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """registerRFID(cowKey, rfidKey)"""
        check_arity("registerRFID", args, 2)
        cow_key, rfid_key = args[0], args[1]

        cow = ctx.load(Cow, cow_key)
        append_remarks(cow, RFID_COW_REMARKS, (cow_key, rfid_key))

        check_key(KeyType.RFID, rfid_key)
        ctx.save(rfid_key, TagAttachment(cow_key=cow_key, rfid_no=rfid_key))
        ctx.save(cow_key, cow)
        logger.info("Attached RFID tag", extra={"cow_key": cow_key, "rfid_key": rfid_key})

    def _bundle_handler(self, function: str) -> Handler:
        remark_keys = BUNDLE_COW_REMARKS[function]

        def register_bundle(ctx: TransactionContext, args: Sequence[str]) -> None:
            # (bundleKey, cowKey, barcode_id, package_date, part, weight, purchase_nm, purchase_biz_no)
            check_arity(function, args, 1 + len(remark_keys))
            bundle_key, cow_key = args[0], args[1]

            cow = ctx.load(Cow, cow_key)
            bundle = Bundle(
                cow_key=cow_key,
                barcode_id=args[2],
                package_date=args[3],
                part=args[4],
                weight=args[5],
                purchase_name=args[6],
                purchase_biz_no=args[7],
            )
            append_remarks(cow, remark_keys, args[1:])

            check_key(KeyType.BUNDLE, bundle_key)
            ctx.save(bundle_key, bundle)
            ctx.save(cow_key, cow)
            logger.info(
                "Registered bundle",
                extra={"function": function, "key": bundle_key, "cow_key": cow_key},
            )

        register_bundle.__name__ = function
        return register_bundle

    # Remark append

    def _remark_handler(self, txn: RemarkTransaction) -> Handler:
        def append(ctx: TransactionContext, args: Sequence[str]) -> None:
            check_arity(txn.name, args, txn.arity)
            self.append_to(ctx, txn.target, args[0], txn.keys, args[1:])
            logger.info(
                "Appended remarks",
                extra={"function": txn.name, "key": args[0], "count": len(txn.keys)},
            )

        append.__name__ = txn.name
        return append

    def append_to(
        self,
        ctx: TransactionContext,
        target: type,
        key: str,
        remark_keys: Sequence[str],
        values: Sequence[str],
    ) -> None:
        """Load, append remarks, save: the primitive behind every remark transaction."""
        entity = ctx.load(target, key)
        append_remarks(entity, remark_keys, values)
        ctx.save(key, entity)

    def add_remark(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """addRemark(cowKey, key, value) - free-form remark with a caller-chosen key."""
        check_arity("addRemark", args, 3)
        self.append_to(ctx, Cow, args[0], (args[1],), (args[2],))
        logger.info("Appended remark", extra={"key": args[0], "remark_key": args[1]})

    # Transfer

    def change_cow_owner(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """changeCowOwner(cowKey, fromOwnerKeyHint, toOwnerKey)

        The hint is not enforced. A hint that names a different owner than
        the cow's current snapshot is logged and the transfer still happens.
        """
        check_arity("changeCowOwner", args, 3)
        cow_key, from_hint, to_owner_key = args

        cow = ctx.load(Cow, cow_key)
        new_owner = ctx.load(Owner, to_owner_key)
        self._check_transfer_hint(ctx, cow, from_hint)

        previous = cow.owner.owner_id
        cow.owner = new_owner.snapshot()

        ctx.save(cow_key, cow)
        logger.info(
            "Transferred cow",
            extra={
                "key": cow_key,
                "from_owner_id": previous,
                "to_owner_key": to_owner_key,
                "to_owner_id": new_owner.owner_id,
            },
        )

    def _check_transfer_hint(self, ctx: TransactionContext, cow: Cow, from_hint: str) -> None:
        raw = ctx.get_raw(from_hint)
        if raw is None:
            logger.warning("Transfer hint names no stored owner", extra={"hint": from_hint})
            return
        try:
            hinted = ctx.load(Owner, from_hint)
        except CorruptRecordError:
            logger.warning("Transfer hint is not a valid owner record", extra={"hint": from_hint})
            return
        if hinted.owner_id != cow.owner.owner_id:
            logger.warning(
                "Transfer hint does not match current owner",
                extra={
                    "hint": from_hint,
                    "hint_owner_id": hinted.owner_id,
                    "current_owner_id": cow.owner.owner_id,
                },
            )

    # Deletion

    def delete_cow(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """deleteCow(cowKey) - verify the record is a Cow, then remove it.

        Tags, bundles and certificates pointing at the cow are left in place.
        """
        check_arity("deleteCow", args, 1)
        cow_key = args[0]

        ctx.load(Cow, cow_key)
        ctx.delete(cow_key)
        logger.info("Deleted cow", extra={"key": cow_key})

    # Queries

    def query(self, ctx: TransactionContext, args: Sequence[str]) -> bytes:
        """query(type, key) - raw stored bytes of one record."""
        check_arity("query", args, 2)
        type_token, key = args

        raw = self.query_engine.get(type_token, key)
        if raw is None:
            raise NotFoundError(f"No {type_token} record at {key}", key=key, entity=type_token)
        return raw

    def _list_handler(self, function: str, key_type: KeyType) -> Handler:
        def list_all(ctx: TransactionContext, args: Sequence[str]) -> bytes:
            check_arity(function, args, 0)
            return self.query_engine.list_all_json(key_type)

        list_all.__name__ = function
        return list_all

    # Seeding

    def init_ledger(self, ctx: TransactionContext, args: Sequence[str]) -> None:
        """initLedger() - write the sample owners and cows."""
        check_arity("initLedger", args, 0)
        records = seed_records()
        for key, record in records:
            ctx.save(key, record)
        logger.info("Seeded ledger", extra={"records": len(records)})
