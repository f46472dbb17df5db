"""
Integration tests for ledger transactions through the dispatcher.

Tests cover:
- Owner registration per subtype
- Cow registration and the owner snapshot
- Side-record registrations (HACCP, RFID, bundles)
- Remark transactions
- Ownership transfer
- Deletion and listing
- Atomicity of failed transactions
"""

import json

import pytest

from chaincode.cowledger.apply import REMARK_TRANSACTIONS, Ledger
from chaincode.cowledger.schema import Cow, Owner, OwnerKind, decode
from chaincode.cowledger.schema.types import SlaughterhouseProfile
from chaincode.cowledger.store import InMemoryKeyValueStore, StoreError

from tests.builders import bundle_args, cow_args, owner_args


def stored_cow(ledger, key="COW0"):
    return decode(Cow, key, ledger.store.get(key))


def stored_owner(ledger, key="OWNER0"):
    return decode(Owner, key, ledger.store.get(key))


def remark_pairs(entity):
    return [(r.key, r.value) for r in entity.remarks]


class TestDispatch:
    """Tests for function routing and responses."""

    def test_unknown_function(self, ledger):
        """Unknown function names are validation failures."""
        response = ledger.invoke("registerPig", [])
        assert not response.success
        assert response.error_code == "VALIDATION_ERROR"
        assert "registerPig" in response.error

    def test_arity_message(self, ledger):
        """Wrong argument counts report expected and actual."""
        response = ledger.invoke("registerRFID", ["COW0"])
        assert response.error == (
            "Incorrect number of arguments for registerRFID. Expecting 2, got 1"
        )
        assert response.details == {"expected": 2, "actual": 1}

    def test_function_surface(self, ledger):
        """Every transaction is registered."""
        expected = {
            "initLedger",
            "registerCow",
            "registerOwner",
            "registerHACCP",
            "registerRFID",
            "registerInProcessesBundleNum",
            "registerInSalesBundleNum",
            "changeCowOwner",
            "addRemark",
            "deleteCow",
            "query",
            "queryAllCows",
            "queryAllOwners",
            "queryAllHACCPs",
            "queryAllRFIDs",
            "queryAllBundles",
            *REMARK_TRANSACTIONS,
        }
        assert set(ledger.functions) == expected

    def test_stats(self, ledger):
        """Invocations and rejections are counted."""
        ledger.invoke("initLedger", [])
        ledger.invoke("deleteCow", ["COW9"])
        assert ledger.stats["invoked_count"] == 2
        assert ledger.stats["error_count"] == 1

    def test_store_error_propagates(self, memory_store):
        """Store failures are not turned into failure responses."""
        ledger = Ledger(memory_store)
        memory_store.inject_failure(StoreError("disk full"))
        with pytest.raises(StoreError):
            ledger.invoke("registerOwner", owner_args())


class TestRegisterOwner:
    """Tests for registerOwner."""

    def test_farm(self, ledger):
        """Farm owners round-trip their base fields with no remarks."""
        assert ledger.invoke("registerOwner", owner_args()).success

        owner = stored_owner(ledger)
        assert owner.owner_id == "FARM0"
        assert owner.name == "Hanwoo Farm"
        assert owner.address == "Iksan"
        assert owner.livestock == "C"
        assert owner.user_name == "Kim Duck Bae"
        assert owner.user_birth == "530118"
        assert owner.remarks == []

    def test_slaughterhouse(self, ledger):
        """Slaughterhouse fields become namespaced remarks in call order."""
        args = owner_args("OWNER1", "SLAUGHTER1", "063-111-2222", "REG-7")
        assert ledger.invoke("registerOwner", args).success

        owner = stored_owner(ledger, "OWNER1")
        assert remark_pairs(owner) == [
            ("registerOwner.slaughter_tel", "063-111-2222"),
            ("registerOwner.slaughter_reg_no", "REG-7"),
        ]
        assert owner.kind is OwnerKind.SLAUGHTERHOUSE
        assert owner.profile() == SlaughterhouseProfile(tel="063-111-2222", reg_no="REG-7")

    @pytest.mark.parametrize(
        "owner_id,remark_key",
        [
            ("PROCESS2", "registerOwner.process_biz_no"),
            ("SALE3", "registerOwner.sale_biz_no"),
        ],
    )
    def test_single_field_subtypes(self, ledger, owner_id, remark_key):
        """Processor and retailer carry one business number remark."""
        assert ledger.invoke("registerOwner", owner_args("OWNER2", owner_id, "123-45")).success
        assert remark_pairs(stored_owner(ledger, "OWNER2")) == [(remark_key, "123-45")]

    @pytest.mark.parametrize(
        "args",
        [
            owner_args("OWNER0", "FARM0", "extra"),
            owner_args("OWNER0", "SLAUGHTER0", "063-111-2222"),
            owner_args("OWNER0", "SALE0"),
            ["OWNER0"],
            [],
        ],
    )
    def test_wrong_arity(self, ledger, args):
        """Each subtype has a fixed argument count."""
        response = ledger.invoke("registerOwner", args)
        assert response.error_code == "VALIDATION_ERROR"
        assert ledger.store.get("OWNER0") is None

    def test_unknown_discriminator(self, ledger):
        """Discriminators must start with a known subtype prefix."""
        response = ledger.invoke("registerOwner", owner_args("OWNER0", "01"))
        assert response.error_code == "VALIDATION_ERROR"
        assert ledger.store.get("OWNER0") is None

    def test_upsert(self, ledger):
        """Registering an existing key overwrites it."""
        ledger.invoke("registerOwner", owner_args())
        ledger.invoke("registerOwner", owner_args(name="Renamed Farm"))
        assert stored_owner(ledger).name == "Renamed Farm"


class TestRegisterCow:
    """Tests for registerCow."""

    def test_embeds_owner_snapshot(self, owned_cow):
        """The cow carries a full copy of its owner."""
        cow = stored_cow(owned_cow)
        assert cow.id_no == "180501-2"
        assert cow.origin == "Korea Jeonbuk"
        assert cow.owner == stored_owner(owned_cow)
        assert cow.remarks == []

    def test_snapshot_includes_owner_remarks(self, ledger):
        """Subtype remarks are part of the snapshot."""
        ledger.invoke("registerOwner", owner_args("OWNER1", "SLAUGHTER1", "tel", "reg"))
        ledger.invoke("registerCow", cow_args("COW0", "OWNER1"))
        assert len(stored_cow(ledger).owner.remarks) == 2

    def test_missing_owner(self, ledger):
        """A missing owner fails with NotFoundError and writes nothing."""
        response = ledger.invoke("registerCow", cow_args("COW0", "OWNER9"))

        assert response.error_code == "NOT_FOUND"
        assert response.details["key"] == "OWNER9"
        assert ledger.invoke("query", ["COW", "COW0"]).error_code == "NOT_FOUND"

    def test_corrupt_owner(self, ledger):
        """An owner key holding a non-owner record is a corrupt record."""
        ledger.store.put("OWNER0", b"{}")
        response = ledger.invoke("registerCow", cow_args())
        assert response.error_code == "CORRUPT_RECORD"
        assert ledger.store.get("COW0") is None

    def test_wrong_arity(self, ledger):
        ledger.invoke("registerOwner", owner_args())
        response = ledger.invoke("registerCow", cow_args()[:-1])
        assert response.error_code == "VALIDATION_ERROR"

    def test_unlisted_key_still_written(self, ledger):
        """A key outside the listing window is stored but not listed."""
        ledger.invoke("registerOwner", owner_args())
        assert ledger.invoke("registerCow", cow_args("COWX")).success

        assert ledger.store.get("COWX") is not None
        assert json.loads(ledger.invoke("queryAllCows", []).payload) == []

    def test_later_owner_edits_not_propagated(self, owned_cow):
        """The snapshot is not refreshed when the owner record changes."""
        owned_cow.invoke("addAut", ["OWNER0", *[f"v{i}" for i in range(11)]])

        assert len(stored_owner(owned_cow).remarks) == 11
        assert stored_cow(owned_cow).owner.remarks == []


class TestSideRecords:
    """Tests for registerHACCP, registerRFID and bundle registration."""

    def test_haccp(self, ledger):
        """Certification is stored and linked through owner remarks."""
        ledger.invoke("registerOwner", owner_args())
        args = ["HACCP0", "OWNER0", "FARM0", "Hanwoo Farm", "Iksan", "beef", "20201231"]
        assert ledger.invoke("registerHACCP", args).success

        record = json.loads(ledger.invoke("query", ["HACCP", "HACCP0"]).payload)
        assert record == {
            "Farm_id": "FARM0",
            "Farm_nm": "Hanwoo Farm",
            "Farm_addr": "Iksan",
            "Apply_item": "beef",
            "Validity_date": "20201231",
        }
        assert remark_pairs(stored_owner(ledger)) == [
            ("haccp.Id_no", "FARM0"),
            ("haccp.Rfid_no", "Hanwoo Farm"),
        ]

    def test_haccp_missing_owner(self, ledger):
        """No certificate is written when the owner is missing."""
        args = ["HACCP0", "OWNER0", "FARM0", "Hanwoo Farm", "Iksan", "beef", "20201231"]
        assert ledger.invoke("registerHACCP", args).error_code == "NOT_FOUND"
        assert ledger.store.get("HACCP0") is None

    def test_rfid(self, owned_cow):
        """Tag is stored and recorded on the cow."""
        assert owned_cow.invoke("registerRFID", ["COW0", "RFID0"]).success

        tag = json.loads(owned_cow.invoke("query", ["RFID", "RFID0"]).payload)
        assert tag == {"Id_no": "COW0", "Rfid_no": "RFID0"}
        assert remark_pairs(stored_cow(owned_cow)) == [
            ("rfid.Id_no", "COW0"),
            ("rfid.Rfid_no", "RFID0"),
        ]

    def test_rfid_missing_cow(self, ledger):
        assert ledger.invoke("registerRFID", ["COW0", "RFID0"]).error_code == "NOT_FOUND"
        assert ledger.store.get("RFID0") is None

    @pytest.mark.parametrize(
        "function", ["registerInProcessesBundleNum", "registerInSalesBundleNum"]
    )
    def test_bundle(self, owned_cow, function):
        """Bundle is stored and its fields are appended to the cow."""
        assert owned_cow.invoke(function, bundle_args()).success

        bundle = json.loads(owned_cow.invoke("query", ["BUNDLE", "BUNDLE0"]).payload)
        assert bundle["Id_no"] == "COW0"
        assert bundle["Barcode_id"] == "880123"
        assert bundle["Purchase_biz_no"] == "123-45-67890"

        remarks = remark_pairs(stored_cow(owned_cow))
        assert len(remarks) == 7
        assert remarks[0] == (f"{function}.id_no", "COW0")
        assert remarks[-1] == (f"{function}.purchase_biz_no", "123-45-67890")

    def test_bundle_arity(self, owned_cow):
        """Bundle registration takes eight arguments."""
        response = owned_cow.invoke("registerInSalesBundleNum", bundle_args()[:7])
        assert response.error_code == "VALIDATION_ERROR"
        assert response.details["expected"] == 8

    def test_side_record_write_is_atomic(self, owned_cow):
        """A failed commit leaves neither the tag nor the cow update."""
        before = owned_cow.store.get("COW0")
        owned_cow.store.inject_failure(StoreError("disk full"))

        with pytest.raises(StoreError):
            owned_cow.invoke("registerRFID", ["COW0", "RFID0"])

        assert owned_cow.store.get("RFID0") is None
        assert owned_cow.store.get("COW0") == before


class TestRemarkTransactions:
    """Tests for addRemark and the descriptor-driven transactions."""

    def test_add_remark_appends(self, owned_cow):
        """Existing remarks stay in order; the new one goes last."""
        owned_cow.invoke("registerRFID", ["COW0", "RFID0"])
        assert owned_cow.invoke("addRemark", ["COW0", "note", "healthy"]).success

        assert remark_pairs(stored_cow(owned_cow)) == [
            ("rfid.Id_no", "COW0"),
            ("rfid.Rfid_no", "RFID0"),
            ("note", "healthy"),
        ]

    def test_add_remark_same_key_twice(self, owned_cow):
        """Same-key remarks accumulate instead of replacing."""
        owned_cow.invoke("addRemark", ["COW0", "k", "v1"])
        owned_cow.invoke("addRemark", ["COW0", "k", "v2"])
        assert remark_pairs(stored_cow(owned_cow)) == [("k", "v1"), ("k", "v2")]

    def test_add_remark_missing_cow(self, ledger):
        response = ledger.invoke("addRemark", ["COW0", "k", "v"])
        assert response.error_code == "NOT_FOUND"
        assert ledger.store.get("COW0") is None

    @pytest.mark.parametrize(
        "name", sorted(n for n, s in REMARK_TRANSACTIONS.items() if s.target is Cow)
    )
    def test_cow_transactions(self, owned_cow, name):
        """Each cow transaction appends one remark per trailing argument."""
        txn = REMARK_TRANSACTIONS[name]
        values = [f"{name}-{i}" for i in range(len(txn.keys))]

        assert owned_cow.invoke(name, ["COW0", *values]).success
        assert remark_pairs(stored_cow(owned_cow)) == list(zip(txn.keys, values))

    @pytest.mark.parametrize("name", sorted(REMARK_TRANSACTIONS))
    def test_arity_enforced(self, owned_cow, name):
        """One argument short is rejected without writing."""
        txn = REMARK_TRANSACTIONS[name]
        key = "COW0" if txn.target is Cow else "OWNER0"
        before = owned_cow.store.get(key)

        response = owned_cow.invoke(name, [key, *["x"] * (len(txn.keys) - 1)])

        assert response.error_code == "VALIDATION_ERROR"
        assert owned_cow.store.get(key) == before

    def test_add_aut_targets_owner(self, owned_cow):
        """addAut appends certification remarks to an owner."""
        values = ["Y", "20211231", "Hanwoo Farm", "530118", "Iksan", "Iksan", "beef", "30",
                  "Cert Co", "AUT-1", "20190101"]
        assert owned_cow.invoke("addAut", ["OWNER0", *values]).success

        remarks = remark_pairs(stored_owner(owned_cow))
        assert remarks[0] == ("addAut.aut_flag", "Y")
        assert remarks[-1] == ("addAut.aut_date", "20190101")

    def test_add_aut_on_cow_key(self, owned_cow):
        """addAut against a cow record is a corrupt record, not a silent write."""
        response = owned_cow.invoke("addAut", ["COW0", *["x"] * 11])
        assert response.error_code == "CORRUPT_RECORD"


class TestChangeCowOwner:
    """Tests for changeCowOwner."""

    @pytest.fixture
    def two_owners(self, owned_cow):
        """Second owner (a slaughterhouse) with extra remarks of its own."""
        owned_cow.invoke("registerOwner", owner_args("OWNER1", "SLAUGHTER1", "tel", "reg"))
        owned_cow.invoke(
            "registerHACCP",
            ["HACCP0", "OWNER1", "SLAUGHTER1", "Slaughter Co", "Jeonju", "beef", "20201231"],
        )
        owned_cow.invoke("addRemark", ["COW0", "note", "kept"])
        return owned_cow

    def test_replaces_snapshot(self, two_owners):
        """The embedded owner equals the new owner; cow remarks are unchanged."""
        assert two_owners.invoke("changeCowOwner", ["COW0", "OWNER0", "OWNER1"]).success

        payload = two_owners.invoke("query", ["COW", "COW0"]).payload
        cow = decode(Cow, "COW0", payload)
        assert cow.owner == stored_owner(two_owners, "OWNER1")
        assert len(cow.owner.remarks) == 4
        assert remark_pairs(cow) == [("note", "kept")]

    def test_hint_not_enforced(self, two_owners):
        """A mismatched or missing hint does not block the transfer."""
        assert two_owners.invoke("changeCowOwner", ["COW0", "OWNER1", "OWNER1"]).success
        assert two_owners.invoke("changeCowOwner", ["COW0", "OWNER9", "OWNER0"]).success
        assert stored_cow(two_owners).owner.owner_id == "FARM0"

    def test_missing_destination(self, two_owners):
        before = two_owners.store.get("COW0")
        response = two_owners.invoke("changeCowOwner", ["COW0", "OWNER0", "OWNER9"])
        assert response.error_code == "NOT_FOUND"
        assert two_owners.store.get("COW0") == before

    def test_missing_cow(self, two_owners):
        response = two_owners.invoke("changeCowOwner", ["COW9", "OWNER0", "OWNER1"])
        assert response.error_code == "NOT_FOUND"
        assert response.details["key"] == "COW9"


class TestDeleteAndList:
    """Tests for deleteCow, query and listings."""

    @pytest.fixture
    def three_cows(self, ledger):
        ledger.invoke("registerOwner", owner_args())
        for n in range(3):
            ledger.invoke("registerCow", cow_args(f"COW{n}", id_no=f"18050{n}"))
        return ledger

    def test_delete_missing(self, ledger):
        assert ledger.invoke("deleteCow", ["COW0"]).error_code == "NOT_FOUND"

    def test_delete(self, owned_cow):
        """A deleted cow is absent afterwards."""
        assert owned_cow.invoke("deleteCow", ["COW0"]).success
        assert owned_cow.invoke("query", ["COW", "COW0"]).error_code == "NOT_FOUND"

    def test_delete_corrupt(self, ledger):
        """Undecodable bytes are reported and left in place."""
        ledger.store.put("COW0", b"garbage")
        assert ledger.invoke("deleteCow", ["COW0"]).error_code == "CORRUPT_RECORD"
        assert ledger.store.get("COW0") == b"garbage"

    def test_delete_does_not_cascade(self, owned_cow):
        """Tags pointing at a deleted cow stay behind."""
        owned_cow.invoke("registerRFID", ["COW0", "RFID0"])
        owned_cow.invoke("deleteCow", ["COW0"])
        assert owned_cow.invoke("query", ["RFID", "RFID0"]).success

    def test_list_then_delete(self, three_cows):
        """Listing reflects deletions."""
        listing = json.loads(three_cows.invoke("queryAllCows", []).payload)
        assert [item["Key"] for item in listing] == ["COW0", "COW1", "COW2"]
        assert listing[1]["Record"]["Id_no"] == "180501"

        three_cows.invoke("deleteCow", ["COW1"])

        listing = json.loads(three_cows.invoke("queryAllCows", []).payload)
        assert [item["Key"] for item in listing] == ["COW0", "COW2"]

    def test_list_is_byte_ordered(self, three_cows):
        three_cows.invoke("registerCow", cow_args("COW10"))
        listing = json.loads(three_cows.invoke("queryAllCows", []).payload)
        assert [item["Key"] for item in listing] == ["COW0", "COW1", "COW10", "COW2"]

    def test_query_unknown_type(self, owned_cow):
        assert owned_cow.invoke("query", ["PIG", "COW0"]).error_code == "VALIDATION_ERROR"

    def test_query_returns_stored_bytes(self, owned_cow):
        assert owned_cow.invoke("query", ["COW", "COW0"]).payload == owned_cow.store.get("COW0")

    @pytest.mark.parametrize(
        "function", ["queryAllOwners", "queryAllHACCPs", "queryAllRFIDs", "queryAllBundles"]
    )
    def test_listings_take_no_args(self, ledger, function):
        assert ledger.invoke(function, ["extra"]).error_code == "VALIDATION_ERROR"
        assert json.loads(ledger.invoke(function, []).payload) == []

    def test_listing_releases_scan(self, three_cows):
        three_cows.invoke("queryAllCows", [])
        assert three_cows.store.open_scans == 0

    @pytest.mark.parametrize(
        "function, args",
        [
            ("registerOwner", owner_args("COW5", "FARM5")),
            ("registerRFID", ["COW0", "COW5"]),
            ("registerInSalesBundleNum", bundle_args("COW5")),
        ],
    )
    def test_foreign_prefix_key_rejected(self, three_cows, function, args):
        """A record of another type cannot land inside the cow listing window."""
        response = three_cows.invoke(function, args)
        assert response.error_code == "VALIDATION_ERROR"
        assert three_cows.store.get("COW5") is None

        listing = json.loads(three_cows.invoke("queryAllCows", []).payload)
        assert [item["Key"] for item in listing] == ["COW0", "COW1", "COW2"]

    def test_unprefixed_key_allowed(self, owned_cow):
        """Keys with no type prefix are stored but never listed."""
        assert owned_cow.invoke("registerRFID", ["COW0", "TAG-0042"]).success
        assert owned_cow.store.get("TAG-0042") is not None
        assert json.loads(owned_cow.invoke("queryAllRFIDs", []).payload) == []


class TestInitLedger:
    """Tests for the seeding transaction."""

    def test_seed(self, ledger):
        """Three farm owners and three cows, each cow owned by its peer owner."""
        assert ledger.invoke("initLedger", []).success

        owners = json.loads(ledger.invoke("queryAllOwners", []).payload)
        cows = json.loads(ledger.invoke("queryAllCows", []).payload)

        assert [o["Key"] for o in owners] == ["OWNER0", "OWNER1", "OWNER2"]
        assert [c["Key"] for c in cows] == ["COW0", "COW1", "COW2"]
        for owner, cow in zip(owners, cows):
            assert cow["Record"]["Owner"] == owner["Record"]
            assert owner["Record"]["Owner_id"].startswith("FARM")

    def test_seed_rejects_args(self, ledger):
        assert ledger.invoke("initLedger", ["x"]).error_code == "VALIDATION_ERROR"
        assert ledger.store.keys() == []

    def test_seed_over_sqlite(self, sqlite_store):
        """Seeding commits through the SQLite batch path."""
        ledger = Ledger(sqlite_store)
        assert ledger.invoke("initLedger", []).success
        assert sqlite_store.get_stats() == {"records": 6}

    def test_seeded_records_are_usable(self):
        """Seeded cows accept further transactions."""
        ledger = Ledger(InMemoryKeyValueStore())
        ledger.invoke("initLedger", [])
        assert ledger.invoke("changeCowOwner", ["COW0", "OWNER0", "OWNER2"]).success
        assert stored_cow(ledger).owner.name == "ChukLim3"
