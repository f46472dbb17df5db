"""
Sample records written by initLedger.

Owners are farms; each cow embeds a snapshot of one of them. Keys come
from a zero-based counter (OWNER0.., COW0..).
"""

from __future__ import annotations

from ..schema.keys import KeyType
from ..schema.types import Cow, Owner

SAMPLE_OWNERS = (
    Owner("FARM01", "ChukLim1", "Iksan", "C", "Kim Duck Bae", "530118"),
    Owner("FARM02", "ChukLim2", "Jeonju", "C", "Kim Sam Sun", "520202"),
    Owner("FARM03", "ChukLim3", "Daejeon", "C", "Kim Young Mi", "610118"),
)

# (id_no, birth_date, sex, father_id, mother_id, origin)
SAMPLE_COWS = (
    ("180501-2", "180501", "F", "901027", "910101", "Korea Jeonbuk"),
    ("180502-1", "180502", "M", "901027", "910101", "Korea Jeonbuk"),
    ("180503-1", "180503", "M", "901027", "910101", "Korea Jeonbuk"),
)


def seed_records() -> list[tuple[str, Owner | Cow]]:
    """Owners first, then cows, each cow owned by the owner at the same index."""
    records: list[tuple[str, Owner | Cow]] = []
    for i, owner in enumerate(SAMPLE_OWNERS):
        records.append((KeyType.OWNER.seed_key(i), owner.snapshot()))
    for i, (id_no, birth, sex, father, mother, origin) in enumerate(SAMPLE_COWS):
        cow = Cow(id_no, birth, sex, father, mother, origin, owner=SAMPLE_OWNERS[i].snapshot())
        records.append((KeyType.COW.seed_key(i), cow))
    return records
