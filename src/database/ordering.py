"""
Ordering engine for learning items.

Records are listed by the derived key
``(status rank, order_index, -created_at, -id)``. The rank is rendered three
ways from the same table: a Python key function, a SQL ``CASE`` expression
for SQLite and a ``$switch`` expression for MongoDB aggregation.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence, Union

from .exceptions import NotFoundError

STATUS_RANK = {
    "todo": 0,
    "progress": 1,
    "completed": 2,
}

# Any status outside STATUS_RANK is stored verbatim and sorts last
UNKNOWN_STATUS_RANK = len(STATUS_RANK)

DEFAULT_STATUS = "todo"
COMPLETED_STATUS = "completed"


def status_rank(status: str) -> int:
    return STATUS_RANK.get(status, UNKNOWN_STATUS_RANK)


def _timestamp(value: Union[str, datetime]) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()


def ordering_key(record: Dict[str, Any]) -> tuple:
    """Sort key for a record; newer records first within equal positions."""
    return (
        status_rank(record["status"]),
        record["order_index"],
        -_timestamp(record["created_at"]),
        -record["id"],
    )


def sort_records(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(records, key=ordering_key)


def status_rank_sql(column: str = "status") -> str:
    """Render the status rank as a SQL CASE expression."""
    branches = " ".join(
        f"WHEN '{status}' THEN {rank}" for status, rank in STATUS_RANK.items()
    )
    return f"CASE {column} {branches} ELSE {UNKNOWN_STATUS_RANK} END"


def status_rank_expression(field: str = "$status") -> Dict[str, Any]:
    """Render the status rank as a MongoDB aggregation expression."""
    return {
        "$switch": {
            "branches": [
                {"case": {"$eq": [field, status]}, "then": rank}
                for status, rank in STATUS_RANK.items()
            ],
            "default": UNKNOWN_STATUS_RANK,
        }
    }


def plan_reorder(ordered_ids: Sequence[int], moved_id: int, target_id: int) -> List[int]:
    """Compute the full id order after dragging ``moved_id`` onto ``target_id``.

    The moved record takes the slot the target held in ``ordered_ids``: when
    dragged downwards it lands just after the target, when dragged upwards
    just before it. Every record is returned so the caller can renumber
    positions to their 0-based index.

    Downward drags deliberately differ from indexing into the list with the
    moved record removed, which would stop one slot short of the target.

    Raises:
        NotFoundError: if either id is not part of ``ordered_ids``
    """
    ids = list(ordered_ids)
    missing = [item_id for item_id in (moved_id, target_id) if item_id not in ids]
    if missing:
        raise NotFoundError(f"Item not found: {missing[0]}")

    target_index = ids.index(target_id)
    remainder = [item_id for item_id in ids if item_id != moved_id]
    remainder.insert(target_index, moved_id)
    return remainder
