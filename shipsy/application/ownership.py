"""Tenant ownership checks.

A record that does not exist and a record that belongs to another user are
reported the same way, so callers cannot probe for foreign ids.
"""

from typing import Iterable, List, Optional, Protocol, Sequence, TypeVar

from shipsy.core.logging_config import get_logger
from shipsy.domain.errors import NotFoundError

logger = get_logger(__name__)


class Owned(Protocol):
    id: str
    user_id: str


R = TypeVar("R", bound=Owned)


def not_found(label: str) -> NotFoundError:
    return NotFoundError(f"{label} not found")


def assert_owned(record: Optional[R], user_id: str, label: str) -> R:
    if record is None:
        raise not_found(label)
    if record.user_id != user_id:
        logger.warning(f"{label} {record.id} requested by non-owner")
        raise not_found(label)
    return record


def assert_all_owned(records: Iterable[R], ids: Sequence[str], user_id: str, label: str) -> List[R]:
    """Every id must resolve to a record owned by ``user_id``; otherwise nothing is returned."""
    by_id = {record.id: record for record in records}
    owned = []
    for record_id in ids:
        owned.append(assert_owned(by_id.get(record_id), user_id, label))
    return owned
