"""
Remaining capacity calculation and candidate ranking
"""
from operator import attrgetter
from typing import Iterable, List, Optional
import logging

from .domain.models import Candidate, UsageEntry, UsageRecord

logger = logging.getLogger(__name__)


def remaining_capacity(record: UsageRecord) -> int:
    """
    Total capacity minus total usage across resource classes

    The result is negative when an account reports more usage than capacity.

    Raises:
        ValueError: If the record is missing a resource class
    """
    if not record.is_complete:
        raise ValueError("Cannot compute remaining capacity of an incomplete usage record")

    resources = record.resources()
    total_capacity = sum(resource.capacity for resource in resources)
    total_used = sum(resource.used for resource in resources)
    return total_capacity - total_used


def rank_candidates(entries: Iterable[Optional[UsageEntry]]) -> List[Candidate]:
    """
    Rank accounts neediest first

    Entries without usage or with incomplete usage are dropped. Ties keep
    their input order.
    """
    candidates = []
    for entry in entries:
        if entry is None:
            continue

        account_id = entry.account.account_id
        if entry.usage is None:
            logger.debug(f"No usage available for account {account_id}")
            continue
        if not entry.usage.is_complete:
            logger.warning(f"Incomplete usage record for account {account_id}")
            continue

        remaining = remaining_capacity(entry.usage)
        if remaining < 0:
            logger.warning(f"Account {account_id} reports usage above capacity ({remaining})")

        candidates.append(
            Candidate(account_id=account_id, remaining_capacity=remaining, account=entry.account)
        )

    candidates.sort(key=attrgetter("remaining_capacity"))
    return candidates
