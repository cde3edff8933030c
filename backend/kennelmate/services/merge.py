"""
KennelMate Backend - Reminder Merge/Dedup

Purpose: Reduce the candidate lists produced by custom reminders and the rule
generators to one list with exactly one candidate per logical event.

Sources are visited in fixed priority order (custom, heat, litter, general,
planned-heat, birthday, vaccination). A candidate is skipped when its id was
already accepted, or when its (type, related_id) key was claimed by an
earlier source. Keys only block later sources, so one source may still emit
several candidates for the same entity (e.g. two milestones for one litter).
Candidates without a related entity take part in id dedup only.
"""

import logging
from typing import Iterable, List, Sequence, Set, Tuple

from kennelmate.models.reminder import ReminderCandidate

logger = logging.getLogger(__name__)


def merge_candidates(
    sources: Sequence[Tuple[str, Iterable[ReminderCandidate]]]
) -> List[ReminderCandidate]:
    """
    Merge candidate lists, first writer from the highest-priority source wins

    Args:
        sources: (source name, candidates) pairs, highest priority first

    Returns:
        Accepted candidates in acceptance order
    """
    merged: List[ReminderCandidate] = []
    seen_ids: Set[str] = set()
    claimed_keys: Set[tuple] = set()

    for source_name, candidates in sources:
        source_keys: Set[tuple] = set()
        skipped = 0

        for candidate in candidates:
            if candidate.id in seen_ids:
                skipped += 1
                continue

            key = candidate.dedup_key
            if key is not None and key in claimed_keys:
                skipped += 1
                continue

            seen_ids.add(candidate.id)
            if key is not None:
                source_keys.add(key)
            merged.append(candidate)

        claimed_keys |= source_keys

        if skipped:
            logger.debug(f"Merge: skipped {skipped} duplicate candidates from {source_name}")

    return merged
