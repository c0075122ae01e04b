"""Arrival predictor — estimate when the next block will show up.

Mean inter-arrival gap over consecutive blocks, recomputed from scratch on
every call.  Pairs with a malformed timestamp on either side are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from indexwatch.models.blocks import Block

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_GAP = timedelta(seconds=60)


def mean_block_gap(blocks: Sequence[Block]) -> timedelta | None:
    """Mean gap between consecutive (newest-first) blocks, or ``None``.

    ``None`` means there was not a single pair with two valid timestamps.
    """
    total = timedelta(0)
    pairs = 0
    for newer, older in zip(blocks, blocks[1:]):
        newer_at, older_at = newer.instant, older.instant
        if newer_at is None or older_at is None:
            continue
        total += newer_at - older_at
        pairs += 1
    if pairs == 0:
        return None
    return total / pairs


def predict_next_arrival(
    blocks: Sequence[Block],
    now: datetime | None = None,
    *,
    fallback_gap: timedelta = DEFAULT_FALLBACK_GAP,
) -> datetime:
    """Predict the timestamp of the next block.

    Parameters
    ----------
    blocks:
        Current snapshot's blocks, newest first.
    now:
        Reference "current time".  Defaults to UTC now.
    fallback_gap:
        Used as ``now + fallback_gap`` when no valid pair exists.
    """
    now = now or datetime.now(timezone.utc)
    gap = mean_block_gap(blocks)
    if gap is None:
        logger.debug("No valid block pairs; falling back to now + %s", fallback_gap)
        return now + fallback_gap

    newest = blocks[0].instant
    base = newest if newest is not None else now
    return base + gap
