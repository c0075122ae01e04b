"""Snapshot differ — which blocks in a fresh poll were not seen before."""

from __future__ import annotations

from collections.abc import Sequence

from indexwatch.models.blocks import Block, BlockSnapshot


def new_block_positions(
    previous: BlockSnapshot | Sequence[Block] | None,
    current: BlockSnapshot | Sequence[Block],
) -> frozenset[int]:
    """Return positions in ``current`` whose height is absent from ``previous``.

    The first observation (``previous`` empty or ``None``) is never
    flagged, so an initial page is not marked new in its entirety.
    """
    seen = _as_snapshot(previous).heights
    if not seen:
        return frozenset()

    return frozenset(
        i for i, block in enumerate(_as_snapshot(current).blocks) if block.height not in seen
    )


def _as_snapshot(value: BlockSnapshot | Sequence[Block] | None) -> BlockSnapshot:
    if isinstance(value, BlockSnapshot):
        return value
    return BlockSnapshot(blocks=tuple(value or ()))
