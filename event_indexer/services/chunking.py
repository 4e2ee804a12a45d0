# event_indexer/services/chunking.py
from typing import List, NamedTuple

from event_indexer.exceptions import RangeTooLargeError, ValidationError

MAX_UINT64 = 2 ** 64 - 1


class BlockRange(NamedTuple):
    """Closed block interval [from_block, to_block]."""

    from_block: int
    to_block: int

    @property
    def size(self) -> int:
        return self.to_block - self.from_block + 1


def _check_bounds(from_block: int, to_block: int):
    for label, value in (("fromBlock", from_block), ("toBlock", to_block)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{label} must be an integer, got {value!r}")
        if value < 0 or value > MAX_UINT64:
            raise ValidationError(f"{label} out of range: {value}")
    if from_block > to_block:
        raise ValidationError(f"fromBlock ({from_block}) is greater than toBlock ({to_block})")


def check_span(from_block: int, to_block: int, max_span: int) -> int:
    """Reject spans wider than ``max_span`` blocks. Returns the span."""
    _check_bounds(from_block, to_block)
    span = to_block - from_block
    if span > max_span:
        raise RangeTooLargeError(
            f"Block range too large: {span} blocks. "
            f"Please use a smaller range (max {max_span:,} blocks)."
        )
    return span


def chunk_range(from_block: int, to_block: int, max_window: int) -> List[BlockRange]:
    """
    Split [from_block, to_block] into contiguous windows of at most
    ``max_window`` blocks, in ascending order.

    >>> chunk_range(6_700_000, 6_701_000, 500)
    [BlockRange(from_block=6700000, to_block=6700499), BlockRange(from_block=6700500, to_block=6700999), BlockRange(from_block=6701000, to_block=6701000)]
    """
    _check_bounds(from_block, to_block)
    if isinstance(max_window, bool) or not isinstance(max_window, int) or max_window < 1:
        raise ValueError(f"max_window must be a positive integer, got {max_window!r}")

    chunks = []
    start = from_block
    while start <= to_block:
        end = min(start + max_window - 1, to_block)
        chunks.append(BlockRange(start, end))
        start = end + 1
    return chunks
