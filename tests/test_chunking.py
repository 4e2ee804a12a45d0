import pytest

from event_indexer.exceptions import RangeTooLargeError, ValidationError
from event_indexer.services.chunking import BlockRange, check_span, chunk_range


def test_chunks_for_provider_window():
    chunks = chunk_range(6_700_000, 6_701_000, 500)
    assert chunks == [
        BlockRange(6_700_000, 6_700_499),
        BlockRange(6_700_500, 6_700_999),
        BlockRange(6_701_000, 6_701_000),
    ]
    assert sum(c.size for c in chunks) == 1001
    assert chunks[-1].size == 1


@pytest.mark.parametrize("from_block,to_block,window", [
    (0, 0, 1),
    (0, 9, 10),
    (0, 10, 10),
    (5, 1_234, 7),
    (2 ** 64 - 1_000, 2 ** 64 - 1, 333),
    (100, 100, 500),
])
def test_chunks_are_contiguous_and_cover_range(from_block, to_block, window):
    chunks = chunk_range(from_block, to_block, window)

    assert chunks[0].from_block == from_block
    assert chunks[-1].to_block == to_block
    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.from_block == prev.to_block + 1
    assert all(1 <= c.size <= window for c in chunks)
    assert sum(c.size for c in chunks) == to_block - from_block + 1


def test_chunk_rejects_bad_bounds():
    with pytest.raises(ValidationError):
        chunk_range(10, 9, 500)
    with pytest.raises(ValidationError):
        chunk_range(-1, 9, 500)
    with pytest.raises(ValidationError):
        chunk_range(0, 2 ** 64, 500)
    with pytest.raises(ValueError):
        chunk_range(0, 9, 0)


def test_span_ceiling():
    assert check_span(0, 50_000, 50_000) == 50_000
    with pytest.raises(RangeTooLargeError) as exc:
        check_span(0, 50_001, 50_000)
    assert "50,000" in str(exc.value)
