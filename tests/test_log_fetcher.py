import threading

import pytest

from event_indexer.exceptions import IndexingCancelled
from event_indexer.services.aggregation import aggregate
from event_indexer.services.chunking import chunk_range
from event_indexer.services.interface_service import extract_event_signatures
from event_indexer.services.log_fetcher import LogFetcher, normalize_log
from tests.utils import APPROVAL_TOPIC, CONTRACT, make_log


@pytest.fixture()
def signatures(erc20_interface):
    return extract_event_signatures(erc20_interface, ["Transfer", "Approval"])


def test_normalize_log_plain_values():
    rec = normalize_log(make_log(6_700_010, 3, value=5), "Transfer")
    assert rec["address"] == CONTRACT.lower()
    assert rec["blockNumber"] == 6_700_010
    assert rec["logIndex"] == 3
    assert rec["eventName"] == "Transfer"
    assert rec["transactionHash"].startswith("0x") and len(rec["transactionHash"]) == 66
    assert rec["data"] == "0x" + "0" * 63 + "5"
    assert all(isinstance(t, str) and t.startswith("0x") for t in rec["topics"])


def test_failed_chunk_is_skipped_and_run_continues(chain, signatures):
    chain.logs = [make_log(6_700_010, 0), make_log(6_700_600, 1), make_log(6_701_000, 0, topic=APPROVAL_TOPIC)]
    chain.failing = {6_700_500}
    sleeps = []
    chunks = chunk_range(6_700_000, 6_701_000, 500)

    result = LogFetcher(chain, delay=0.1, sleep=sleeps.append).fetch(CONTRACT, signatures, chunks)

    # 3 chunks x 2 events; the middle chunk fails for both
    assert result.chunks_attempted == 6
    assert result.chunks_succeeded == 4
    assert [(f.event_name, f.from_block) for f in result.failures] == [("Transfer", 6_700_500), ("Approval", 6_700_500)]
    assert {r["eventName"] for r in result.records} == {"Transfer", "Approval"}
    assert sorted(r["blockNumber"] for r in result.records) == [6_700_010, 6_701_000]
    assert not result.complete
    # pause between chunks, not after the last one of each event
    assert sleeps == [0.1] * 4


def test_chunks_requested_in_ascending_order(chain, signatures):
    chunks = chunk_range(0, 1_499, 500)
    LogFetcher(chain, delay=0).fetch(CONTRACT, signatures[:1], chunks)
    assert [c[1:] for c in chain.calls] == [(0, 499), (500, 999), (1_000, 1_499)]


def test_covered_through_stops_at_first_failed_chunk(chain, signatures):
    chunks = chunk_range(0, 1_999, 500)
    chain.failing = {1_000}
    result = LogFetcher(chain, delay=0).fetch(CONTRACT, signatures, chunks)
    assert result.covered_through(chunks) == 999

    chain.failing = {0}
    result = LogFetcher(chain, delay=0).fetch(CONTRACT, signatures, chunks)
    assert result.covered_through(chunks) is None

    chain.failing = set()
    result = LogFetcher(chain, delay=0).fetch(CONTRACT, signatures, chunks)
    assert result.complete
    assert result.covered_through(chunks) == 1_999


def test_all_chunks_failing_is_reported(chain, signatures):
    chain.failing = {"*"}
    result = LogFetcher(chain, delay=0).fetch(CONTRACT, signatures, chunk_range(0, 999, 500))
    assert result.all_failed
    assert result.records == []
    assert len(result.failures) == 4


def test_cancel_between_chunks(chain, signatures):
    cancel = threading.Event()
    chunks = chunk_range(0, 1_499, 500)

    def sleep(_):
        cancel.set()

    with pytest.raises(IndexingCancelled):
        LogFetcher(chain, delay=0.1, sleep=sleep).fetch(CONTRACT, signatures, chunks, cancel_event=cancel)
    assert len(chain.calls) == 1


def test_aggregate_orders_by_block_then_log_index():
    records = [
        normalize_log(make_log(20, 1), "Transfer"),
        normalize_log(make_log(10, 7), "Transfer"),
        normalize_log(make_log(20, 0, topic=APPROVAL_TOPIC), "Approval"),
        normalize_log(make_log(10, 2, topic=APPROVAL_TOPIC), "Approval"),
        normalize_log(make_log(10, 7), "Transfer"),
    ]
    ordered = aggregate(records)
    keys = [(r["blockNumber"], r["logIndex"]) for r in ordered]
    assert keys == [(10, 2), (10, 7), (20, 0), (20, 1)]
