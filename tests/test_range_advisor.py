import pytest

from event_indexer.services import event_store
from event_indexer.services.log_fetcher import normalize_log
from event_indexer.services.range_advisor import advise_range, recommended_range
from tests.utils import APPROVAL_TOPIC, CONTRACT, make_log


def test_cold_start_uses_chain_head(contract, chain):
    chain.head = 6_701_000
    rng = advise_range(CONTRACT, "testnet", chain, window=1000)

    assert rng.to_block == 6_701_000
    assert rng.from_block == 6_700_001
    assert rng.latest_indexed_block is None
    assert not rng.is_optimal_range
    assert not rng.degraded
    assert "No events found" in rng.message


def test_with_history_ends_at_newest_event(contract, chain):
    event_store.insert_events(
        [normalize_log(make_log(6_600_000, 0), "Transfer"), normalize_log(make_log(6_650_000, 2), "Transfer")],
        contract.id,
        "testnet",
    )
    rng = advise_range(CONTRACT, "testnet", chain, window=1000)

    assert rng.to_block == 6_650_000
    assert rng.from_block == 6_649_001
    assert rng.latest_indexed_block == 6_650_000
    assert rng.is_optimal_range
    # history wins; the chain is not asked
    assert chain.calls == []


def test_event_name_narrows_history(contract, chain):
    event_store.insert_events(
        [
            normalize_log(make_log(100, 0), "Transfer"),
            normalize_log(make_log(900, 0, topic=APPROVAL_TOPIC), "Approval"),
        ],
        contract.id,
        "testnet",
    )
    assert advise_range(CONTRACT, "testnet", chain, event_name="Transfer").to_block == 100
    assert advise_range(CONTRACT, "testnet", chain, event_name="Approval").to_block == 900


def test_head_failure_falls_back(contract, chain):
    chain.head_error = ConnectionError("rpc down")
    rng = advise_range(CONTRACT, "testnet", chain, window=1000, fallback_block=23_000_000)

    assert rng.degraded
    assert rng.to_block == 23_000_000
    assert rng.from_block == 22_999_001
    assert not rng.is_optimal_range


def test_window_clamped_at_genesis(contract, chain):
    chain.head = 10
    assert advise_range(CONTRACT, "testnet", chain, window=1000).from_block == 0


def test_recommended_range(chain):
    chain.head = 5_000
    assert recommended_range(chain, window=1000) == {"fromBlock": 4_000, "toBlock": 5_000, "latestBlock": 5_000}
    chain.head = 12
    assert recommended_range(chain, window=1000)["fromBlock"] == 0

    chain.head_error = TimeoutError("slow")
    with pytest.raises(TimeoutError):
        recommended_range(chain)
