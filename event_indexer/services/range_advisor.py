# event_indexer/services/range_advisor.py
"""
"Smart range": a default block window for callers that do not pass one.

With indexed history the window ends at the newest stored event; on a cold
start it ends at the live chain head; if the head cannot be fetched it falls
back to a fixed height and the result is flagged as degraded.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from event_indexer.services.event_store import latest_block_number

logger = logging.getLogger(__name__)

WINDOW = 1000
FALLBACK_BLOCK = 23_000_000


@dataclass(frozen=True)
class SmartRange:
    from_block: int
    to_block: int
    latest_indexed_block: Optional[int]
    is_optimal_range: bool
    message: str
    degraded: bool = False


def _window_start(to_block: int, window: int) -> int:
    return max(0, to_block - (window - 1))


def advise_range(
    contract_address: str,
    network: str,
    client,
    event_name: Optional[str] = None,
    window: int = WINDOW,
    fallback_block: int = FALLBACK_BLOCK,
) -> SmartRange:
    latest = latest_block_number(contract_address, network, event_name)

    if latest is not None:
        from_block = _window_start(latest, window)
        return SmartRange(
            from_block=from_block,
            to_block=latest,
            latest_indexed_block=latest,
            is_optimal_range=True,
            message=f"Found events up to block {latest}. Showing range: {from_block} - {latest} ({window} blocks)",
        )

    try:
        head = int(client.block_number())
    except Exception as e:
        logger.warning(f"Unable to fetch latest block for {network}: {e}", extra={"context": {"network": network}})
        from_block = _window_start(fallback_block, window)
        return SmartRange(
            from_block=from_block,
            to_block=fallback_block,
            latest_indexed_block=None,
            is_optimal_range=False,
            message=f"Unable to fetch latest block. Using default range: {from_block} - {fallback_block} ({window} blocks)",
            degraded=True,
        )

    from_block = _window_start(head, window)
    return SmartRange(
        from_block=from_block,
        to_block=head,
        latest_indexed_block=None,
        is_optimal_range=False,
        message=(
            f"No events found for this contract. Searching recent blocks: "
            f"{from_block} - {head} ({window} blocks)"
        ),
    )


def recommended_range(client, window: int = WINDOW) -> dict:
    """Live head and the window of ``window`` blocks behind it."""
    head = int(client.block_number())
    return {"fromBlock": max(0, head - window), "toBlock": head, "latestBlock": head}
