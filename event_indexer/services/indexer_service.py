# event_indexer/services/indexer_service.py
"""
One indexing run: validate → fetch chunk by chunk → order → persist → checkpoint.

Run states: idle → fetching → aggregating → persisting → idle. A failure while
fetching returns to idle with nothing written; batches persisted before a
storage failure stay committed.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Union

from web3 import Web3

from event_indexer.exceptions import ChunkFetchError, StorageError, ValidationError
from event_indexer.serializers import to_jsonable
from event_indexer.services import event_store
from event_indexer.services.aggregation import aggregate
from event_indexer.services.chunking import check_span, chunk_range
from event_indexer.services.interface_service import extract_event_signatures, parse_interface
from event_indexer.services.log_fetcher import ChunkFailure, LogFetcher
from event_indexer.services.networks import normalize_network

logger = logging.getLogger(__name__)

BlockSpec = Union[int, str]


def _parse_block_spec(label: str, value, keyword: str) -> BlockSpec:
    if value is None or value == "":
        return keyword
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer or {keyword!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text == keyword:
        return keyword
    try:
        return int(text, 16) if text.startswith("0x") else int(text)
    except ValueError:
        raise ValidationError(f"{label} must be an integer or {keyword!r}, got {value!r}") from None


@dataclass
class IndexingRequest:
    contract_address: str
    interface: List[dict]
    events_to_track: List[str]
    network: str = "testnet"
    from_block: BlockSpec = "earliest"
    to_block: BlockSpec = "latest"
    name: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "IndexingRequest":
        """Validate an ingestion request body. Raises ValidationError before any side effect."""
        data = data or {}
        address = str(data.get("contractAddress") or data.get("contract_address") or "").strip()
        raw_interface = data.get("contractInterface", data.get("contractABI"))
        events = data.get("eventsToTrack") or []

        if not address or raw_interface is None or not events:
            raise ValidationError("Missing required fields: contractAddress, contractInterface, or eventsToTrack")
        if not Web3.is_address(address):
            raise ValidationError(f"Invalid contract address: {address}")
        if isinstance(events, str):
            events = [e.strip() for e in events.split(",") if e.strip()]
        if not isinstance(events, list):
            raise ValidationError("eventsToTrack must be a list of event names")

        return cls(
            contract_address=address.lower(),
            interface=parse_interface(raw_interface),
            events_to_track=[str(e) for e in events],
            network=normalize_network(data.get("network") or "testnet"),
            from_block=_parse_block_spec("fromBlock", data.get("fromBlock"), "earliest"),
            to_block=_parse_block_spec("toBlock", data.get("toBlock"), "latest"),
            name=(data.get("name") or None),
        )


@dataclass
class IndexingResult:
    contract_address: str
    network: str
    events_tracked: List[str]
    from_block: int
    to_block: int
    events: List[dict] = field(default_factory=list)
    stored: int = 0
    failures: List[ChunkFailure] = field(default_factory=list)
    checkpoint: Optional[int] = None

    @property
    def complete(self) -> bool:
        return not self.failures

    def to_response(self, include_events: bool = True) -> dict:
        out = {
            "success": True,
            "metadata": {
                "contractAddress": self.contract_address,
                "eventsTracked": self.events_tracked,
                "network": self.network,
                "blockRange": {"from": str(self.from_block), "to": str(self.to_block)},
                "totalEvents": len(self.events),
                "storedEvents": self.stored,
                "failedChunks": [f.to_dict() for f in self.failures],
                "complete": self.complete,
                "checkpoint": None if self.checkpoint is None else str(self.checkpoint),
            },
        }
        if include_events:
            out["events"] = to_jsonable(self.events)
        return out


def _resolve_blocks(request: IndexingRequest, client):
    from_block = 0 if request.from_block == "earliest" else request.from_block
    if request.to_block == "latest":
        try:
            to_block = int(client.block_number())
        except Exception as e:
            raise ChunkFetchError(f"Failed to fetch latest block for {request.network}: {e}") from e
    else:
        to_block = request.to_block
    return from_block, to_block


def run_indexing(
    request: IndexingRequest,
    client,
    config: Mapping,
    cancel_event: Optional[threading.Event] = None,
    fetcher: Optional[LogFetcher] = None,
) -> IndexingResult:
    ctx = {"contract": request.contract_address, "network": request.network}

    signatures = extract_event_signatures(request.interface, request.events_to_track)
    from_block, to_block = _resolve_blocks(request, client)
    check_span(from_block, to_block, int(config.get("MAX_BLOCK_SPAN", 50_000)))
    chunks = chunk_range(from_block, to_block, int(config.get("MAX_BLOCKS_PER_REQUEST", 500)))

    logger.info(
        f"Indexing {len(signatures)} event(s) over blocks {from_block}-{to_block} in {len(chunks)} chunk(s)",
        extra={"context": {**ctx, "state": "fetching"}},
    )
    fetcher = fetcher or LogFetcher(client, delay=float(config.get("CHUNK_DELAY_SECONDS", 0.1)))
    fetched = fetcher.fetch(request.contract_address, signatures, chunks, cancel_event=cancel_event)

    if fetched.all_failed:
        message = f"All {fetched.chunks_attempted} chunk requests failed; no events could be fetched"
        logger.error(message, extra={"context": {**ctx, "state": "idle"}})
        _note_failure(request, message)
        raise ChunkFetchError(message, fetched.failures)

    logger.info("Aggregating fetched logs", extra={"context": {**ctx, "state": "aggregating", "logs": len(fetched.records)}})
    ordered = aggregate(fetched.records)

    logger.info("Persisting events", extra={"context": {**ctx, "state": "persisting"}})
    try:
        contract = event_store.upsert_contract(request.contract_address, request.interface, request.network, request.name)
        stored = event_store.insert_events(
            ordered, contract.id, request.network, batch_size=int(config.get("INSERT_BATCH_SIZE", 500))
        )
    except StorageError as e:
        _note_failure(request, str(e))
        raise

    checkpoint = to_block if fetched.complete else fetched.covered_through(chunks)
    if checkpoint is not None:
        event_store.update_checkpoint(request.contract_address, request.network, checkpoint)
    else:
        _note_failure(request, f"{len(fetched.failures)} chunk request(s) failed")

    if fetched.failures:
        logger.warning(
            f"Run finished with {len(fetched.failures)} failed chunk(s)",
            extra={"context": {**ctx, "failed_chunks": len(fetched.failures)}},
        )
    logger.info(
        f"Run finished: {len(ordered)} events fetched, {stored} new",
        extra={"context": {**ctx, "state": "idle", "checkpoint": checkpoint}},
    )

    return IndexingResult(
        contract_address=request.contract_address,
        network=request.network,
        events_tracked=list(request.events_to_track),
        from_block=from_block,
        to_block=to_block,
        events=ordered,
        stored=stored,
        failures=list(fetched.failures),
        checkpoint=checkpoint,
    )


def _note_failure(request: IndexingRequest, message: str):
    try:
        event_store.record_checkpoint_error(request.contract_address, request.network, message)
    except StorageError as e:
        logger.error(f"Could not record checkpoint error: {e}")
