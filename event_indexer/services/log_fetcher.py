# event_indexer/services/log_fetcher.py
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from hexbytes import HexBytes
from web3 import Web3

from event_indexer.exceptions import IndexingCancelled
from event_indexer.services.chunking import BlockRange
from event_indexer.services.interface_service import EventSignature

logger = logging.getLogger(__name__)


@dataclass
class ChunkFailure:
    event_name: str
    from_block: int
    to_block: int
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventName": self.event_name,
            "fromBlock": str(self.from_block),
            "toBlock": str(self.to_block),
            "error": self.error,
        }


@dataclass
class FetchResult:
    records: List[dict] = field(default_factory=list)
    failures: List[ChunkFailure] = field(default_factory=list)
    chunks_attempted: int = 0
    chunks_succeeded: int = 0

    @property
    def complete(self) -> bool:
        return not self.failures

    @property
    def all_failed(self) -> bool:
        return self.chunks_attempted > 0 and self.chunks_succeeded == 0

    def covered_through(self, chunks: Sequence[BlockRange]) -> Optional[int]:
        """
        Last block of the longest chunk prefix that succeeded for every event,
        or None when the first chunk failed for some event.
        """
        if not chunks:
            return None
        first_failed = len(chunks)
        for failure in self.failures:
            for idx, chunk in enumerate(chunks):
                if chunk.from_block == failure.from_block:
                    first_failed = min(first_failed, idx)
                    break
        if first_failed == 0:
            return None
        return chunks[first_failed - 1].to_block


def _hex(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, HexBytes)):
        return Web3.to_hex(value)
    return str(value).lower()


def _int(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def normalize_log(log, event_name: str) -> dict:
    """Turn a web3 log (AttributeDict, HexBytes fields) into a plain dict."""
    item = dict(log)
    return {
        "address": _hex(item.get("address")),
        "blockNumber": _int(item.get("blockNumber")),
        "blockHash": _hex(item.get("blockHash")),
        "transactionHash": _hex(item.get("transactionHash")),
        "transactionIndex": _int(item.get("transactionIndex")) or 0,
        "logIndex": _int(item.get("logIndex")) or 0,
        "topics": [_hex(t) for t in item.get("topics") or []],
        "data": _hex(item.get("data")) or "0x",
        "removed": bool(item.get("removed", False)),
        "eventName": event_name,
    }


class LogFetcher:
    """
    Fetches logs chunk by chunk, one event signature at a time.

    Chunks run strictly sequentially with a fixed pause between requests. A
    failing chunk is recorded and skipped; the run keeps going.
    """

    def __init__(self, client, delay: float = 0.1, sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.delay = delay
        self._sleep = sleep

    def fetch(
        self,
        contract_address: str,
        signatures: Sequence[EventSignature],
        chunks: Sequence[BlockRange],
        cancel_event: Optional[threading.Event] = None,
    ) -> FetchResult:
        result = FetchResult()
        for sig in signatures:
            logger.info(
                "Fetching logs",
                extra={"context": {"event": sig.name, "chunks": len(chunks), "contract": contract_address}},
            )
            found = self._fetch_event(contract_address, sig, chunks, result, cancel_event)
            logger.info("Fetched logs", extra={"context": {"event": sig.name, "logs": found}})
        return result

    def _fetch_event(self, contract_address, sig, chunks, result, cancel_event) -> int:
        found = 0
        for idx, chunk in enumerate(chunks):
            if cancel_event is not None and cancel_event.is_set():
                raise IndexingCancelled(f"Run cancelled before chunk {chunk.from_block}-{chunk.to_block}")

            result.chunks_attempted += 1
            try:
                logs = self.client.get_logs(contract_address, sig.topic, chunk.from_block, chunk.to_block)
            except Exception as e:
                logger.warning(
                    f"Chunk {chunk.from_block}-{chunk.to_block} failed for {sig.name}: {e}",
                    extra={"context": {"event": sig.name, "from_block": chunk.from_block, "to_block": chunk.to_block}},
                )
                result.failures.append(ChunkFailure(sig.name, chunk.from_block, chunk.to_block, str(e)))
            else:
                result.chunks_succeeded += 1
                records = [normalize_log(log, sig.name) for log in logs]
                result.records.extend(records)
                found += len(records)
                logger.debug(f"{len(records)} logs in {chunk.from_block}-{chunk.to_block} for {sig.name}")

            if idx < len(chunks) - 1 and self.delay > 0:
                self._sleep(self.delay)
        return found
