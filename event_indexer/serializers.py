# event_indexer/serializers.py
"""
JSON wire helpers.

Block heights are always sent as decimal strings; any other integer that does
not fit in a double's 53-bit mantissa is sent as a string too.
"""
from decimal import Decimal
from typing import Any, Optional

from hexbytes import HexBytes
from web3 import Web3

MAX_SAFE_INTEGER = 2 ** 53 - 1

BLOCK_FIELDS = ("blockNumber", "fromBlock", "toBlock", "latestIndexedBlock", "lastIndexedBlock")


def iso(dt) -> Optional[str]:
    return dt.replace(microsecond=0).isoformat() + "Z" if dt else None


def wire_int(value) -> Any:
    if value is None:
        return None
    value = int(value)
    if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER:
        return value
    return str(value)


def block_str(value) -> Optional[str]:
    return None if value is None else str(int(value))


def to_jsonable(x: Any):
    """Normalize to JSON (HexBytes, bytes, big ints, tuples, lists, dicts)."""
    if isinstance(x, bool) or x is None:
        return x
    if isinstance(x, (bytes, bytearray, HexBytes)):
        return Web3.to_hex(x)
    if isinstance(x, int):
        return wire_int(x)
    if isinstance(x, Decimal) and x == x.to_integral_value():
        return wire_int(int(x))
    if isinstance(x, (list, tuple)):
        return [to_jsonable(i) for i in x]
    if isinstance(x, dict):
        out = {}
        for k, v in x.items():
            if k in BLOCK_FIELDS and isinstance(v, int) and not isinstance(v, bool):
                out[k] = block_str(v)
            else:
                out[k] = to_jsonable(v)
        return out
    return x


def serialize_contract(c, include_interface: bool = True) -> dict:
    out = {
        "id": c.id,
        "address": c.address,
        "network": c.network,
        "name": c.name,
        "isActive": c.is_active,
        "lastIndexedBlock": block_str(c.last_indexed_block),
        "createdAt": iso(c.created_at),
        "updatedAt": iso(c.updated_at),
    }
    if include_interface:
        out["interface"] = c.interface
    return out


def serialize_event(e, payload=None) -> dict:
    out = {
        "id": e.id,
        "blockNumber": block_str(e.block_number),
        "blockHash": e.block_hash,
        "transactionHash": e.transaction_hash,
        "transactionIndex": e.transaction_index,
        "logIndex": e.log_index,
        "contractId": e.contract_id,
        "contractAddress": e.contract_address,
        "eventName": e.event_name,
        "eventSignature": e.event_signature,
        "topics": e.topics,
        "data": e.data,
        "rawLog": e.raw_log,
        "network": e.network,
        "createdAt": iso(e.created_at),
    }
    if payload is not None:
        out["payload"] = payload.to_dict()
    return out


def serialize_checkpoint(cp) -> dict:
    return {
        "id": cp.id,
        "contractAddress": cp.contract_address,
        "network": cp.network,
        "lastIndexedBlock": block_str(cp.last_indexed_block),
        "lastIndexedAt": iso(cp.last_indexed_at),
        "errorCount": cp.error_count,
        "lastError": cp.last_error,
        "createdAt": iso(cp.created_at),
        "updatedAt": iso(cp.updated_at),
    }


def serialize_page(page, items) -> dict:
    return {
        "events": items,
        "totalCount": page.total_count,
        "hasNextPage": page.has_next_page,
        "hasPreviousPage": page.has_previous_page,
        "currentPage": page.current_page,
        "totalPages": page.total_pages,
    }


def serialize_smart_range(sr) -> dict:
    return {
        "fromBlock": block_str(sr.from_block),
        "toBlock": block_str(sr.to_block),
        "latestIndexedBlock": block_str(sr.latest_indexed_block),
        "isOptimalRange": sr.is_optimal_range,
        "degraded": sr.degraded,
        "message": sr.message,
    }
