"""
Lazy decoding of stored log payloads.

A stored event is either decodable against its contract's interface, giving a
``DecodedPayload``, or it is not (unknown layout, interface changed, malformed
data), giving an ``OpaquePayload`` that carries the raw topics and data. The
query layer only decodes when a caller asks for it.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes

from event_indexer.serializers import to_jsonable
from event_indexer.services.interface_service import canonical_type, find_event_entry

logger = logging.getLogger(__name__)


@dataclass
class DecodedPayload:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    kind: str = "decoded"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "name": self.name, "args": to_jsonable(self.args)}


@dataclass
class OpaquePayload:
    topics: List[str]
    data: str
    reason: str = ""
    kind: str = "opaque"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "topics": self.topics, "data": self.data, "reason": self.reason}


Payload = Union[DecodedPayload, OpaquePayload]


def _is_hashed_topic(typ: str) -> bool:
    # dynamic indexed params are stored as their keccak hash
    return typ.endswith("]") or typ in ("string", "bytes") or typ.startswith("(")


def decode_log(name: str, topics: Sequence[str], data: str, interface: Sequence[dict]) -> Payload:
    entry = find_event_entry(interface or [], name, topics[0] if topics else None)
    if entry is None:
        return OpaquePayload(list(topics), data, reason=f"event {name!r} not found in interface")

    inputs = entry.get("inputs", [])
    indexed = [i for i in inputs if i.get("indexed")]
    plain = [i for i in inputs if not i.get("indexed")]

    if len(indexed) != len(topics) - 1:
        return OpaquePayload(list(topics), data, reason="topic count does not match interface")

    try:
        args: Dict[str, Any] = {}
        for param, topic in zip(indexed, topics[1:]):
            typ = canonical_type(param)
            if _is_hashed_topic(typ):
                args[param.get("name") or typ] = topic
            else:
                (args[param.get("name") or typ],) = abi_decode([typ], HexBytes(topic))

        values = abi_decode([canonical_type(p) for p in plain], HexBytes(data or "0x")) if plain else ()
        for param, value in zip(plain, values):
            args[param.get("name") or canonical_type(param)] = value
    except (DecodingError, ValueError, TypeError) as e:
        logger.debug(f"Could not decode {name}: {e}")
        return OpaquePayload(list(topics), data, reason=str(e))

    return DecodedPayload(name=name, args=args)


def decode_event(event) -> Payload:
    """Decode a stored ``Event`` row using its contract's interface."""
    interface = event.contract.interface if event.contract is not None else []
    return decode_log(event.event_name, list(event.topics or []), event.data, interface)
