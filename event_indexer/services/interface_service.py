import json
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Union

from web3 import Web3

from event_indexer.exceptions import ValidationError

InterfaceType = Union[str, List[dict], dict]


@dataclass(frozen=True)
class EventSignature:
    name: str
    signature: str          # e.g. "Transfer(address,address,uint256)"
    topic: str              # keccak-256 of the signature, 0x-prefixed
    inputs: List[dict] = field(default_factory=list)


# ---------------------------
# Interface parsing
# ---------------------------

def parse_interface(raw: InterfaceType) -> List[dict]:
    """
    Normalize a contract interface to a list of entries.

    Accepts:
      - a JSON string (list or artifact object)
      - a list of dicts
      - an artifact dict with an "abi" key (Hardhat / Foundry output)
    """
    if raw is None:
        raise ValidationError("Missing contract interface")

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError(f"Invalid contract interface: not valid JSON ({e})") from e

    if isinstance(raw, dict) and "abi" in raw:
        raw = raw["abi"]

    if not isinstance(raw, list):
        raise ValidationError("Invalid contract interface: expected a JSON list of entries")
    if not all(isinstance(item, dict) for item in raw):
        raise ValidationError("Invalid contract interface: every entry must be an object")
    return raw


# ---------------------------
# Signatures
# ---------------------------

def canonical_type(param: dict) -> str:
    """Canonical ABI type, with tuple components expanded recursively."""
    typ = param.get("type", "")
    if typ.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


def event_signature_text(entry: dict) -> str:
    args = ",".join(canonical_type(i) for i in entry.get("inputs", []))
    return f"{entry['name']}({args})"


def event_topic(signature: str) -> str:
    return Web3.to_hex(Web3.keccak(text=signature))


def interface_events(interface: Sequence[dict]) -> List[dict]:
    return [item for item in interface if item.get("type") == "event" and item.get("name")]


def extract_event_signatures(interface: Sequence[dict], events_to_track: Sequence[str]) -> List[EventSignature]:
    """
    Return one EventSignature per requested name, in request order.

    Every requested name must be declared in the interface; otherwise the
    request is rejected before any fetch, naming every requested event.
    """
    names = [str(n).strip() for n in (events_to_track or []) if str(n).strip()]
    if not names:
        raise ValidationError("eventsToTrack must contain at least one event name")

    declared = {}
    for entry in interface_events(interface):
        # overloaded events: keep the first declaration
        declared.setdefault(entry["name"], entry)

    missing = [n for n in names if n not in declared]
    if missing:
        raise ValidationError(
            f"No matching events found in interface for: {', '.join(names)} "
            f"(missing: {', '.join(missing)})"
        )

    out: List[EventSignature] = []
    seen = set()
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        entry = declared[name]
        if entry.get("anonymous"):
            raise ValidationError(f"Event {name!r} is anonymous and has no signature topic to filter on")
        sig = event_signature_text(entry)
        out.append(EventSignature(name=name, signature=sig, topic=event_topic(sig), inputs=list(entry.get("inputs", []))))
    return out


def find_event_entry(interface: Sequence[dict], name: str, topic: Any = None):
    """Look up the interface entry for a stored event (by name, topic 0 when given)."""
    for entry in interface_events(interface):
        if entry["name"] != name:
            continue
        if topic is None or event_topic(event_signature_text(entry)) == str(topic).lower():
            return entry
    return None
