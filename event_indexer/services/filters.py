"""
Small filter grammar for event queries.

A filter is a tree of ``Eq`` / ``Between`` terms joined by ``And``. Parsing
turns request arguments into a tree; a visitor turns the tree into something a
storage engine understands. ``SqlAlchemyPredicateBuilder`` is the one used by
the query service.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from sqlalchemy import and_, true

from event_indexer.exceptions import ValidationError
from event_indexer.models.event import Event
from event_indexer.services.networks import normalize_network


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class Between:
    field: str
    lower: Any = None
    upper: Any = None


@dataclass(frozen=True)
class And:
    terms: List[Any] = field(default_factory=list)

    def __bool__(self):
        return bool(self.terms)


# ---------------------------
# Parsing
# ---------------------------

def _parse_block(name: str, value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        text = str(value).strip()
        n = int(text, 16) if text.lower().startswith("0x") else int(text)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer, got {value!r}") from None
    if n < 0:
        raise ValidationError(f"{name} must be non-negative")
    return n


def _parse_date(name: str, value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date, got {value!r}") from None
    if dt.tzinfo is not None:
        # stored timestamps are naive UTC
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def event_filter_from_args(args: Mapping) -> And:
    """
    Build the filter tree from request-style arguments. Every supplied filter is
    AND-combined; absent ones are ignored.
    """
    terms: List[Any] = []

    address = (args.get("contractAddress") or "").strip()
    if address:
        terms.append(Eq("contractAddress", address.lower()))

    event_name = (args.get("eventName") or "").strip()
    if event_name:
        terms.append(Eq("eventName", event_name))

    network = (args.get("network") or "").strip()
    if network:
        terms.append(Eq("network", normalize_network(network)))

    from_block = _parse_block("fromBlock", args.get("fromBlock"))
    to_block = _parse_block("toBlock", args.get("toBlock"))
    if from_block is not None or to_block is not None:
        if from_block is not None and to_block is not None and from_block > to_block:
            raise ValidationError("fromBlock must be less than or equal to toBlock")
        terms.append(Between("blockNumber", from_block, to_block))

    from_date = _parse_date("fromDate", args.get("fromDate"))
    to_date = _parse_date("toDate", args.get("toDate"))
    if from_date is not None or to_date is not None:
        terms.append(Between("createdAt", from_date, to_date))

    return And(terms)


# ---------------------------
# SQLAlchemy visitor
# ---------------------------

EVENT_COLUMNS = {
    "contractAddress": Event.contract_address,
    "eventName": Event.event_name,
    "network": Event.network,
    "blockNumber": Event.block_number,
    "createdAt": Event.created_at,
}


class SqlAlchemyPredicateBuilder:
    def __init__(self, columns: Mapping = None):
        self.columns = columns or EVENT_COLUMNS

    def build(self, node):
        return self.visit(node)

    def visit(self, node):
        method = getattr(self, f"visit_{type(node).__name__.lower()}", None)
        if method is None:
            raise ValidationError(f"Unsupported filter term: {node!r}")
        return method(node)

    def _column(self, name: str):
        try:
            return self.columns[name]
        except KeyError:
            raise ValidationError(f"Unknown filter field: {name}") from None

    def visit_eq(self, node: Eq):
        return self._column(node.field) == node.value

    def visit_between(self, node: Between):
        col = self._column(node.field)
        parts = []
        if node.lower is not None:
            parts.append(col >= node.lower)
        if node.upper is not None:
            parts.append(col <= node.upper)
        return and_(true(), *parts)

    def visit_and(self, node: And):
        return and_(true(), *[self.visit(t) for t in node.terms])
