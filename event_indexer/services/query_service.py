# event_indexer/services/query_service.py
import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from sqlalchemy import func

from event_indexer.exceptions import ValidationError
from event_indexer.models import db
from event_indexer.models.checkpoint import IndexingCheckpoint
from event_indexer.models.contract import Contract
from event_indexer.models.event import Event
from event_indexer.services.filters import And, Between, Eq, SqlAlchemyPredicateBuilder, event_filter_from_args
from event_indexer.services.networks import normalize_network
from event_indexer.services.range_advisor import SmartRange, advise_range

DEFAULT_LIMIT = 50
MAX_LIMIT = 1000


@dataclass
class Page:
    items: list
    total_count: int
    current_page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1


def parse_pagination(page=None, limit=None, max_limit: int = MAX_LIMIT, default_limit: int = DEFAULT_LIMIT) -> Tuple[int, int]:
    try:
        page = 1 if page in (None, "") else int(page)
        limit = default_limit if limit in (None, "") else int(limit)
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers") from None
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")
    return page, limit


def _ordered(query):
    # read side: most recent first
    return query.order_by(Event.block_number.desc(), Event.log_index.desc())


def paginate(query, page: int, limit: int) -> Page:
    total = query.order_by(None).count()
    items = _ordered(query).offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total_count=total, current_page=page, limit=limit)


def events_query(filters: And):
    predicate = SqlAlchemyPredicateBuilder().build(filters)
    return Event.query.filter(predicate)


# ---------------------------
# Contracts
# ---------------------------

def list_contracts(network: Optional[str] = None) -> List[Contract]:
    q = Contract.query
    if network:
        q = q.filter(Contract.network == normalize_network(network))
    return q.order_by(Contract.created_at.desc(), Contract.id.desc()).all()


def get_contract(address: str, network: str) -> Optional[Contract]:
    return Contract.query.filter_by(address=(address or "").strip().lower(), network=normalize_network(network)).first()


# ---------------------------
# Events
# ---------------------------

def list_events(filters: Mapping, page: int = 1, limit: int = DEFAULT_LIMIT) -> Page:
    tree = filters if isinstance(filters, And) else event_filter_from_args(filters or {})
    return paginate(events_query(tree), page, limit)


def list_contract_events(
    address: str,
    network: str,
    event_name: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
) -> Page:
    terms = [Eq("contractAddress", address.strip().lower()), Eq("network", normalize_network(network))]
    if event_name:
        terms.append(Eq("eventName", event_name))
    return paginate(events_query(And(terms)), page, limit)


def list_event_names(contract_address: str, network: str) -> List[str]:
    rows = (
        db.session.query(Event.event_name)
        .filter(Event.contract_address == contract_address.strip().lower(), Event.network == normalize_network(network))
        .distinct()
        .order_by(Event.event_name)
        .all()
    )
    return [r[0] for r in rows]


def smart_range_events(
    address: str,
    network: str,
    client,
    event_name: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    window: int = 1000,
    fallback_block: int = 23_000_000,
) -> Tuple[SmartRange, Page]:
    """One page of events inside the smart range for (address, network[, event_name])."""
    nw = normalize_network(network)
    addr = address.strip().lower()
    rng = advise_range(addr, nw, client, event_name=event_name, window=window, fallback_block=fallback_block)

    terms = [Eq("contractAddress", addr), Eq("network", nw), Between("blockNumber", rng.from_block, rng.to_block)]
    if event_name:
        terms.append(Eq("eventName", event_name))
    return rng, paginate(events_query(And(terms)), page, limit)


def contract_stats(address: str, network: Optional[str] = None) -> dict:
    addr = address.strip().lower()
    base = [Event.contract_address == addr]
    if network:
        base.append(Event.network == normalize_network(network))

    total = db.session.query(func.count(Event.id)).filter(*base).scalar() or 0
    per_name = (
        db.session.query(Event.event_name, func.count(Event.id))
        .filter(*base)
        .group_by(Event.event_name)
        .order_by(Event.event_name)
        .all()
    )
    lo, hi = db.session.query(func.min(Event.block_number), func.max(Event.block_number)).filter(*base).one()
    return {
        "totalEvents": total,
        "eventTypes": [{"name": name, "count": count} for name, count in per_name],
        "blockRange": {"from": lo, "to": hi},
    }


# ---------------------------
# Checkpoints
# ---------------------------

def list_checkpoints(contract_address: Optional[str] = None, network: Optional[str] = None) -> List[IndexingCheckpoint]:
    q = IndexingCheckpoint.query
    if contract_address:
        q = q.filter(IndexingCheckpoint.contract_address == contract_address.strip().lower())
    if network:
        q = q.filter(IndexingCheckpoint.network == normalize_network(network))
    return q.order_by(IndexingCheckpoint.last_indexed_at.desc()).all()
