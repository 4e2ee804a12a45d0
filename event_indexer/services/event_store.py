import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from event_indexer.exceptions import StorageError
from event_indexer.models import db
from event_indexer.models.checkpoint import IndexingCheckpoint
from event_indexer.models.contract import Contract
from event_indexer.models.event import Event
from event_indexer.serializers import to_jsonable

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


def _norm_addr(addr: str) -> str:
    return (addr or "").strip().lower()


def _insert_ignoring_duplicates(table):
    """Set-style INSERT that skips rows whose (transaction_hash, log_index) already exists."""
    dialect = db.engine.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing(index_elements=["transaction_hash", "log_index"])
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing(index_elements=["transaction_hash", "log_index"])
    raise StorageError(f"Unsupported database dialect for event inserts: {dialect}")


# ---------------------------
# Events
# ---------------------------

def build_event_row(record: dict, contract_id: int, network: str, now: datetime) -> dict:
    topics = list(record.get("topics") or [])
    return {
        "block_number": int(record["blockNumber"]),
        "block_hash": str(record.get("blockHash") or ""),
        "transaction_hash": str(record["transactionHash"]).lower(),
        "transaction_index": int(record.get("transactionIndex") or 0),
        "log_index": int(record["logIndex"]),
        "contract_id": contract_id,
        "contract_address": _norm_addr(record.get("address")),
        "event_name": str(record.get("eventName") or "Unknown"),
        "event_signature": str(topics[0]) if topics else "",
        "topics": topics,
        "data": record.get("data") or "0x",
        "raw_log": to_jsonable(record),
        "network": network,
        "created_at": now,
        "updated_at": now,
    }


def insert_events(
    records: Sequence[dict],
    contract_id: int,
    network: str,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """
    Persist records, silently skipping any whose (transactionHash, logIndex)
    is already stored. Each batch is committed on its own, so batches written
    before a failure stay in place. Returns the number of new rows.
    """
    if not records:
        return 0

    now = datetime.utcnow()
    rows = [build_event_row(r, contract_id, network, now) for r in records]
    inserted = 0

    for start in range(0, len(rows), batch_size):
        batch = rows[start:start + batch_size]
        try:
            result = db.session.execute(_insert_ignoring_duplicates(Event.__table__).values(batch))
            db.session.commit()
        except (SQLAlchemyError, OverflowError) as e:
            db.session.rollback()
            logger.error(
                f"Event batch insert failed: {e}",
                extra={"context": {"contract_id": contract_id, "network": network, "batch_start": start}},
            )
            raise StorageError(f"Failed to store events: {e}") from e
        if result.rowcount is not None and result.rowcount >= 0:
            inserted += result.rowcount

    logger.info(
        f"Stored {inserted} new events ({len(rows) - inserted} already present)",
        extra={"context": {"contract_id": contract_id, "network": network}},
    )
    return inserted


def latest_block_number(contract_address: str, network: str, event_name: Optional[str] = None) -> Optional[int]:
    q = db.session.query(func.max(Event.block_number)).filter(
        Event.contract_address == _norm_addr(contract_address),
        Event.network == network,
    )
    if event_name:
        q = q.filter(Event.event_name == event_name)
    value = q.scalar()
    return int(value) if value is not None else None


# ---------------------------
# Contracts
# ---------------------------

def upsert_contract(address: str, interface: List[dict], network: str, name: Optional[str] = None) -> Contract:
    """Create or refresh the contract row for ``address`` (stored lowercase)."""
    ca = _norm_addr(address)
    now = datetime.utcnow()

    try:
        rec = Contract.query.filter_by(address=ca).first()
        if rec is None:
            rec = Contract(address=ca, network=network, interface=interface, name=name, created_at=now, updated_at=now)
            db.session.add(rec)
            try:
                db.session.commit()
                return rec
            except IntegrityError:
                # lost a race with a concurrent run; refresh the winner's row instead
                db.session.rollback()
                rec = Contract.query.filter_by(address=ca).one()

        rec.interface = interface
        rec.network = network
        if name:
            rec.name = name
        rec.updated_at = now
        db.session.commit()
        return rec
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageError(f"Failed to upsert contract {ca}: {e}") from e


# ---------------------------
# Checkpoints
# ---------------------------

def get_checkpoint(contract_address: str, network: str) -> Optional[IndexingCheckpoint]:
    return IndexingCheckpoint.query.filter_by(contract_address=_norm_addr(contract_address), network=network).first()


def update_checkpoint(contract_address: str, network: str, block_height: int) -> IndexingCheckpoint:
    """
    Record a successful run: move the checkpoint to ``block_height`` (never
    backwards) and reset the error counter.
    """
    ca = _norm_addr(contract_address)
    now = datetime.utcnow()
    try:
        cp = get_checkpoint(ca, network)
        if cp is None:
            cp = IndexingCheckpoint(
                contract_address=ca,
                network=network,
                last_indexed_block=int(block_height),
                created_at=now,
            )
            db.session.add(cp)
        else:
            cp.last_indexed_block = max(int(cp.last_indexed_block), int(block_height))
        cp.last_indexed_at = now
        cp.error_count = 0
        cp.last_error = None
        cp.updated_at = now

        contract = Contract.query.filter_by(address=ca).first()
        if contract is not None:
            contract.last_indexed_block = cp.last_indexed_block
        db.session.commit()
        return cp
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageError(f"Failed to update checkpoint for {ca}: {e}") from e


def record_checkpoint_error(contract_address: str, network: str, message: str) -> Optional[IndexingCheckpoint]:
    """Bump the error counter of an existing checkpoint. No-op before the first successful run."""
    try:
        cp = get_checkpoint(contract_address, network)
        if cp is None:
            return None
        cp.error_count = (cp.error_count or 0) + 1
        cp.last_error = message[:2000]
        cp.updated_at = datetime.utcnow()
        db.session.commit()
        return cp
    except SQLAlchemyError as e:
        db.session.rollback()
        raise StorageError(f"Failed to record checkpoint error: {e}") from e
