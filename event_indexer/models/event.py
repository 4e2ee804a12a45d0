from datetime import datetime
from event_indexer.models import db
from event_indexer.models.types import JSONBCompat, BlockNumber


class Event(db.Model):
    """One emitted log. Append-only: rows are inserted once and never updated."""

    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    block_number = db.Column(BlockNumber(), nullable=False)
    block_hash = db.Column(db.String(66), nullable=False)
    transaction_hash = db.Column(db.String(66), nullable=False)
    transaction_index = db.Column(db.Integer, nullable=False)
    log_index = db.Column(db.Integer, nullable=False)

    contract_id = db.Column(db.Integer, db.ForeignKey("contracts.id"), nullable=False)
    contract_address = db.Column(db.String(42), nullable=False)  # denormalized, lowercase

    event_name = db.Column(db.String(128), nullable=False)
    event_signature = db.Column(db.String(66), nullable=False)   # topic 0
    topics = db.Column(JSONBCompat(), nullable=False)
    data = db.Column(db.Text, nullable=False)
    raw_log = db.Column(JSONBCompat(), nullable=False)
    network = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    contract = db.relationship("Contract", back_populates="events")

    __table_args__ = (
        db.UniqueConstraint("transaction_hash", "log_index", name="uq_events_tx_log"),
        db.Index("ix_events_block_number", "block_number"),
        db.Index("ix_events_contract_address", "contract_address"),
        db.Index("ix_events_event_name", "event_name"),
        db.Index("ix_events_network", "network"),
        db.Index("ix_events_transaction_hash", "transaction_hash"),
        db.Index("ix_events_contract_block", "contract_address", "block_number"),
    )
