from datetime import datetime
from event_indexer.models import db
from event_indexer.models.types import BlockNumber


class IndexingCheckpoint(db.Model):
    __tablename__ = "indexing_checkpoints"

    id = db.Column(db.Integer, primary_key=True)
    contract_address = db.Column(db.String(42), nullable=False)
    network = db.Column(db.String(32), nullable=False)
    last_indexed_block = db.Column(BlockNumber(), nullable=False)
    last_indexed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    error_count = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("contract_address", "network", name="uq_checkpoints_contract_network"),
        db.Index("ix_checkpoints_network", "network"),
    )
