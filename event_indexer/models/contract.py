from datetime import datetime
from event_indexer.models import db
from event_indexer.models.types import JSONBCompat, BlockNumber


class Contract(db.Model):
    __tablename__ = "contracts"

    id = db.Column(db.Integer, primary_key=True)
    address = db.Column(db.String(42), nullable=False, unique=True)  # always lowercase
    network = db.Column(db.String(32), nullable=False)
    interface = db.Column(JSONBCompat(), nullable=False)           # list of interface entries
    name = db.Column(db.String(128), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_indexed_block = db.Column(BlockNumber(), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    events = db.relationship("Event", back_populates="contract", lazy="dynamic")

    __table_args__ = (
        db.Index("ix_contracts_network", "network"),
        db.Index("ix_contracts_is_active", "is_active"),
    )
