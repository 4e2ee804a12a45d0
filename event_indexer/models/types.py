# event_indexer/models/types.py
from sqlalchemy.types import TypeDecorator
from sqlalchemy import JSON, BigInteger, Numeric


class JSONBCompat(TypeDecorator):
    """
    JSONB on PostgreSQL, generic JSON on SQLite and others.
    Lets the same models run in tests (sqlite://) and in production (postgresql://).
    """
    impl = JSON
    cache_ok = True

    def __init__(self, **jsonb_kwargs):
        super().__init__()
        self._jsonb_kwargs = jsonb_kwargs

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import JSONB
            return dialect.type_descriptor(JSONB(**self._jsonb_kwargs))
        return dialect.type_descriptor(JSON())


class BlockNumber(TypeDecorator):
    """
    Arbitrary-precision block height.

    NUMERIC(78, 0) on PostgreSQL (wide enough for a uint256), BIGINT elsewhere.
    Only PostgreSQL is lossless over the full u64 range; a signed BIGINT
    rejects heights of 2**63 and above.
    Values always cross the boundary as ``int``; NUMERIC results come back as
    Decimal and are converted without going through float.
    """
    impl = BigInteger
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(78, 0, asdecimal=True))
        return dialect.type_descriptor(BigInteger())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)
