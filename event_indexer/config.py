# event_indexer/config.py
import os


def _int_env(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


class BaseConfig:
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://redis:6379/0")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://redis:6379/0")

    # --- DB ---
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "postgresql+psycopg2://indexer:indexer@db:5432/event_indexer"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # --- RPC ---
    MAINNET_RPC_URL = os.environ.get("MAINNET_RPC_URL", "https://rpc.ankr.com/eth")
    TESTNET_RPC_URL = os.environ.get("TESTNET_RPC_URL", "https://rpc.ankr.com/eth_sepolia")
    RPC_TIMEOUT = _int_env("RPC_TIMEOUT", 10)

    # --- Ingestion limits ---
    MAX_BLOCKS_PER_REQUEST = _int_env("MAX_BLOCKS_PER_REQUEST", 500)
    MAX_BLOCK_SPAN = _int_env("MAX_BLOCK_SPAN", 50_000)
    CHUNK_DELAY_SECONDS = float(os.environ.get("CHUNK_DELAY_SECONDS", 0.1))
    INSERT_BATCH_SIZE = _int_env("INSERT_BATCH_SIZE", 500)

    # --- Query side ---
    SMART_RANGE_WINDOW = _int_env("SMART_RANGE_WINDOW", 1000)
    SMART_RANGE_FALLBACK_BLOCK = _int_env("SMART_RANGE_FALLBACK_BLOCK", 23_000_000)
    DEFAULT_PAGE_SIZE = 50
    MAX_PAGE_SIZE = _int_env("MAX_PAGE_SIZE", 1000)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENV = "production"


class TestingConfig(BaseConfig):
    TESTING = True
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CHUNK_DELAY_SECONDS = 0
    CELERY_BROKER_URL = "memory://"
    CELERY_RESULT_BACKEND = "cache+memory://"
