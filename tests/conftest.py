import os
import pytest

from event_indexer import create_app
from event_indexer.models import db as _db
from event_indexer.services.networks import ClientRegistry
from tests.utils import CONTRACT, ERC20_INTERFACE, FakeChainClient


@pytest.fixture(scope="session")
def registry():
    return ClientRegistry({"mainnet": FakeChainClient(), "testnet": FakeChainClient()})


@pytest.fixture(scope="session")
def app(registry):
    os.environ["FLASK_ENV"] = "testing"
    app = create_app("testing", clients=registry)
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()


@pytest.fixture(autouse=True)
def clean_db(app):
    yield
    _db.session.remove()
    _db.drop_all()
    _db.create_all()


@pytest.fixture()
def chain(registry):
    client = registry.get("testnet")
    client.reset()
    return client


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def erc20_interface():
    return [dict(item) for item in ERC20_INTERFACE]


@pytest.fixture()
def contract(app, erc20_interface):
    from event_indexer.services.event_store import upsert_contract
    return upsert_contract(CONTRACT, erc20_interface, "testnet", name="Test Token")
