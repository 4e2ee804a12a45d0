from event_indexer.models import Event
from event_indexer.services import event_store
from event_indexer.services.decoding import DecodedPayload, OpaquePayload, decode_event, decode_log
from event_indexer.services.log_fetcher import normalize_log
from tests.utils import ERC20_INTERFACE, HOLDER_A, HOLDER_B, TRANSFER_TOPIC, make_log


def _parts(log):
    rec = normalize_log(log, "Transfer")
    return rec["topics"], rec["data"]


def test_decode_transfer():
    topics, data = _parts(make_log(1, 0, value=1234))
    payload = decode_log("Transfer", topics, data, ERC20_INTERFACE)

    assert isinstance(payload, DecodedPayload)
    assert payload.args["from"].lower() == HOLDER_A
    assert payload.args["to"].lower() == HOLDER_B
    assert payload.args["value"] == 1234
    assert payload.to_dict()["kind"] == "decoded"


def test_unknown_event_is_opaque():
    topics, data = _parts(make_log(1, 0))
    payload = decode_log("Mint", topics, data, ERC20_INTERFACE)

    assert isinstance(payload, OpaquePayload)
    assert payload.topics == topics
    assert payload.data == data
    assert "not found" in payload.reason


def test_topic_count_mismatch_is_opaque():
    topics, data = _parts(make_log(1, 0))
    payload = decode_log("Transfer", topics[:2], data, ERC20_INTERFACE)
    assert payload.kind == "opaque"


def test_truncated_data_is_opaque():
    payload = decode_log("Transfer", _parts(make_log(1, 0))[0], "0x1234", ERC20_INTERFACE)
    assert payload.kind == "opaque"
    assert payload.to_dict()["data"] == "0x1234"


def test_decode_stored_event(contract):
    event_store.insert_events([normalize_log(make_log(5, 0, value=7), "Transfer")], contract.id, "testnet")
    row = Event.query.one()

    payload = decode_event(row)
    assert payload.kind == "decoded"
    assert payload.args["value"] == 7
    assert row.event_signature == TRANSFER_TOPIC
