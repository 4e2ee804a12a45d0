from datetime import datetime

from hexbytes import HexBytes

from event_indexer.serializers import MAX_SAFE_INTEGER, iso, serialize_smart_range, to_jsonable, wire_int
from event_indexer.services.range_advisor import SmartRange


def test_wire_int_switches_to_string_past_safe_range():
    assert wire_int(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
    assert wire_int(MAX_SAFE_INTEGER + 1) == str(MAX_SAFE_INTEGER + 1)
    assert wire_int(-(MAX_SAFE_INTEGER + 1)) == str(-(MAX_SAFE_INTEGER + 1))
    assert wire_int(None) is None


def test_block_fields_always_strings():
    out = to_jsonable({"blockNumber": 12, "logIndex": 3, "nested": {"toBlock": 2 ** 60}})
    assert out == {"blockNumber": "12", "logIndex": 3, "nested": {"toBlock": str(2 ** 60)}}


def test_bytes_and_sequences():
    assert to_jsonable(HexBytes("0xdead")) == "0xdead"
    assert to_jsonable((1, True, None, b"\x01")) == [1, True, None, "0x01"]


def test_iso():
    assert iso(datetime(2025, 8, 31, 12, 0, 0, 123456)) == "2025-08-31T12:00:00Z"
    assert iso(None) is None


def test_serialize_smart_range():
    out = serialize_smart_range(SmartRange(1, 1000, None, False, "cold", degraded=True))
    assert out == {
        "fromBlock": "1",
        "toBlock": "1000",
        "latestIndexedBlock": None,
        "isOptimalRange": False,
        "degraded": True,
        "message": "cold",
    }
