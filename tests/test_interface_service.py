import json

import pytest

from event_indexer.exceptions import ValidationError
from event_indexer.services.interface_service import (
    canonical_type,
    event_signature_text,
    extract_event_signatures,
    parse_interface,
)
from tests.utils import APPROVAL_TOPIC, TRANSFER_TOPIC


def test_parse_interface_accepts_string_list_and_artifact(erc20_interface):
    assert parse_interface(json.dumps(erc20_interface)) == erc20_interface
    assert parse_interface(erc20_interface) == erc20_interface
    assert parse_interface({"contractName": "Token", "abi": erc20_interface}) == erc20_interface


@pytest.mark.parametrize("raw", ["not json", "{\"a\": 1}", 42, None, ["Transfer"]])
def test_parse_interface_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        parse_interface(raw)


def test_signatures_in_request_order(erc20_interface):
    sigs = extract_event_signatures(erc20_interface, ["Approval", "Transfer"])
    assert [s.name for s in sigs] == ["Approval", "Transfer"]
    assert sigs[1].signature == "Transfer(address,address,uint256)"
    assert sigs[1].topic == TRANSFER_TOPIC
    assert sigs[0].topic == APPROVAL_TOPIC


def test_undeclared_event_names_every_requested_event(erc20_interface):
    only_transfer = [e for e in erc20_interface if e.get("name") != "Approval"]
    with pytest.raises(ValidationError) as exc:
        extract_event_signatures(only_transfer, ["Transfer", "Approval"])
    msg = str(exc.value)
    assert "Transfer" in msg and "Approval" in msg
    assert "missing: Approval" in msg


def test_no_matching_event_names_every_requested_event(erc20_interface):
    with pytest.raises(ValidationError) as exc:
        extract_event_signatures(erc20_interface, ["Mint", "Burn"])
    msg = str(exc.value)
    assert "No matching events" in msg
    assert "Mint" in msg and "Burn" in msg


def test_empty_event_list_rejected(erc20_interface):
    with pytest.raises(ValidationError):
        extract_event_signatures(erc20_interface, [])


def test_anonymous_event_rejected():
    iface = [{"type": "event", "name": "Ping", "anonymous": True, "inputs": []}]
    with pytest.raises(ValidationError):
        extract_event_signatures(iface, ["Ping"])


def test_tuple_types_are_expanded():
    param = {
        "type": "tuple[]",
        "components": [{"type": "address"}, {"type": "tuple", "components": [{"type": "uint8"}, {"type": "bytes"}]}],
    }
    assert canonical_type(param) == "(address,(uint8,bytes))[]"
    entry = {"type": "event", "name": "Batch", "inputs": [param]}
    assert event_signature_text(entry) == "Batch((address,(uint8,bytes))[])"
