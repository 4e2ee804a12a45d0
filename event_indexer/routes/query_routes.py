# event_indexer/routes/query_routes.py
from flask import Blueprint, current_app, jsonify, request

from event_indexer.exceptions import IndexerError
from event_indexer.routes.errors import as_bool, error_response
from event_indexer.serializers import (
    block_str,
    serialize_checkpoint,
    serialize_contract,
    serialize_event,
    serialize_page,
    serialize_smart_range,
)
from event_indexer.services import query_service
from event_indexer.services.decoding import decode_event
from event_indexer.services.networks import get_registry, normalize_network
from event_indexer.services.range_advisor import recommended_range

bp = Blueprint("query", __name__)


# --- Local helpers ---

def _pagination():
    return query_service.parse_pagination(
        request.args.get("page"),
        request.args.get("limit"),
        max_limit=current_app.config.get("MAX_PAGE_SIZE", query_service.MAX_LIMIT),
        default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", query_service.DEFAULT_LIMIT),
    )


def _network(default: str = "testnet") -> str:
    return normalize_network(request.args.get("network") or default)


def _page_body(page) -> dict:
    decode = as_bool(request.args.get("decode", "false"))
    items = [serialize_event(e, decode_event(e) if decode else None) for e in page.items]
    return serialize_page(page, items)


def _smart_range_args():
    address = (request.args.get("contractAddress") or "").strip()
    if not address:
        return None
    return address, _network(), (request.args.get("eventName") or None)


# --- Contracts ---

@bp.get("/contracts")
def list_contracts():
    """
    Contracts: list
    ---
    tags: [Query]
    parameters:
      - {in: query, name: network, type: string, required: false, example: "testnet"}
    responses:
      200: {description: OK}
    """
    try:
        contracts = query_service.list_contracts(request.args.get("network"))
        return jsonify({"success": True, "contracts": [serialize_contract(c) for c in contracts]}), 200
    except Exception as e:
        return error_response(e)


@bp.get("/contracts/<address>")
def get_contract(address: str):
    """
    Contracts: fetch one by address and network
    ---
    tags: [Query]
    parameters:
      - {in: path, name: address, type: string, required: true}
      - {in: query, name: network, type: string, required: false, default: testnet}
    responses:
      200: {description: OK}
      404: {description: Not found}
    """
    try:
        contract = query_service.get_contract(address, _network())
        if contract is None:
            return jsonify({"success": False, "error": "contract not found"}), 404
        return jsonify({"success": True, "contract": serialize_contract(contract)}), 200
    except Exception as e:
        return error_response(e)


@bp.get("/contracts/<address>/events")
def contract_events(address: str):
    """
    Events: one contract, most recent first
    ---
    tags: [Query]
    parameters:
      - {in: path, name: address, type: string, required: true}
      - {in: query, name: network, type: string, required: false, default: testnet}
      - {in: query, name: eventName, type: string, required: false}
      - {in: query, name: page, type: integer, required: false, default: 1}
      - {in: query, name: limit, type: integer, required: false, default: 50}
      - {in: query, name: decode, type: boolean, required: false, default: false}
    responses:
      200: {description: OK}
      400: {description: Bad pagination}
    """
    try:
        page, limit = _pagination()
        result = query_service.list_contract_events(
            address, _network(), request.args.get("eventName") or None, page=page, limit=limit
        )
        return jsonify({"success": True, **_page_body(result)}), 200
    except Exception as e:
        return error_response(e)


@bp.get("/contracts/<address>/event-names")
def event_names(address: str):
    """
    Events: distinct event names stored for a contract
    ---
    tags: [Query]
    parameters:
      - {in: path, name: address, type: string, required: true}
      - {in: query, name: network, type: string, required: false, default: testnet}
    responses:
      200: {description: OK}
    """
    try:
        return jsonify({"success": True, "eventNames": query_service.list_event_names(address, _network())}), 200
    except Exception as e:
        return error_response(e)


@bp.get("/contracts/<address>/stats")
def contract_stats(address: str):
    """
    Events: per-contract statistics
    ---
    tags: [Query]
    parameters:
      - {in: path, name: address, type: string, required: true}
      - {in: query, name: network, type: string, required: false}
    responses:
      200: {description: OK}
    """
    try:
        stats = query_service.contract_stats(address, request.args.get("network") or None)
        stats["blockRange"] = {k: block_str(v) for k, v in stats["blockRange"].items()}
        return jsonify({"success": True, "stats": stats}), 200
    except Exception as e:
        return error_response(e)


# --- Events ---

@bp.get("/events")
def list_events():
    """
    Events: filtered and paginated
    ---
    tags: [Query]
    parameters:
      - {in: query, name: contractAddress, type: string, required: false}
      - {in: query, name: eventName, type: string, required: false}
      - {in: query, name: network, type: string, required: false}
      - {in: query, name: fromBlock, type: string, required: false}
      - {in: query, name: toBlock, type: string, required: false}
      - {in: query, name: fromDate, type: string, required: false, example: "2025-08-31T00:00:00Z"}
      - {in: query, name: toDate, type: string, required: false}
      - {in: query, name: page, type: integer, required: false, default: 1}
      - {in: query, name: limit, type: integer, required: false, default: 50}
      - {in: query, name: decode, type: boolean, required: false, default: false}
    responses:
      200: {description: OK}
      400: {description: Bad filter or pagination}
    """
    try:
        page, limit = _pagination()
        result = query_service.list_events(request.args, page=page, limit=limit)
        return jsonify({"success": True, **_page_body(result)}), 200
    except Exception as e:
        return error_response(e)


# --- Checkpoints ---

@bp.get("/checkpoints")
def list_checkpoints():
    """
    Checkpoints: list
    ---
    tags: [Query]
    parameters:
      - {in: query, name: contractAddress, type: string, required: false}
      - {in: query, name: network, type: string, required: false}
    responses:
      200: {description: OK}
    """
    try:
        rows = query_service.list_checkpoints(
            request.args.get("contractAddress") or None, request.args.get("network") or None
        )
        return jsonify({"success": True, "checkpoints": [serialize_checkpoint(cp) for cp in rows]}), 200
    except Exception as e:
        return error_response(e)


# --- Smart range ---

@bp.get("/smart-range")
def smart_range():
    """
    Smart range: default window for a contract (no events)
    ---
    tags: [Query]
    parameters:
      - {in: query, name: contractAddress, type: string, required: true}
      - {in: query, name: network, type: string, required: false, default: testnet}
      - {in: query, name: eventName, type: string, required: false}
    responses:
      200: {description: OK}
      400: {description: Missing contractAddress}
    """
    try:
        args = _smart_range_args()
        if args is None:
            return jsonify({"success": False, "error": "contractAddress is required"}), 400
        address, network, event_name = args
        rng, page = query_service.smart_range_events(
            address, network, get_registry().get(network), event_name=event_name, page=1, limit=1,
            window=current_app.config["SMART_RANGE_WINDOW"],
            fallback_block=current_app.config["SMART_RANGE_FALLBACK_BLOCK"],
        )
        return jsonify({
            "success": True,
            "data": {"rangeInfo": serialize_smart_range(rng), "totalEventsInRange": page.total_count},
        }), 200
    except Exception as e:
        return error_response(e)


@bp.get("/smart-range/events")
def smart_range_events():
    """
    Smart range: default window plus one page of events
    ---
    tags: [Query]
    parameters:
      - {in: query, name: contractAddress, type: string, required: true}
      - {in: query, name: network, type: string, required: false, default: testnet}
      - {in: query, name: eventName, type: string, required: false}
      - {in: query, name: page, type: integer, required: false, default: 1}
      - {in: query, name: limit, type: integer, required: false, default: 50}
      - {in: query, name: decode, type: boolean, required: false, default: false}
    responses:
      200: {description: OK}
      400: {description: Missing contractAddress or bad pagination}
    """
    try:
        args = _smart_range_args()
        if args is None:
            return jsonify({"success": False, "error": "contractAddress is required"}), 400
        address, network, event_name = args
        page, limit = _pagination()
        rng, result = query_service.smart_range_events(
            address, network, get_registry().get(network), event_name=event_name, page=page, limit=limit,
            window=current_app.config["SMART_RANGE_WINDOW"],
            fallback_block=current_app.config["SMART_RANGE_FALLBACK_BLOCK"],
        )
        return jsonify({"success": True, "rangeInfo": serialize_smart_range(rng), **_page_body(result)}), 200
    except Exception as e:
        return error_response(e)


@bp.get("/latest-block")
def latest_block():
    """
    Chain: live head and recommended range
    ---
    tags: [Query]
    parameters:
      - {in: query, name: network, type: string, required: false, default: testnet}
    responses:
      200: {description: OK}
      502: {description: RPC unavailable}
    """
    try:
        client = get_registry().get(_network())
    except IndexerError as e:
        return error_response(e)
    try:
        rng = recommended_range(client, window=current_app.config["SMART_RANGE_WINDOW"])
    except Exception as e:
        return jsonify({"success": False, "error": f"Failed to fetch latest block: {e}"}), 502
    return jsonify({"success": True, "data": {k: str(v) for k, v in rng.items()}}), 200
