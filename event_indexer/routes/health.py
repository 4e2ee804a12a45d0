from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.get("/healthz")
def healthz():
    """
    Healthcheck
    ---
    tags:
      - Health
    responses:
      200:
        description: OK
    """
    registry = current_app.extensions.get("chain_clients")
    return jsonify({"ok": True, "networks": registry.networks() if registry else []}), 200
