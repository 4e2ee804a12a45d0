import logging

from flask import Blueprint, current_app, jsonify, request

from event_indexer.exceptions import IndexerError
from event_indexer.models import db, IndexingJob
from event_indexer.routes.errors import as_bool, error_response
from event_indexer.serializers import iso
from event_indexer.services.indexer_service import IndexingRequest, run_indexing
from event_indexer.services.networks import get_registry

logger = logging.getLogger(__name__)

bp = Blueprint("indexer", __name__)  # prefix applied on registration


@bp.get("")
def describe():
    """
    Indexer: service description
    ---
    tags: [Indexer]
    responses:
      200: {description: OK}
    """
    return jsonify({
        "success": True,
        "message": "Contract event indexer API is running",
        "endpoints": {
            "POST /api/indexer": "Index a contract's events over a block range",
            "POST /api/indexer/jobs": "Queue an indexing run in the background",
        },
    }), 200


@bp.post("")
def index_contract():
    """
    Indexer: fetch and store a contract's events over a block range
    ---
    tags: [Indexer]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [contractAddress, contractInterface, eventsToTrack]
          properties:
            contractAddress: {type: string, example: "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"}
            contractInterface:
              type: array
              items: {type: object}
            eventsToTrack:
              type: array
              items: {type: string}
              example: ["Transfer"]
            network: {type: string, enum: [mainnet, testnet], example: "testnet"}
            fromBlock: {type: string, example: "6700000"}
            toBlock: {type: string, example: "latest"}
            name: {type: string, example: "USDC"}
            includeEvents: {type: boolean, example: true}
    responses:
      200: {description: Indexed (see metadata.complete for partial runs)}
      400: {description: Invalid request or range too large}
      502: {description: Every chunk request failed}
      500: {description: Storage or unexpected error}
    """
    data = request.get_json(silent=True) or {}
    try:
        req = IndexingRequest.from_payload(data)
        client = get_registry().get(req.network)
        result = run_indexing(req, client, current_app.config)
        return jsonify(result.to_response(include_events=as_bool(data.get("includeEvents", True)))), 200
    except Exception as e:
        return error_response(e)


@bp.post("/jobs")
def enqueue():
    """
    Indexer: queue an indexing run (Celery)
    ---
    tags: [Indexer]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [contractAddress, contractInterface, eventsToTrack]
    responses:
      202: {description: Accepted}
      400: {description: Invalid request}
      501: {description: Task not available}
    """
    data = request.get_json(silent=True) or {}
    try:
        # reject bad requests before creating a job
        IndexingRequest.from_payload(data)
    except IndexerError as e:
        return error_response(e)

    try:
        from event_indexer.tasks.indexing_tasks import run_indexing_job
    except Exception as e:
        return jsonify({"success": False, "error": "Task 'indexer.run' is not available", "detail": str(e)}), 501

    job = IndexingJob(status="queued", params=data)
    db.session.add(job)
    db.session.commit()

    async_res = run_indexing_job.delay(job.id)
    job.task_id = async_res.id
    db.session.commit()

    return jsonify({"success": True, "jobId": job.id, "taskId": async_res.id, "status": "queued"}), 202


@bp.get("/jobs/<int:job_id>")
def job_status(job_id: int):
    """
    Indexer: background job status
    ---
    tags: [Indexer]
    parameters:
      - in: path
        name: job_id
        required: true
        type: integer
    responses:
      200: {description: OK}
      404: {description: Not found}
    """
    job = db.session.get(IndexingJob, job_id)
    if not job:
        return jsonify({"success": False, "error": "job not found"}), 404
    return jsonify({
        "success": True,
        "jobId": job.id,
        "taskId": job.task_id,
        "status": job.status,
        "result": job.result,
        "createdAt": iso(job.created_at),
        "updatedAt": iso(job.updated_at),
    }), 200
