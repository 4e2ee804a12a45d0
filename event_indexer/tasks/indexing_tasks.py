# event_indexer/tasks/indexing_tasks.py
from datetime import datetime

from celery import shared_task
from flask import current_app

from event_indexer.exceptions import IndexerError
from event_indexer.models import db, IndexingJob
from event_indexer.services.indexer_service import IndexingRequest, run_indexing
from event_indexer.services.networks import get_registry


def _finish(job: IndexingJob, status: str, result: dict):
    job.status = status
    job.result = result
    job.updated_at = datetime.utcnow()
    db.session.commit()


@shared_task(name="indexer.run")
def run_indexing_job(job_id: int):
    """
    Run a queued ingestion request and store a summary on the IndexingJob.
    Events themselves are not copied into the job result; they are in the events table.
    """
    job = db.session.get(IndexingJob, job_id)
    if not job:
        return {"error": f"IndexingJob id {job_id} not found"}

    job.status = "running"
    job.updated_at = datetime.utcnow()
    db.session.commit()

    try:
        req = IndexingRequest.from_payload(job.params or {})
        result = run_indexing(req, get_registry().get(req.network), current_app.config)
    except IndexerError as e:
        db.session.rollback()
        _finish(job, "error", {"success": False, "error": str(e)})
        return job.result
    except Exception as e:
        db.session.rollback()
        _finish(job, "error", {"success": False, "error": str(e)})
        raise

    summary = result.to_response(include_events=False)
    _finish(job, "done", summary)
    return summary
