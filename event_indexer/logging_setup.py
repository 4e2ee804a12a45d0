import logging
import json
import time
from flask import has_request_context, request
from celery import current_task


class SkipHealthcheck(logging.Filter):
    """Drops records emitted while serving /healthz."""

    def filter(self, record):
        return not (has_request_context() and request.path == "/healthz")


class JsonRequestFormatter(logging.Formatter):
    """
    One JSON object per line. ``extra={"context": {...}}`` is merged into the
    top level, so a run can be followed by contract, network and state.
    """

    def format(self, record):
        data = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            data.update(context)

        if has_request_context():
            data.update({
                "method": request.method,
                "path": request.path,
                "remote_addr": request.headers.get("X-Forwarded-For", request.remote_addr),
                "request_id": request.headers.get("X-Request-ID"),
            })
        elif current_task and current_task.request.id:
            # inside a worker: tag lines with the indexing task
            data.update({"task_id": current_task.request.id, "task": current_task.name})

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)


def setup_logging(app=None):
    level = logging.INFO
    if app:
        level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    # avoid duplicated handlers on reload
    for h in list(root.handlers):
        root.removeHandler(h)

    h = logging.StreamHandler()
    h.setFormatter(JsonRequestFormatter())
    h.addFilter(SkipHealthcheck())
    root.addHandler(h)

    if app:
        app.logger.handlers = [h]
        app.logger.setLevel(level)
