# event_indexer/models/__init__.py
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def init_app(app):
    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    db.init_app(app)
    migrate.init_app(app, db)


# register models on the metadata
from .contract import Contract  # noqa
from .event import Event  # noqa
from .checkpoint import IndexingCheckpoint  # noqa
from .job import IndexingJob  # noqa

__all__ = ["db", "migrate", "Contract", "Event", "IndexingCheckpoint", "IndexingJob"]
