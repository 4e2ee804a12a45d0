from flask import Flask
from flasgger import Swagger
from prometheus_flask_exporter import PrometheusMetrics
from flask_cors import CORS
import os

from .logging_setup import setup_logging
from .routes import health, indexer_routes, query_routes
from .config import DevelopmentConfig, ProductionConfig, TestingConfig

__version__ = "0.1.0"


def create_app(config_name: str = "development", clients=None):
    """
    App factory.

    ``clients`` is an optional ``ClientRegistry``; when omitted one is built from
    the configured RPC URLs. It is created once here and handed to components
    through ``app.extensions["chain_clients"]``.
    """
    app = Flask(__name__)

    config_map = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
    }
    app.config.from_object(config_map.get(config_name.lower(), DevelopmentConfig))

    setup_logging(app)

    # CORS_ORIGINS unset or '*' -> any origin
    # CORS_ORIGINS="https://app.example.com,https://admin.example.com" -> only those
    cors_origin = os.getenv("CORS_ORIGINS", "*").strip()
    cors_common_kwargs = dict(
        supports_credentials=False,
        methods=["GET", "POST", "OPTIONS", "HEAD"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "X-Requested-With",
            "X-Request-ID",
            "Accept",
            "Origin",
            "Cache-Control",
        ],
    )
    if cors_origin == "*" or cors_origin == "":
        CORS(app, resources={r"/*": {"origins": "*"}}, **cors_common_kwargs)
    else:
        origins_list = [o.strip() for o in cors_origin.split(",") if o.strip()]
        CORS(app, resources={r"/*": {"origins": origins_list}}, **cors_common_kwargs)

    # models need the app config in place
    from .models import init_app as init_models
    init_models(app)

    from .services.networks import ClientRegistry
    app.extensions["chain_clients"] = clients if clients is not None else ClientRegistry.from_config(app.config)

    # Swagger
    swagger_template = {
        "swagger": "2.0",
        "info": {
            "title": "Contract Event Indexer API",
            "description": "Index smart-contract event logs and query them back.",
            "version": __version__,
        },
        "basePath": "/",
        "schemes": ["https", "http"],
    }
    swagger_config = {
        "headers": [],
        "specs": [
            {
                "endpoint": "apispec_1",
                "route": "/apispec_1.json",
                "rule_filter": lambda rule: True,
                "model_filter": lambda tag: True,
            }
        ],
        "static_url_path": "/flasgger_static",
        "swagger_ui": True,
        "specs_route": "/apidocs/",
    }
    Swagger(app, template=swagger_template, config=swagger_config)

    # Blueprints
    app.register_blueprint(health.bp)
    app.register_blueprint(indexer_routes.bp, url_prefix="/api/indexer")
    app.register_blueprint(query_routes.bp, url_prefix="/api")

    # Metrics
    metrics = PrometheusMetrics(app, path="/metrics")
    metrics.info("app_info", "Contract event indexer", version=__version__)

    return app
