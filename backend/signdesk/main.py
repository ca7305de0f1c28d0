import logging

from flask import Flask, request

from signdesk import __version__
from signdesk.api.error_handlers import register_error_handlers
from signdesk.api.routes import documents, files, health, sessions
from signdesk.config import settings
from signdesk.database import init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(create_tables: bool = True) -> Flask:
    app = Flask(__name__)

    app.register_blueprint(health.bp)
    app.register_blueprint(documents.bp)
    app.register_blueprint(sessions.bp)
    app.register_blueprint(files.bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin == settings.frontend_url:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "Content-Disposition, X-Stamp-Warnings"
        return response

    if create_tables:
        try:
            init_db()
        except Exception as e:
            logger.error(f"Error during startup: {e}")
            raise

    logger.info(f"SignDesk API {__version__} started ({settings.storage_backend} storage)")
    return app


app = create_app()
