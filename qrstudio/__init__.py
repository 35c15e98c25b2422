# qrstudio/__init__.py

from flask import Flask
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.middleware.proxy_fix import ProxyFix

from qrstudio.extensions import db, cors, init_redis
from qrstudio.utils.error_handler import register_error_handlers

# Lifecycle columns that older databases may predate
REQUIRED_COLUMNS = {
    "users": {"deleted_at": "TIMESTAMP NULL"},
    "qr_codes": {"deleted_at": "TIMESTAMP NULL", "is_dynamic": "BOOLEAN NOT NULL DEFAULT FALSE"},
    "dynamic_qr_codes": {"deleted_at": "TIMESTAMP NULL"},
}


def _ensure_schema(app: Flask):
    insp = inspect(db.engine)
    for table, columns in REQUIRED_COLUMNS.items():
        existing = {c["name"] for c in insp.get_columns(table)}
        for name, ddl in columns.items():
            if name in existing:
                continue
            try:
                with db.engine.begin() as conn:
                    conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {ddl}"))
                app.logger.info(f"Added missing column {table}.{name}")
            except SQLAlchemyError as e:
                app.logger.warning(f"Could not ensure {table}.{name} column exists: {e}")


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)

    # Load configuration
    if config_object is None:
        from qrstudio.config import Config
        config_object = Config
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    cors.init_app(app)
    db.init_app(app)
    init_redis(app)

    # Fix proxy headers
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    register_error_handlers(app)

    from qrstudio.routes.core_routes import core_bp
    from qrstudio.routes.auth_routes import auth_bp
    from qrstudio.routes.qr_routes import qr_bp
    from qrstudio.routes.dynamic_routes import dynamic_bp, scan_bp
    from qrstudio.routes.branding_routes import branding_bp
    from qrstudio.routes.webhook_routes import webhook_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(scan_bp)
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(qr_bp, url_prefix="/api")
    app.register_blueprint(dynamic_bp, url_prefix="/api")
    app.register_blueprint(branding_bp, url_prefix="/api")
    app.register_blueprint(webhook_bp, url_prefix="/api")

    # Create tables if not exists
    with app.app_context():
        import qrstudio.models  # noqa: F401
        db.create_all()
        _ensure_schema(app)

    return app
