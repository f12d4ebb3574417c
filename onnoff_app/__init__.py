# onnoff_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import os

from flask import Flask, jsonify
from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .errors import StorageError
from .extensions import db, init_extensions, register_cli  # noqa: F401
from .services.storage import init_storage
from .services.object_store import init_object_store
from .blueprints.files import bp as files_bp
from .blueprints.upload import bp as upload_bp
from .blueprints.storage import bp as storage_bp
from .blueprints.admin import bp as admin_bp

_CONFIGS = {
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}

def create_app(config_object: type[Config] | None = None, overrides: dict | None = None) -> Flask:

    app = Flask(__name__)
    app_env = os.getenv("APP_ENV", "").lower()
    app.config.from_object(config_object or _CONFIGS.get(app_env, Config))
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensões (DB/Migrate)
    init_extensions(app)

    # Serviços — ficam disponíveis em app.extensions
    init_storage(app)        # app.extensions["storage"]
    init_object_store(app)   # app.extensions["object_store"]

    # Blueprints
    app.register_blueprint(files_bp)
    app.register_blueprint(upload_bp)
    app.register_blueprint(storage_bp)
    app.register_blueprint(admin_bp)
    # CLI (ex.: flask init-db, flask storage-migrate)
    register_cli(app)

    @app.errorhandler(StorageError)
    def handle_storage_error(e: StorageError):
        if e.status_code >= 500:
            app.logger.error("Storage error: %s", e, exc_info=e)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(413)
    def handle_too_large(e):
        return jsonify({"message": "Request payload too large"}), 413

    return app
