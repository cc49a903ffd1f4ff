from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .common.api import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .attendance.controller import register as register_attendance
from .reports.controller import register as register_reports
from .reservations.controller import register as register_reservations
from .rooms.controller import register as register_rooms
from .sweeper.controller import register as register_sweeper
from .sweeper.jobs import build_scheduler
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).resolve().parents[3]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=_ROOT / "database" / "schema.sql")
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=_ROOT / "database" / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("Demo seed ready")

        container = build_container(db_config=db_config, settings=settings)

    app.extensions["room_reservation"] = container

    register_error_handlers(app)
    register_users(app, container)
    register_rooms(app, container)
    register_reservations(app, container)
    register_attendance(app, container)
    register_reports(app, container)
    register_sweeper(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    if bool(getattr(settings, "SWEEPER_ENABLED", False)):
        scheduler = build_scheduler(
            container,
            interval_minutes=int(getattr(settings, "SWEEPER_INTERVAL_MINUTES", 5)),
        )
        scheduler.start()
        atexit.register(scheduler.shutdown, wait=False)
        app.extensions["sweeper_scheduler"] = scheduler
        logger.info("Sweeper scheduler started")

    return app
