from flask import Flask, jsonify
from inventory_recon.config import Config
from inventory_recon.extensions import db, migrate, jwt


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # 1) db init (models must be imported so create_all / migrations see them)
    db.init_app(app)
    from inventory_recon.models import book, book_copy, borrowing  # noqa: F401

    # 2) other extensions
    migrate.init_app(app, db)
    jwt.init_app(app)

    # 3) reconciliation engine over the SQL record store
    from inventory_recon.services.inventory_service import InventoryEngine
    from inventory_recon.services.record_store import SqlRecordStore
    app.extensions["inventory_engine"] = InventoryEngine.from_config(SqlRecordStore(), app.config)

    # 4) API blueprints
    from inventory_recon.controllers.inventory_controller import inventory_bp
    app.register_blueprint(inventory_bp)

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    # Scheduler (periodic inventory check)
    from inventory_recon.tasks.scheduler import start_scheduler
    start_scheduler(app)

    return app
