# inventory_recon/controllers/inventory_controller.py

from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required

from inventory_recon.services.errors import (
    BookNotFoundError,
    PlanStateError,
    RepairInProgressError,
    ScanReadError,
)
from inventory_recon.services.inventory_service import get_engine
from inventory_recon.services.repair_planner import SINGLE_BOOK
from inventory_recon.utils.decorators import admin_required

inventory_bp = Blueprint("inventory", __name__, url_prefix="/inventory")


def _json_error(err, code):
    return jsonify(err.to_dict()), code


def _log_progress(p):
    current_app.logger.debug(
        f"[inventory_api] {p.scope} {p.current}/{p.total} fixed={p.fixed} failed={p.failed} - {p.description}"
    )


@inventory_bp.get("/health")
@jwt_required()
@admin_required
def inventory_health():
    try:
        report = get_engine().scan()
    except ScanReadError as e:
        current_app.logger.exception(f"[inventory_api] scan failed: {e}")
        return _json_error(e, 503)
    except RepairInProgressError as e:
        return _json_error(e, 409)
    return jsonify({"success": True, "data": report.to_dict()})


@inventory_bp.get("/plan/<scope>")
@jwt_required()
@admin_required
def inventory_plan(scope: str):
    try:
        plan = get_engine().plan(scope)
    except PlanStateError as e:
        return _json_error(e, 400)
    except ScanReadError as e:
        return _json_error(e, 503)
    except RepairInProgressError as e:
        return _json_error(e, 409)
    return jsonify({"success": True, "data": {
        "scope": plan.scope,
        "summary": plan.summary(),
        "operations": [op.describe() for op in plan],
    }})


def _run(scope, book_id=None):
    try:
        result = get_engine().plan_and_execute(scope, on_progress=_log_progress, book_id=book_id)
    except BookNotFoundError as e:
        return _json_error(e, 404)
    except PlanStateError as e:
        return _json_error(e, 400)
    except ScanReadError as e:
        current_app.logger.exception(f"[inventory_api] repair {scope} aborted: {e}")
        return _json_error(e, 503)
    except RepairInProgressError as e:
        return _json_error(e, 409)

    current_app.logger.info(
        f"[inventory_api] repair {scope} fixed={result.fixed} failed={result.failed} cancelled={result.cancelled}"
    )
    return jsonify({"success": True, "data": result.to_dict()})


@inventory_bp.post("/repair/<scope>")
@jwt_required()
@admin_required
def inventory_repair(scope: str):
    if scope == SINGLE_BOOK:
        return jsonify({"success": False, "message": "use /inventory/repair/book/<id>", "code": "PLAN_STATE"}), 400
    return _run(scope)


@inventory_bp.post("/repair/book/<int:book_id>")
@jwt_required()
@admin_required
def inventory_repair_book(book_id: int):
    return _run(SINGLE_BOOK, book_id=book_id)


@inventory_bp.get("/repair/progress")
@jwt_required()
@admin_required
def inventory_progress():
    engine = get_engine()
    p = engine.last_progress
    return jsonify({"success": True, "data": {
        "state": engine.state,
        "progress": p.to_dict() if p else None,
    }})


@inventory_bp.post("/repair/cancel")
@jwt_required()
@admin_required
def inventory_cancel():
    cancelled = get_engine().cancel()
    return jsonify({"success": True, "cancelled": cancelled})
