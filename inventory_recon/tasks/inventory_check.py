# inventory_recon/tasks/inventory_check.py
from flask import current_app

from inventory_recon.services.errors import InventoryError
from inventory_recon.services.inventory_service import get_engine


def run_inventory_check_job(app):
    """
    Periodic inventory health check.
    - Scans books / copies / active borrowings and logs the health score.
    - If INVENTORY_AUTO_REPAIR_SCOPE is set and problems were found, runs that
      repair scope and logs the fixed / failed tally.
    Returns the repair result, or None when only a scan was done.
    """
    with app.app_context():
        engine = get_engine()
        try:
            report = engine.scan()
        except InventoryError as e:
            current_app.logger.error(f"[inventory_check] scan failed: {e}")
            return None

        current_app.logger.info(
            f"[inventory_check] books={report.total_books} flagged={report.flagged_books} "
            f"health_score={report.health_score} issues={report.counters}"
        )

        scope = (app.config.get("INVENTORY_AUTO_REPAIR_SCOPE") or "").strip()
        if not scope or report.flagged_books == 0:
            return None

        try:
            result = engine.plan_and_execute(scope)
        except InventoryError as e:
            current_app.logger.error(f"[inventory_check] auto repair {scope} failed: {e}")
            return None

        score = result.report.health_score if result.report is not None else None
        current_app.logger.info(
            f"[inventory_check] auto repair {scope} fixed={result.fixed} failed={result.failed} "
            f"health_score={score}"
        )
        return result
