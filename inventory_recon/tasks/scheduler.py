# inventory_recon/tasks/scheduler.py
from __future__ import annotations

import atexit
import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from inventory_recon.tasks.inventory_check import run_inventory_check_job


def start_scheduler(app):
    """
    Starts the periodic inventory health check.
    - Job runs inside the app context (DB access needs it).
    - Skipped in the debug reloader's secondary process.
    - Scheduler is shut down at interpreter exit.
    """
    if not app.config.get("INVENTORY_SCHEDULER_ENABLED", True):
        app.logger.info("[scheduler] Disabled by config.")
        return None

    # Werkzeug reloader runs two processes; WERKZEUG_RUN_MAIN=true marks the real one
    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        app.logger.info("[scheduler] Debug reloader secondary process: scheduler skipped.")
        return None

    minutes = int(app.config.get("INVENTORY_SCAN_INTERVAL_MINUTES", 60))
    scheduler = BackgroundScheduler(timezone="UTC")

    def _job_wrapper():
        try:
            run_inventory_check_job(app)
        except Exception as ex:
            app.logger.exception(f"[scheduler] inventory_check_job error: {ex}")

    scheduler.add_job(
        func=_job_wrapper,
        trigger=IntervalTrigger(minutes=minutes),
        id="inventory_check_job",
        replace_existing=True,
        max_instances=1,        # never overlap two repair runs
        coalesce=True,
        misfire_grace_time=120
    )

    scheduler.start()
    app.logger.info(f"[scheduler] Inventory check job started (every {minutes} minutes).")

    app.extensions["apscheduler"] = scheduler

    def _shutdown_scheduler():
        if getattr(scheduler, "running", False):
            scheduler.shutdown(wait=False)
            app.logger.info("[scheduler] Scheduler shutdown.")

    atexit.register(_shutdown_scheduler)

    return scheduler
