"""
=====================================================
VYBRAA BACKGROUND JOBS & SCHEDULER
=====================================================
"""

from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from vybraa.jobs.reconciliation import sweep_escrow_releases, sweep_stale_pending, sweep_unpaid_requests


def _in_context(app, fn):
    def run():
        with app.app_context():
            try:
                fn()
            except Exception:
                app.logger.exception("scheduled job %s crashed", fn.__name__)
    run.__name__ = fn.__name__
    return run


# =====================================================
# STARTER
# =====================================================

def start_scheduler(app) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(job_defaults={"max_instances": 1, "coalesce": True})

    scheduler.add_job(
        _in_context(app, sweep_stale_pending),
        "interval",
        hours=1,
        id="stale_pending",
    )

    scheduler.add_job(
        _in_context(app, sweep_unpaid_requests),
        "cron",
        hour=9,
        minute=0,
        id="unpaid_requests",
    )

    scheduler.add_job(
        _in_context(app, sweep_escrow_releases),
        "interval",
        minutes=1,
        id="escrow_releases",
    )

    scheduler.start()
    app.extensions["vybraa_scheduler"] = scheduler
    app.logger.info("reconciliation scheduler started (%d jobs)", len(scheduler.get_jobs()))
    return scheduler
