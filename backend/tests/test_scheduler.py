from vybraa.jobs.scheduler import start_scheduler
from vybraa.models import Request


def test_scheduler_registers_three_sweeps(app):
    scheduler = start_scheduler(app)
    try:
        jobs = {j.id: j for j in scheduler.get_jobs()}
        assert set(jobs) == {"stale_pending", "unpaid_requests", "escrow_releases"}
        assert all(j.max_instances == 1 and j.coalesce for j in jobs.values())
        assert app.extensions["vybraa_scheduler"] is scheduler
    finally:
        scheduler.shutdown(wait=False)


def test_scheduled_job_runs_inside_app_context(app, make_request):
    make_request(reference="OLD", age_hours=72)
    scheduler = start_scheduler(app)
    try:
        job = scheduler.get_job("unpaid_requests")
        # call the wrapped function directly instead of waiting for 09:00
        job.func()
    finally:
        scheduler.shutdown(wait=False)

    assert Request.query.filter_by(payment_reference="OLD").one().deleted_at is not None
