from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from vybraa.jobs.reconciliation import sweep_escrow_releases, sweep_stale_pending, sweep_unpaid_requests
from vybraa.utils.admin import admin_token_ok

recon_bp = Blueprint("recon_bp", __name__, url_prefix="/api/admin/reconcile")


def _limit(data: dict) -> int:
    try:
        return max(1, int(data.get("limit") or 500))
    except (TypeError, ValueError):
        return 500


@recon_bp.post("/<job>")
def run_recon(job: str):
    if not admin_token_ok():
        return jsonify({"status": "error", "message": "Admin required"}), 403

    data = request.get_json(silent=True) or {}
    if job == "stale-pending":
        res = sweep_stale_pending(limit=_limit(data))
    elif job == "unpaid-requests":
        res = sweep_unpaid_requests()
    elif job == "escrow-releases":
        res = sweep_escrow_releases(limit=_limit(data))
    else:
        return jsonify({"status": "error", "message": f"Unknown job {job}"}), 404

    current_app.logger.info("manual reconcile %s: %s", job, res)
    return jsonify(res), 200
