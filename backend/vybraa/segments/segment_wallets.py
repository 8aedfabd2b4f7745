from __future__ import annotations

from flask import Blueprint, jsonify, request

from vybraa.models import Wallet, WalletEarningsHistory
from vybraa.utils.admin import admin_token_ok

wallets_bp = Blueprint("wallets_bp", __name__, url_prefix="/api/wallets")


@wallets_bp.get("/<int:user_id>/earnings")
def wallet_earnings(user_id: int):
    if not admin_token_ok():
        return jsonify({"status": "error", "message": "Admin required"}), 403

    w = Wallet.query.filter_by(user_id=int(user_id)).first()
    if not w:
        return jsonify({"status": "error", "message": "Wallet not found"}), 404

    try:
        limit = max(1, min(int(request.args.get("limit") or 50), 200))
    except ValueError:
        limit = 50
    rows = (
        WalletEarningsHistory.query.filter_by(wallet_id=int(w.id))
        .order_by(WalletEarningsHistory.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"status": "success", "wallet": w.to_dict(), "earnings": [r.to_dict() for r in rows]}), 200
