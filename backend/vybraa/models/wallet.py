from datetime import datetime

from vybraa.extensions import db


class Wallet(db.Model):
    __tablename__ = "wallets"

    id = db.Column(db.Integer, primary_key=True)
    # NULL only for the platform's super-admin wallet
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, unique=True, index=True)

    wallet_balance = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=False, default="USD")

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_freezed = db.Column(db.Boolean, nullable=False, default=False)
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "user_id": int(self.user_id) if self.user_id is not None else None,
            "wallet_balance": str(self.wallet_balance),
            "currency": self.currency,
            "is_active": bool(self.is_active),
            "is_freezed": bool(self.is_freezed),
            "is_super_admin": bool(self.is_super_admin),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class WalletEarningsHistory(db.Model):
    __tablename__ = "wallet_earnings_history"

    id = db.Column(db.Integer, primary_key=True)
    wallet_id = db.Column(db.Integer, db.ForeignKey("wallets.id"), nullable=False, index=True)
    # one release per request
    request_id = db.Column(db.Integer, db.ForeignKey("requests.id"), nullable=False, unique=True)

    amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    vybraa_fee = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=False, default="USD")
    status = db.Column(db.String(8), nullable=False, default="CREDIT")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "wallet_id": int(self.wallet_id),
            "request_id": int(self.request_id),
            "amount": str(self.amount),
            "vybraa_fee": str(self.vybraa_fee),
            "currency": self.currency,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
