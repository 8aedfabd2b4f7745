from datetime import datetime

from vybraa.extensions import db


class TransactionStatus:
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class TransactionType:
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class EscrowType:
    REQUEST_PAYMENT = "REQUEST_PAYMENT"


class EscrowStatus:
    PENDING = "PENDING"
    RELEASED = "RELEASED"
    REFUNDED = "REFUNDED"

    # allowed forward moves; nothing leaves RELEASED or REFUNDED
    TRANSITIONS = {
        None: {"PENDING"},
        "PENDING": {"RELEASED", "REFUNDED"},
        "RELEASED": set(),
        "REFUNDED": set(),
    }

    @classmethod
    def can_move(cls, current, target) -> bool:
        if current == target:
            return True
        return target in cls.TRANSITIONS.get(current, set())


class Transaction(db.Model):
    """One row per payment attempt, keyed by the provider reference."""

    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    request_id = db.Column(db.Integer, db.ForeignKey("requests.id"), nullable=True, index=True)

    amount = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=False, default="NGN")
    payment_method = db.Column(db.String(32), nullable=True)
    provider = db.Column(db.String(32), nullable=False, default="paystack")
    reference = db.Column(db.String(128), nullable=False, unique=True, index=True)

    type = db.Column(db.String(8), nullable=False, default=TransactionType.CREDIT)
    status = db.Column(db.String(16), nullable=False, default=TransactionStatus.PENDING, index=True)

    is_in_escrow = db.Column(db.Boolean, nullable=False, default=False)
    escrow_type = db.Column(db.String(32), nullable=True)
    escrow_status = db.Column(db.String(16), nullable=True, index=True)
    release_date = db.Column(db.DateTime, nullable=True)

    description = db.Column(db.String(240), nullable=True)
    # "metadata" is reserved on declarative models
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "user_id": int(self.user_id),
            "request_id": int(self.request_id) if self.request_id is not None else None,
            "amount": str(self.amount),
            "currency": self.currency,
            "payment_method": self.payment_method or "",
            "provider": self.provider,
            "reference": self.reference,
            "type": self.type,
            "status": self.status,
            "is_in_escrow": bool(self.is_in_escrow),
            "escrow_type": self.escrow_type,
            "escrow_status": self.escrow_status,
            "release_date": self.release_date.isoformat() if self.release_date else None,
            "metadata": self.meta or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
