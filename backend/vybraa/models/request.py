from datetime import datetime

from vybraa.extensions import db


class RequestStatus:
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"


class Request(db.Model):
    """A fan's paid video request. Created by the request flow; the escrow core only
    flips ``is_request_paid``, declines on payment timeout and soft-deletes."""

    __tablename__ = "requests"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    celebrity_profile_id = db.Column(db.Integer, db.ForeignKey("celebrity_profiles.id"), nullable=False, index=True)

    price = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    currency = db.Column(db.String(8), nullable=False, default="USD")

    occasion = db.Column(db.String(120), nullable=True)
    instructions = db.Column(db.Text, nullable=True)

    # PENDING -> IN_PROGRESS -> COMPLETED, or DECLINED
    status = db.Column(db.String(16), nullable=False, default=RequestStatus.PENDING, index=True)
    is_request_paid = db.Column(db.Boolean, nullable=False, default=False)
    payment_reference = db.Column(db.String(128), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": int(self.id),
            "user_id": int(self.user_id),
            "celebrity_profile_id": int(self.celebrity_profile_id),
            "price": str(self.price),
            "currency": self.currency,
            "status": self.status,
            "is_request_paid": bool(self.is_request_paid),
            "payment_reference": self.payment_reference or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }
