from datetime import datetime

from vybraa.extensions import db


class NotificationQueue(db.Model):
    """Outbound notifications waiting for the email dispatcher."""

    __tablename__ = "notification_queue"

    id = db.Column(db.Integer, primary_key=True)
    channel = db.Column(db.String(32), nullable=False, default="email")
    to = db.Column(db.String(160), nullable=False)
    template = db.Column(db.String(64), nullable=False)
    payload = db.Column(db.JSON, nullable=True)

    # queued -> sent / failed
    status = db.Column(db.String(32), nullable=False, default="queued")
    reference = db.Column(db.String(128), nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    sent_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            "id": int(self.id),
            "channel": self.channel,
            "to": self.to,
            "template": self.template,
            "payload": self.payload or {},
            "status": self.status,
            "reference": self.reference or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }
