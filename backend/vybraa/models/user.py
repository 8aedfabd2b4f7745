from datetime import datetime

from vybraa.extensions import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(160), nullable=False, unique=True, index=True)
    first_name = db.Column(db.String(80), nullable=True)
    role = db.Column(db.String(32), nullable=False, default="fan")  # fan/celebrity/admin

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "email": self.email,
            "first_name": self.first_name or "",
            "role": self.role,
        }


class CelebrityProfile(db.Model):
    __tablename__ = "celebrity_profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(120), nullable=False, default="")

    user = db.relationship("User", lazy="joined")

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "user_id": int(self.user_id),
            "display_name": self.display_name,
        }
