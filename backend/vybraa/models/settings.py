from datetime import datetime

from vybraa.extensions import db


class CalculationType:
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class FeeConfig(db.Model):
    """Platform settings keyed by slug, e.g. ``request_fee_charge``."""

    __tablename__ = "vybraa_config_settings"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, default="")
    description = db.Column(db.String(240), nullable=True)
    slug = db.Column(db.String(64), nullable=False, unique=True, index=True)
    calculation_type = db.Column(db.String(16), nullable=False, default=CalculationType.PERCENTAGE)
    value = db.Column(db.Numeric(18, 4), nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "name": self.name,
            "slug": self.slug,
            "calculation_type": self.calculation_type,
            "value": str(self.value),
        }


class ExchangeRate(db.Model):
    """1 unit of ``from_currency`` is worth ``rate`` units of ``to_currency``."""

    __tablename__ = "exchange_rates"
    __table_args__ = (db.UniqueConstraint("from_currency", "to_currency", name="uq_exchange_rates_pair"),)

    id = db.Column(db.Integer, primary_key=True)
    from_currency = db.Column(db.String(8), nullable=False)
    to_currency = db.Column(db.String(8), nullable=False)
    rate = db.Column(db.Numeric(18, 6), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": int(self.id),
            "from_currency": self.from_currency,
            "to_currency": self.to_currency,
            "rate": str(self.rate),
            "is_active": bool(self.is_active),
        }
