from __future__ import annotations

from ..extensions import db
from phone_pos.time_utils import to_utc_z


PHONE_STATUS_IN_STOCK = "in_stock"
PHONE_STATUS_SOLD = "sold"


class Phone(db.Model):
    """
    A physical handset held by the shop.

    While sold, the phone carries a copy of its active sale's price, receipt,
    customer and credit figures. Those mirror columns are owned by the
    lifecycle services and are never written by callers directly.
    """
    __tablename__ = "phones"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "imei1", name="uq_phones_owner_imei1"),
        db.Index("ix_phones_owner_status", "owner_id", "status"),
        db.Index("ix_phones_owner_model", "owner_id", "model_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)

    imei1 = db.Column(db.String(32), nullable=False)
    imei2 = db.Column(db.String(32), nullable=True, index=True)

    model_name = db.Column(db.String(120), nullable=True)
    storage = db.Column(db.String(32), nullable=True)
    color = db.Column(db.String(64), nullable=True)
    condition = db.Column(db.String(64), nullable=True)
    unlock_status = db.Column(db.String(64), nullable=True)
    battery_health = db.Column(db.String(16), nullable=True)
    vendor = db.Column(db.String(120), nullable=True)

    # Business dates are kept as entered (DD/MM/YYYY or ISO)
    purchase_date = db.Column(db.String(32), nullable=True)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=PHONE_STATUS_IN_STOCK)

    # Mirror of the active sale
    sale_date = db.Column(db.String(32), nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)
    receipt_number = db.Column(db.String(32), nullable=True)
    customer_name = db.Column(db.String(120), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    is_credit = db.Column(db.Boolean, nullable=False, default=False)
    credit_received_cents = db.Column(db.Integer, nullable=True)
    credit_remaining_cents = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "imei1": self.imei1,
            "imei2": self.imei2,
            "model_name": self.model_name,
            "storage": self.storage,
            "color": self.color,
            "condition": self.condition,
            "unlock_status": self.unlock_status,
            "battery_health": self.battery_health,
            "vendor": self.vendor,
            "purchase_date": self.purchase_date,
            "purchase_price_cents": self.purchase_price_cents,
            "status": self.status,
            "sale_date": self.sale_date,
            "sale_price_cents": self.sale_price_cents,
            "receipt_number": self.receipt_number,
            "customer_name": self.customer_name,
            "payment_method": self.payment_method,
            "is_credit": bool(self.is_credit),
            "credit_received_cents": self.credit_received_cents,
            "credit_remaining_cents": self.credit_remaining_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
