from __future__ import annotations

from ..extensions import db
from phone_pos.time_utils import to_utc_z


CREDIT_STATUS_PENDING = "pending"
CREDIT_STATUS_PAID = "paid"
CREDIT_STATUS_CANCELLED = "cancelled"


class Credit(db.Model):
    """
    Receivable for a sale paid in instalments.

    remaining_amount_cents == total_amount_cents - received_amount_cents
    until the phone is returned, at which point the credit is cancelled and
    the remaining figure is zeroed.
    """
    __tablename__ = "credits"
    __table_args__ = (
        db.Index("ix_credits_owner_status", "owner_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    phone_id = db.Column(db.Integer, db.ForeignKey("phones.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(120), nullable=True)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    received_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_date = db.Column(db.String(32), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=CREDIT_STATUS_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "phone_id": self.phone_id,
            "sale_id": self.sale_id,
            "customer_name": self.customer_name,
            "total_amount_cents": self.total_amount_cents,
            "received_amount_cents": self.received_amount_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "sale_date": self.sale_date,
            "payment_method": self.payment_method,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CreditPayment(db.Model):
    """Append-only instalment received against a Credit."""
    __tablename__ = "credit_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    credit_id = db.Column(db.Integer, db.ForeignKey("credits.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.String(32), nullable=False)
    payment_method = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "credit_id": self.credit_id,
            "amount_cents": self.amount_cents,
            "payment_date": self.payment_date,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
