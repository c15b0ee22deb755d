from __future__ import annotations

from ..extensions import db
from phone_pos.time_utils import to_utc_z


RETURN_TYPE_REFUND = "refund"
RETURN_TYPE_TRADE_IN = "trade_in"
RETURN_TYPE_EXCHANGE = "exchange"
RETURN_TYPES = (RETURN_TYPE_REFUND, RETURN_TYPE_TRADE_IN, RETURN_TYPE_EXCHANGE)


class Sale(db.Model):
    """
    One sale event for one phone. Immutable once written, apart from the
    credit figures that follow payments on the linked Credit.

    profit_cents is frozen at sale time (sale price minus the phone's cost
    basis then); later cost-basis changes never rewrite it.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_owner_phone", "owner_id", "phone_id"),
        db.Index("ix_sales_receipt_number", "receipt_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    phone_id = db.Column(db.Integer, db.ForeignKey("phones.id"), nullable=False)

    sale_price_cents = db.Column(db.Integer, nullable=False)
    sale_date = db.Column(db.String(32), nullable=False)
    customer_name = db.Column(db.String(120), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    profit_cents = db.Column(db.Integer, nullable=False)
    receipt_number = db.Column(db.String(32), nullable=False)

    is_credit = db.Column(db.Boolean, nullable=False, default=False)
    credit_received_cents = db.Column(db.Integer, nullable=True)
    credit_remaining_cents = db.Column(db.Integer, nullable=True)

    # Resale of a previously returned unit
    is_resale = db.Column(db.Boolean, nullable=False, default=False)
    original_return_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "phone_id": self.phone_id,
            "sale_price_cents": self.sale_price_cents,
            "sale_date": self.sale_date,
            "customer_name": self.customer_name,
            "payment_method": self.payment_method,
            "profit_cents": self.profit_cents,
            "receipt_number": self.receipt_number,
            "is_credit": bool(self.is_credit),
            "credit_received_cents": self.credit_received_cents,
            "credit_remaining_cents": self.credit_remaining_cents,
            "is_resale": bool(self.is_resale),
            "original_return_id": self.original_return_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Return(db.Model):
    """Reversal of a sale: refund, trade-in or exchange."""
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_owner_phone", "owner_id", "phone_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    phone_id = db.Column(db.Integer, db.ForeignKey("phones.id"), nullable=False)

    return_type = db.Column(db.String(16), nullable=False, default=RETURN_TYPE_REFUND)
    # Paid back to the customer
    return_price_cents = db.Column(db.Integer, nullable=False, default=0)
    # Cost basis for the next sale of this unit
    new_price_cents = db.Column(db.Integer, nullable=False, default=0)
    return_reason = db.Column(db.String(255), nullable=True)
    return_date = db.Column(db.String(32), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "sale_id": self.sale_id,
            "phone_id": self.phone_id,
            "return_type": self.return_type,
            "return_price_cents": self.return_price_cents,
            "new_price_cents": self.new_price_cents,
            "return_reason": self.return_reason,
            "return_date": self.return_date,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
