from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, Index
from app.core.db import Base
from app.models.base.mixins import utcnow


class StockTransaction(Base):
    """Immutable ledger fact. Rows are inserted once and never updated."""

    __tablename__ = "transaction"

    id = Column(Integer, primary_key=True)
    sku = Column(String(100), nullable=False)
    warehouse = Column(String(100), nullable=False)
    quantity = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False, default="")
    # stamped client side so ordering survives sqlite's second-resolution CURRENT_TIMESTAMP
    inserted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_transaction_sku_warehouse", "sku", "warehouse"),
        Index("ix_transaction_inserted_at", "inserted_at"),
    )

    def __repr__(self):
        return f"<StockTransaction id={self.id} sku={self.sku} warehouse={self.warehouse} qty={self.quantity:+d}>"
