from sqlalchemy import Column, Integer, BigInteger, String, UniqueConstraint, CheckConstraint
from app.core.db import Base
from app.constants.quantity_limits import QUANTITY_MIN, QUANTITY_MAX
from app.models.base.mixins import TimestampMixin


class StockLevel(Base, TimestampMixin):
    __tablename__ = "stock"

    id = Column(Integer, primary_key=True)
    sku = Column(String(100), nullable=False, index=True)
    warehouse = Column(String(100), nullable=False)
    quantity = Column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        # upsert target
        UniqueConstraint("sku", "warehouse", name="uq_stock_sku_warehouse"),
        # sqlite turns an overflowing integer sum into a REAL instead of failing
        CheckConstraint(
            f"quantity BETWEEN {QUANTITY_MIN} AND {QUANTITY_MAX}",
            name="ck_stock_quantity_int64",
        ),
    )

    def __repr__(self):
        return f"<StockLevel sku={self.sku} warehouse={self.warehouse} qty={self.quantity}>"
