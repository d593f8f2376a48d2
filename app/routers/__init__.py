# app/routers/__init__.py

from .stock.stock_router import router as stock_router
from .stock.history_router import router as history_router


__all__ = [
"stock_router",
"history_router",
]
