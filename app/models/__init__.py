# Stock ledger
from app.models.stock.stock_transaction_models import StockTransaction
from app.models.stock.stock_level_models import StockLevel
