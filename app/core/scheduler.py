import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.db import AsyncSessionLocal

from app.services.stock.stock_ledger_service import StockLedger

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def reconcile_stock(ledger: StockLedger) -> int:
    mismatches = await ledger.find_mismatches()

    for m in mismatches:
        logger.warning(
            "Stock mismatch for %s on %s: stock=%s, transactions=%s",
            m.sku,
            m.warehouse,
            m.quantity,
            m.expected,
        )

    logger.info("Stock reconciliation finished, %d mismatches", len(mismatches))
    return len(mismatches)


@scheduler.scheduled_job("cron", hour=0, minute=15)  # daily @ 00:15
async def reconcile_stock_job():
    await reconcile_stock(StockLedger(AsyncSessionLocal))
