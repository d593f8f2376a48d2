from fastapi import APIRouter, Depends

from app.utils.get_ledger import get_ledger, get_stock_lookup
from app.utils.response import success_response

from app.services.stock.stock_ledger_service import StockLedger

from app.schemas.stock.stock_schemas import (
    StockLookupSchema,
    StockHistoryResponse,
    StockHistoryEntriesResponse,
)

router = APIRouter(prefix="/history", tags=["Stock History"])


@router.get("", response_model=StockHistoryResponse)
async def get_history_api(
    lookup: StockLookupSchema = Depends(get_stock_lookup),
    ledger: StockLedger = Depends(get_ledger),
):
    data = await ledger.query_history(sku=lookup.sku, warehouse=lookup.warehouse)

    return success_response(
        f"{len(data)} transaction(s) for {lookup.sku}",
        sku=lookup.sku,
        data=data,
    )


@router.get("/entries", response_model=StockHistoryEntriesResponse)
async def get_history_entries_api(
    lookup: StockLookupSchema = Depends(get_stock_lookup),
    ledger: StockLedger = Depends(get_ledger),
):
    data = await ledger.history_entries(sku=lookup.sku, warehouse=lookup.warehouse)

    return success_response(
        f"{len(data)} transaction(s) for {lookup.sku}",
        sku=lookup.sku,
        data=data,
    )
