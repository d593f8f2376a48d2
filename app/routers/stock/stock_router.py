from fastapi import APIRouter, Depends

from app.utils.get_ledger import get_ledger, get_stock_lookup
from app.utils.response import success_response

from app.services.stock.stock_ledger_service import BatchEntry, StockLedger

from app.schemas.stock.stock_schemas import (
    StockUpdateSchema,
    StockRemoveSchema,
    StockLookupSchema,
    StockBatchSchema,
    StockUpdateResponse,
    StockBatchResponse,
    StockLevelResponse,
    StockAuditResponse,
)

router = APIRouter(prefix="/stock", tags=["Stock"])


# =========================
# ADD / UPDATE STOCK
# =========================
@router.post("", response_model=StockUpdateResponse)
async def update_stock_api(
    payload: StockUpdateSchema,
    ledger: StockLedger = Depends(get_ledger),
):
    quantity = await ledger.apply_delta(
        sku=payload.sku,
        warehouse=payload.warehouse,
        delta=payload.quantity,
        description=payload.description,
    )

    return success_response(
        f"Stock updated ({payload.quantity:+d}) for {payload.sku} "
        f"on {payload.warehouse}. New stock = {quantity}",
        sku=payload.sku,
        warehouse=payload.warehouse,
        quantity=quantity,
    )


# =========================
# REMOVE STOCK
# =========================
@router.delete("", response_model=StockUpdateResponse)
async def remove_stock_api(
    payload: StockRemoveSchema,
    ledger: StockLedger = Depends(get_ledger),
):
    quantity = await ledger.apply_delta(
        sku=payload.sku,
        warehouse=payload.warehouse,
        delta=-payload.quantity,
        description=payload.description,
    )

    return success_response(
        f"Stock removed ({payload.quantity}) from {payload.sku} "
        f"on {payload.warehouse}. New stock = {quantity}",
        sku=payload.sku,
        warehouse=payload.warehouse,
        quantity=quantity,
    )


# =========================
# BATCH UPDATE
# =========================
@router.post("/batch", response_model=StockBatchResponse)
async def batch_update_stock_api(
    payload: StockBatchSchema,
    ledger: StockLedger = Depends(get_ledger),
):
    entries = [
        BatchEntry(sku, warehouse, delta, payload.key)
        for sku, warehouses in payload.data.items()
        for warehouse, delta in warehouses.items()
    ]

    data = await ledger.batch_apply_delta(entries, atomic=payload.atomic)

    return {
        "success": True,
        "key": payload.key,
        "data": data,
    }


# =========================
# CURRENT STOCK
# =========================
@router.get("", response_model=StockLevelResponse)
async def get_stock_api(
    lookup: StockLookupSchema = Depends(get_stock_lookup),
    ledger: StockLedger = Depends(get_ledger),
):
    data = await ledger.query_stock(sku=lookup.sku, warehouse=lookup.warehouse)

    return success_response(
        f"Stock of {lookup.sku} in {len(data)} warehouse(s)",
        sku=lookup.sku,
        data=data,
    )


# =========================
# RECONCILIATION AUDIT
# =========================
@router.get("/audit", response_model=StockAuditResponse)
async def audit_stock_api(
    ledger: StockLedger = Depends(get_ledger),
):
    mismatches = await ledger.find_mismatches()

    return success_response(
        "Stock matches transactions" if not mismatches
        else f"{len(mismatches)} stock level(s) disagree with transactions",
        data=[m._asdict() for m in mismatches],
    )
