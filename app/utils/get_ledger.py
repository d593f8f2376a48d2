from fastapi import Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from app.schemas.stock.stock_schemas import StockLookupSchema
from app.services.stock.stock_ledger_service import StockLedger


def get_ledger(request: Request) -> StockLedger:
    return request.app.state.ledger


async def get_stock_lookup(
    request: Request,
    sku: str | None = Query(None),
    warehouse: str | None = Query(None),
) -> StockLookupSchema:
    """Read filters from the query string, falling back to a JSON body.

    A query-string ``warehouse`` still applies when ``sku`` comes from the body.
    """
    if sku is not None:
        return StockLookupSchema(sku=sku, warehouse=warehouse or "")

    body = await request.body()
    if not body:
        return StockLookupSchema(warehouse=warehouse or "")

    try:
        lookup = StockLookupSchema.model_validate_json(body)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    if warehouse is not None:
        lookup = lookup.model_copy(update={"warehouse": warehouse})
    return lookup
