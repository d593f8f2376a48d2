from pydantic import BaseModel, Field, StrictInt
from typing import Annotated, Dict, List
from datetime import datetime

from app.constants.quantity_limits import QUANTITY_MIN, QUANTITY_MAX

# JSON true/false and numeric strings are not quantities
Delta = Annotated[StrictInt, Field(ge=QUANTITY_MIN, le=QUANTITY_MAX)]


# -------------------------
# REQUESTS
# -------------------------
class StockUpdateSchema(BaseModel):
    sku: str = ""
    warehouse: str = ""
    quantity: Delta
    description: str = ""


class StockRemoveSchema(BaseModel):
    sku: str = ""
    warehouse: str = ""
    quantity: Annotated[StrictInt, Field(gt=0, le=QUANTITY_MAX)]
    description: str = ""


class StockLookupSchema(BaseModel):
    sku: str = ""
    warehouse: str = ""


class StockBatchSchema(BaseModel):
    key: str = ""
    data: Dict[str, Dict[str, Delta]]
    # false keeps per-entry commits (earlier entries survive a failure)
    atomic: bool = True


# -------------------------
# RESPONSES
# -------------------------
class StockUpdateResponse(BaseModel):
    success: bool = True
    message: str
    sku: str
    warehouse: str
    quantity: int


class StockBatchResponse(BaseModel):
    success: bool = True
    key: str
    data: Dict[str, Dict[str, int]]


class StockLevelResponse(BaseModel):
    success: bool = True
    message: str
    sku: str
    data: Dict[str, int]


class StockHistoryResponse(BaseModel):
    success: bool = True
    message: str
    sku: str
    data: Dict[str, int]


class StockHistoryEntrySchema(BaseModel):
    timestamp: datetime
    warehouse: str
    quantity: int
    description: str

    class Config:
        from_attributes = True


class StockHistoryEntriesResponse(BaseModel):
    success: bool = True
    message: str
    sku: str
    data: List[StockHistoryEntrySchema]


class StockMismatchSchema(BaseModel):
    sku: str
    warehouse: str
    quantity: int | None
    expected: int


class StockAuditResponse(BaseModel):
    success: bool = True
    message: str
    data: List[StockMismatchSchema]
