import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, NamedTuple

from sqlalchemy import select, func, or_, union_all, literal_column
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.quantity_limits import QUANTITY_MIN, QUANTITY_MAX
from app.core.config import LEDGER_TIMEOUT_SECONDS
from app.core.exceptions import InvalidInput, StorageFailure
from app.models.stock.stock_level_models import StockLevel
from app.models.stock.stock_transaction_models import StockTransaction

logger = logging.getLogger(__name__)


UPSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class BatchEntry(NamedTuple):
    sku: str
    warehouse: str
    delta: int
    label: str = ""


class StockMismatch(NamedTuple):
    sku: str
    warehouse: str
    quantity: int | None
    expected: int


# =====================================================
# VALIDATION
# =====================================================
def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def _require_sku(sku: str):
    if _blank(sku):
        raise InvalidInput("sku is required", details={"missing": ["sku"]})


def _require_key(sku: str, warehouse: str):
    missing = [
        name
        for name, value in (("sku", sku), ("warehouse", warehouse))
        if _blank(value)
    ]
    if missing:
        raise InvalidInput(
            f"{' and '.join(missing)} required for a stock update",
            details={"missing": missing},
        )


def _require_delta(delta):
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidInput(
            "quantity must be an integer",
            details={"quantity": repr(delta)},
        )
    if not QUANTITY_MIN <= delta <= QUANTITY_MAX:
        raise InvalidInput(
            "quantity is outside the 64-bit range",
            details={"quantity": delta, "min": QUANTITY_MIN, "max": QUANTITY_MAX},
        )


def _as_utc(stamp: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if stamp.tzinfo is None:
        return stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc)


def _by_key(stmt, model, sku: str, warehouse: str):
    stmt = stmt.where(model.sku == sku)
    if warehouse:
        stmt = stmt.where(model.warehouse == warehouse)
    return stmt


# =====================================================
# LEDGER
# =====================================================
class StockLedger:
    """Transaction history plus the derived stock level per (sku, warehouse).

    The stock row always equals the sum of the transaction deltas for its
    key. Every write goes through ``_apply`` which inserts the transaction,
    upserts the stock row and reads it back inside the caller's database
    transaction.

    ``session_factory`` is any callable returning an ``AsyncSession``
    context manager (normally ``app.core.db.AsyncSessionLocal``). Each
    operation opens its own session, so a ledger instance is safe to share
    between concurrent requests.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        *,
        timeout: float | None = LEDGER_TIMEOUT_SECONDS,
    ):
        self._session_factory = session_factory
        self._timeout = timeout or None

    async def _run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[Any]],
        *,
        transactional: bool = False,
    ):
        """Run ``work`` in a fresh session.

        The timeout covers the statements and, when ``transactional``, the
        COMMIT. Returning the connection to the pool on session close is
        not bounded. A timeout that fires while COMMIT is in flight leaves
        the outcome unknown to the caller.
        """
        async def unit(db: AsyncSession):
            if not transactional:
                return await work(db)
            async with db.begin():
                return await work(db)

        try:
            async with self._session_factory() as db:
                return await asyncio.wait_for(unit(db), timeout=self._timeout)

        # before OSError: asyncio.TimeoutError is an OSError on 3.11+
        except asyncio.TimeoutError as exc:
            logger.error("%s timed out after %ss", operation, self._timeout)
            raise StorageFailure(
                f"{operation} timed out",
                details={"timeout_seconds": self._timeout},
            ) from exc

        # driver errors such as ConnectionRefusedError are not wrapped by SQLAlchemy
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("%s failed", operation)
            raise StorageFailure(f"{operation} could not be completed") from exc

    async def _apply(
        self,
        db: AsyncSession,
        sku: str,
        warehouse: str,
        delta: int,
        description: str,
    ) -> int:
        # ------------------------------------
        # 1. Lock current stock, check range
        # ------------------------------------
        current = await db.scalar(
            select(StockLevel.quantity)
            .where(
                StockLevel.sku == sku,
                StockLevel.warehouse == warehouse,
            )
            .with_for_update()
        )
        if not QUANTITY_MIN <= (current or 0) + delta <= QUANTITY_MAX:
            raise InvalidInput(
                "quantity would leave the 64-bit stock range",
                details={"sku": sku, "warehouse": warehouse, "quantity": current, "delta": delta},
            )

        # ------------------------------------
        # 2. Append transaction (ledger)
        # ------------------------------------
        db.add(
            StockTransaction(
                sku=sku,
                warehouse=warehouse,
                quantity=delta,
                description=description,
            )
        )
        await db.flush()

        # ------------------------------------
        # 3. Upsert stock (derived)
        # ------------------------------------
        # ON CONFLICT DO UPDATE locks the existing row, so concurrent
        # writers on the same key queue here and add onto the committed value.
        insert = UPSERT_BY_DIALECT[db.bind.dialect.name]
        stmt = insert(StockLevel).values(
            sku=sku,
            warehouse=warehouse,
            quantity=delta,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[StockLevel.sku, StockLevel.warehouse],
            set_={
                "quantity": StockLevel.quantity + stmt.excluded.quantity,
                "updated_at": func.now(),
            },
        )
        await db.execute(stmt)

        # ------------------------------------
        # 4. Read back
        # ------------------------------------
        return await db.scalar(
            select(StockLevel.quantity).where(
                StockLevel.sku == sku,
                StockLevel.warehouse == warehouse,
            )
        )

    # =====================================================
    # WRITES
    # =====================================================
    async def apply_delta(
        self,
        *,
        sku: str,
        warehouse: str,
        delta: int,
        description: str = "",
    ) -> int:
        """Add ``delta`` (any sign) to the stock of one key and return the
        new quantity. All or nothing."""
        _require_key(sku, warehouse)
        _require_delta(delta)

        async def work(db: AsyncSession):
            return await self._apply(db, sku, warehouse, delta, description or "")

        quantity = await self._run("apply_delta", work, transactional=True)

        logger.info(
            "Stock %+d for %s on %s, new stock = %d",
            delta,
            sku,
            warehouse,
            quantity,
        )
        return quantity

    async def batch_apply_delta(
        self,
        entries: Iterable[BatchEntry],
        *,
        atomic: bool = True,
    ) -> dict[str, dict[str, int]]:
        """Apply many deltas, returning ``{sku: {warehouse: quantity}}``.

        With ``atomic`` every entry shares one database transaction and a
        failure rolls the whole batch back. Entries are applied in
        (sku, warehouse) order so two batches touching the same keys lock
        rows in the same order.

        Without ``atomic`` each entry commits on its own and the first
        failure aborts the rest; entries already applied stay committed.
        """
        entries = [BatchEntry(*entry) for entry in entries]
        for entry in entries:
            _require_key(entry.sku, entry.warehouse)
            _require_delta(entry.delta)

        if not entries:
            return {}

        if not atomic:
            quantities: dict[str, dict[str, int]] = {}
            for entry in entries:
                quantities.setdefault(entry.sku, {})[entry.warehouse] = await self.apply_delta(
                    sku=entry.sku,
                    warehouse=entry.warehouse,
                    delta=entry.delta,
                    description=entry.label,
                )
            return quantities

        ordered = sorted(entries, key=lambda e: (e.sku, e.warehouse))

        async def work(db: AsyncSession):
            quantities: dict[str, dict[str, int]] = {}
            for entry in ordered:
                quantities.setdefault(entry.sku, {})[entry.warehouse] = await self._apply(
                    db,
                    entry.sku,
                    entry.warehouse,
                    entry.delta,
                    entry.label or "",
                )
            return quantities

        quantities = await self._run("batch_apply_delta", work, transactional=True)

        logger.info("Batch of %d stock updates committed", len(ordered))
        return quantities

    # =====================================================
    # READS
    # =====================================================
    async def query_stock(self, *, sku: str, warehouse: str = "") -> dict[str, int]:
        """Current stock per warehouse. Empty warehouse means all of them."""
        _require_sku(sku)

        stmt = _by_key(
            select(StockLevel.warehouse, StockLevel.quantity),
            StockLevel,
            sku,
            warehouse,
        ).order_by(StockLevel.warehouse)

        async def work(db: AsyncSession):
            return (await db.execute(stmt)).all()

        rows = await self._run("query_stock", work)
        return {row_warehouse: quantity for row_warehouse, quantity in rows}

    async def _transactions(self, operation: str, sku: str, warehouse: str):
        _require_sku(sku)

        stmt = _by_key(
            select(StockTransaction),
            StockTransaction,
            sku,
            warehouse,
        ).order_by(StockTransaction.inserted_at, StockTransaction.id)

        async def work(db: AsyncSession):
            return (await db.execute(stmt)).scalars().all()

        return await self._run(operation, work)

    async def query_history(self, *, sku: str, warehouse: str = "") -> dict[str, int]:
        """Deltas keyed by ISO timestamp, oldest first.

        A timestamp shared by two transactions gets ``#<id>`` appended to
        the later key so no transaction is folded into another.
        """
        history: dict[str, int] = {}
        for tx in await self._transactions("query_history", sku, warehouse):
            stamp = _as_utc(tx.inserted_at).isoformat()
            if stamp in history:
                stamp = f"{stamp}#{tx.id}"
            history[stamp] = tx.quantity
        return history

    async def history_entries(self, *, sku: str, warehouse: str = "") -> list[dict]:
        return [
            {
                "timestamp": _as_utc(tx.inserted_at),
                "warehouse": tx.warehouse,
                "quantity": tx.quantity,
                "description": tx.description,
            }
            for tx in await self._transactions("history_entries", sku, warehouse)
        ]

    # =====================================================
    # RECONCILIATION
    # =====================================================
    async def find_mismatches(self) -> list[StockMismatch]:
        """Keys whose stock row disagrees with the sum of their transactions.

        Runs as a single statement so it reads one consistent snapshot.
        A key with transactions but no stock row reports ``quantity=None``.
        """
        levels = select(
            StockLevel.sku,
            StockLevel.warehouse,
            literal_column("0").label("delta"),
            StockLevel.quantity.label("level"),
        )
        ledger = select(
            StockTransaction.sku,
            StockTransaction.warehouse,
            StockTransaction.quantity.label("delta"),
            literal_column("NULL").label("level"),
        )
        combined = union_all(levels, ledger).subquery()

        level = func.max(combined.c.level)
        expected = func.sum(combined.c.delta)
        stmt = (
            select(
                combined.c.sku,
                combined.c.warehouse,
                level.label("quantity"),
                expected.label("expected"),
            )
            .group_by(combined.c.sku, combined.c.warehouse)
            .having(or_(level.is_(None), level != expected))
            .order_by(combined.c.sku, combined.c.warehouse)
        )

        async def work(db: AsyncSession):
            return (await db.execute(stmt)).all()

        rows = await self._run("find_mismatches", work)
        return [
            StockMismatch(
                sku=row.sku,
                warehouse=row.warehouse,
                quantity=row.quantity,
                expected=int(row.expected or 0),
            )
            for row in rows
        ]
