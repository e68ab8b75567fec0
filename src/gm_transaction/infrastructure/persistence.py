"""TransactionRepository — INSERT/SELECT only, plus the status correction."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_transaction.domain.models import Transaction

_COLUMNS = (
    "id, from_id, from_kind, to_id, to_kind, type, amount, payment_method, "
    "status, paid_at, created_at, updated_at"
)

_INSERT_SQL = text(f"""
    INSERT INTO transactions
        (id, from_id, from_kind, to_id, to_kind, type, amount,
         payment_method, status, paid_at)
    VALUES
        (:id, :from_id, :from_kind, :to_id, :to_kind, :type, :amount,
         :payment_method, :status, :paid_at)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM transactions WHERE id = :id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM transactions WHERE id = :id FOR UPDATE")

_LIST_FOR_PARTY_SQL = text(f"""
    SELECT {_COLUMNS} FROM transactions
    WHERE from_id = :party_id OR to_id = :party_id
    ORDER BY created_at DESC, id DESC
""")

_LIST_ALL_SQL = text(f"""
    SELECT {_COLUMNS} FROM transactions
    WHERE (CAST(:status AS VARCHAR) IS NULL OR status = :status)
      AND (CAST(:from_id AS VARCHAR) IS NULL OR from_id = :from_id)
    ORDER BY created_at DESC, id DESC
""")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE transactions SET status = :status, updated_at = NOW()
    WHERE id = :id
    RETURNING {_COLUMNS}
""")


def _row_to_tx(row: Any) -> Transaction:
    return Transaction(
        id=row.id,
        from_id=row.from_id,
        from_kind=row.from_kind,
        to_id=row.to_id,
        to_kind=row.to_kind,
        type=row.type,
        amount=row.amount,
        payment_method=row.payment_method,
        status=row.status,
        paid_at=row.paid_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class TransactionRepository:
    async def insert(self, db: AsyncSession, tx: Transaction) -> Transaction:
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": tx.id,
                "from_id": tx.from_id,
                "from_kind": tx.from_kind,
                "to_id": tx.to_id,
                "to_kind": tx.to_kind,
                "type": tx.type,
                "amount": tx.amount,
                "payment_method": tx.payment_method,
                "status": tx.status,
                "paid_at": tx.paid_at,
            },
        )
        return _row_to_tx(result.fetchone())

    async def get(self, db: AsyncSession, transaction_id: str) -> Transaction | None:
        row = (await db.execute(_GET_SQL, {"id": transaction_id})).fetchone()
        return _row_to_tx(row) if row else None

    async def get_for_update(
        self, db: AsyncSession, transaction_id: str
    ) -> Transaction | None:
        row = (await db.execute(_GET_FOR_UPDATE_SQL, {"id": transaction_id})).fetchone()
        return _row_to_tx(row) if row else None

    async def list_for_party(self, db: AsyncSession, party_id: str) -> list[Transaction]:
        result = await db.execute(_LIST_FOR_PARTY_SQL, {"party_id": party_id})
        return [_row_to_tx(r) for r in result.fetchall()]

    async def list_all(
        self, db: AsyncSession, status: str | None, from_id: str | None
    ) -> list[Transaction]:
        result = await db.execute(_LIST_ALL_SQL, {"status": status, "from_id": from_id})
        return [_row_to_tx(r) for r in result.fetchall()]

    async def update_status(
        self, db: AsyncSession, transaction_id: str, status: str
    ) -> Transaction | None:
        row = (
            await db.execute(_UPDATE_STATUS_SQL, {"id": transaction_id, "status": status})
        ).fetchone()
        return _row_to_tx(row) if row else None
