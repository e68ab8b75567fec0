"""WalletRepository — concrete implementation of WalletRepositoryProtocol.

Balance changes are single atomic UPDATE ... RETURNING statements, so two
concurrent credits can never lose an update. There is no negative-balance
guard on debit. A result of 0 rows means the wallet does not exist.

Transaction ownership: the calling application service commits.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.gm_common.enums import WalletOwnerKind
from src.gm_common.errors import InternalError
from src.gm_common.id_generator import generate_id
from src.gm_wallet.domain.models import Wallet

_COLUMNS = "id, owner_id, owner_kind, balance, created_at, updated_at"

_GET_BY_OWNER_SQL = text(f"SELECT {_COLUMNS} FROM wallets WHERE owner_id = :owner_id")

_GET_BY_ID_SQL = text(f"SELECT {_COLUMNS} FROM wallets WHERE id = :wallet_id")

_GET_PLATFORM_SQL = text(
    f"SELECT {_COLUMNS} FROM wallets WHERE owner_kind = '{WalletOwnerKind.ADMIN.value}'"
)

_LIST_SQL = text(f"""
    SELECT {_COLUMNS} FROM wallets
    WHERE (CAST(:owner_kind AS VARCHAR) IS NULL OR owner_kind = :owner_kind)
    ORDER BY created_at, id
""")

_INSERT_SQL = text(f"""
    INSERT INTO wallets (id, owner_id, owner_kind, balance)
    VALUES (:id, :owner_id, :owner_kind, 0)
    ON CONFLICT (owner_id) DO NOTHING
    RETURNING {_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE wallets
    SET balance = balance + :amount,
        updated_at = NOW()
    WHERE owner_id = :owner_id
    RETURNING {_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE wallets
    SET balance = balance - :amount,
        updated_at = NOW()
    WHERE owner_id = :owner_id
    RETURNING {_COLUMNS}
""")

_SET_BALANCE_SQL = text(f"""
    UPDATE wallets
    SET balance = :balance,
        updated_at = NOW()
    WHERE id = :wallet_id
    RETURNING {_COLUMNS}
""")

# the platform wallet is also protected by trg_wallets_protect_platform
_DELETE_FREELANCER_SQL = text(f"""
    DELETE FROM wallets
    WHERE owner_id = :owner_id AND owner_kind = '{WalletOwnerKind.FREELANCER.value}'
    RETURNING id
""")


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        id=row.id,  # type: ignore[attr-defined]
        owner_id=row.owner_id,  # type: ignore[attr-defined]
        owner_kind=row.owner_kind,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _one_or_none(result: object) -> Wallet | None:
    row = result.fetchone()  # type: ignore[attr-defined]
    return _row_to_wallet(row) if row is not None else None


class WalletRepository:
    async def get_by_owner(self, db: AsyncSession, owner_id: str) -> Wallet | None:
        return _one_or_none(await db.execute(_GET_BY_OWNER_SQL, {"owner_id": owner_id}))

    async def get_by_id(self, db: AsyncSession, wallet_id: str) -> Wallet | None:
        return _one_or_none(await db.execute(_GET_BY_ID_SQL, {"wallet_id": wallet_id}))

    async def get_platform(self, db: AsyncSession) -> Wallet | None:
        return _one_or_none(await db.execute(_GET_PLATFORM_SQL))

    async def list_all(self, db: AsyncSession, owner_kind: str | None) -> list[Wallet]:
        result = await db.execute(_LIST_SQL, {"owner_kind": owner_kind})
        return [_row_to_wallet(r) for r in result.fetchall()]

    async def create_for_owner(
        self, db: AsyncSession, owner_id: str, owner_kind: str
    ) -> Wallet:
        """Create the owner's wallet; an existing wallet is returned unchanged."""
        result = await db.execute(
            _INSERT_SQL,
            {"id": generate_id(), "owner_id": owner_id, "owner_kind": owner_kind},
        )
        wallet = _one_or_none(result)
        if wallet is None:
            wallet = await self.get_by_owner(db, owner_id)
        if wallet is None:
            raise InternalError(f"Wallet insert for {owner_id} returned no row")
        return wallet

    async def credit(self, db: AsyncSession, owner_id: str, amount: int) -> Wallet | None:
        return _one_or_none(
            await db.execute(_CREDIT_SQL, {"owner_id": owner_id, "amount": amount})
        )

    async def debit(self, db: AsyncSession, owner_id: str, amount: int) -> Wallet | None:
        return _one_or_none(
            await db.execute(_DEBIT_SQL, {"owner_id": owner_id, "amount": amount})
        )

    async def set_balance(
        self, db: AsyncSession, wallet_id: str, balance: int
    ) -> Wallet | None:
        return _one_or_none(
            await db.execute(_SET_BALANCE_SQL, {"wallet_id": wallet_id, "balance": balance})
        )

    async def delete_for_owner(self, db: AsyncSession, owner_id: str) -> bool:
        result = await db.execute(_DELETE_FREELANCER_SQL, {"owner_id": owner_id})
        return result.fetchone() is not None
