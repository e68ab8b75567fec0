"""Unit tests for WalletApplicationService (mocked repository)."""

from unittest.mock import AsyncMock

import pytest

from src.gm_common.enums import PrincipalKind, WalletOwnerKind
from src.gm_common.errors import (
    ForbiddenError,
    InvalidAmountError,
    PlatformWalletMissingError,
    WalletNotFoundError,
)
from src.gm_gateway.auth.principal import Principal
from src.gm_wallet.application.service import WalletApplicationService
from src.gm_wallet.domain.models import PLATFORM_OWNER_ID, Wallet


def _wallet(owner_id: str = "fl-1", balance: int = 0) -> Wallet:
    kind = WalletOwnerKind.ADMIN if owner_id == PLATFORM_OWNER_ID else WalletOwnerKind.FREELANCER
    return Wallet(id=f"w-{owner_id}", owner_id=owner_id, owner_kind=kind.value, balance=balance)


@pytest.fixture
def mock_db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(repo: AsyncMock) -> WalletApplicationService:
    return WalletApplicationService(repo)


class TestAdjustments:
    async def test_credit_commits(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.credit.return_value = _wallet(balance=2500)

        resp = await service.credit(mock_db, "fl-1", 2500)

        repo.credit.assert_awaited_once_with(mock_db, "fl-1", 2500)
        assert resp.balance_cents == 2500
        assert resp.balance_display == "$25.00"
        mock_db.commit.assert_awaited_once()

    async def test_debit_may_go_negative(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.debit.return_value = _wallet(balance=-700)

        resp = await service.debit(mock_db, "fl-1", 700)

        assert resp.balance_cents == -700
        assert resp.balance_display == "-$7.00"

    @pytest.mark.parametrize("amount", [0, -1])
    async def test_non_positive_amount_rejected(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock, amount: int
    ) -> None:
        with pytest.raises(InvalidAmountError):
            await service.credit(mock_db, "fl-1", amount)
        repo.credit.assert_not_awaited()

    async def test_missing_wallet_rolls_back(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.credit.return_value = None

        with pytest.raises(WalletNotFoundError):
            await service.credit(mock_db, "fl-ghost", 100)
        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()


class TestAdminOverride:
    async def test_set_balance(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_by_id.return_value = _wallet(balance=100)
        repo.set_balance.return_value = _wallet(balance=-5000)

        resp = await service.admin_set_balance(mock_db, "adm-1", "w-fl-1", -5000)

        repo.set_balance.assert_awaited_once_with(mock_db, "w-fl-1", -5000)
        assert resp.balance_cents == -5000

    async def test_unknown_wallet(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_by_id.return_value = None

        with pytest.raises(WalletNotFoundError):
            await service.admin_set_balance(mock_db, "adm-1", "w-none", 0)
        repo.set_balance.assert_not_awaited()


class TestReads:
    async def test_admin_sees_platform_wallet_as_mine(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_platform.return_value = _wallet(PLATFORM_OWNER_ID, 90000)

        resp = await service.get_my_wallet(
            mock_db, Principal(id="adm-1", kind=PrincipalKind.ADMIN)
        )

        assert resp.owner_id == PLATFORM_OWNER_ID
        assert resp.balance_cents == 90000

    async def test_missing_platform_wallet(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_platform.return_value = None

        with pytest.raises(PlatformWalletMissingError):
            await service.get_my_wallet(mock_db, Principal(id="adm-1", kind=PrincipalKind.ADMIN))

    async def test_buyers_hold_no_wallet(
        self, service: WalletApplicationService, mock_db: AsyncMock
    ) -> None:
        with pytest.raises(ForbiddenError):
            await service.get_my_wallet(mock_db, Principal(id="u-1", kind=PrincipalKind.USER))

    async def test_freelancer_cannot_read_foreign_wallet(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_by_id.return_value = _wallet("fl-2")

        with pytest.raises(ForbiddenError):
            await service.get_wallet(
                mock_db, Principal(id="fl-1", kind=PrincipalKind.FREELANCER), "w-fl-2"
            )

    async def test_get_balance(
        self, service: WalletApplicationService, repo: AsyncMock, mock_db: AsyncMock
    ) -> None:
        repo.get_by_owner.return_value = _wallet(balance=42)
        assert await service.get_balance(mock_db, "fl-1") == 42
