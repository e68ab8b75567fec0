"""Wallet movements for starting and ending an order.

LEGACY reproduces the historical prepayment behaviour: the freelancer is
credited at start, and at end both the platform and the freelancer are
debited, so start+end leaves the freelancer balance unchanged.

ESCROW moves nothing at start; at end the platform pays the freelancer.
"""

from dataclasses import dataclass

from src.gm_common.enums import SettlementMode

PLATFORM = "platform"
FREELANCER = "freelancer"


@dataclass(frozen=True)
class WalletMove:
    party: str  # PLATFORM or FREELANCER
    delta: int  # signed cents


def start_moves(mode: SettlementMode, amount: int) -> list[WalletMove]:
    if mode == SettlementMode.LEGACY:
        return [WalletMove(FREELANCER, amount)]
    return []


def end_moves(mode: SettlementMode, amount: int) -> list[WalletMove]:
    if mode == SettlementMode.LEGACY:
        return [WalletMove(PLATFORM, -amount), WalletMove(FREELANCER, -amount)]
    return [WalletMove(PLATFORM, -amount), WalletMove(FREELANCER, amount)]


def net_effect(moves: list[WalletMove], party: str) -> int:
    return sum(m.delta for m in moves if m.party == party)
