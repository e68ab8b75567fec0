"""Authenticated actor passed from routers into application services."""

from dataclasses import dataclass

from src.gm_common.enums import PrincipalKind


@dataclass(frozen=True)
class Principal:
    id: str
    kind: PrincipalKind

    @property
    def is_admin(self) -> bool:
        return self.kind == PrincipalKind.ADMIN
