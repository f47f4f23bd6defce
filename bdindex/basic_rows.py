"""Rows of the account, distribution, supply and modules tables."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from bdindex.coins import DbCoins, DbDecCoins


@dataclass
class AccountRow:
    """A row of the account table."""

    address: str


@dataclass
class DistributionParamsRow:
    """A row of the distribution_params table."""

    params: str
    height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass(eq=False)
class CommunityPoolRow:
    """A row of the community_pool table."""

    coins: DbDecCoins | None
    height: int
    one_row_id: bool = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommunityPoolRow):
            return NotImplemented
        if self.coins is None or other.coins is None:
            return False
        return self.coins == other.coins and self.height == other.height


@dataclass(eq=False)
class SupplyRow:
    """A row of the supply table."""

    coins: DbCoins | None
    height: int
    one_row_id: bool = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SupplyRow):
            return NotImplemented
        if self.coins is None or other.coins is None:
            return False
        return self.coins == other.coins and self.height == other.height


@dataclass
class ModuleRow:
    """A row of the modules table."""

    module: str


def module_rows(names: Iterable[str]) -> list[ModuleRow]:
    """Build one module row per name, keeping the order."""
    return [ModuleRow(name) for name in names]