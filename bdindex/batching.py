"""Splitting of account lists so that a bulk insert stays within the parameter limit."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

MAX_POSTGRESQL_PARAMS = 65535

T = TypeVar("T")


def split_accounts(accounts: Sequence[T], params_number: int) -> list[list[T]]:
    """Split accounts into batches for statements taking ``params_number`` parameters each.

    The first batch holds up to ``MAX_POSTGRESQL_PARAMS // params_number`` accounts,
    the following ones one fewer. The number of batches is
    ``len(accounts) // per_batch + 1``, so trailing batches may be empty.
    """
    if params_number <= 0:
        raise ValueError(f"parameters per account must be positive: {params_number}")
    per_batch = MAX_POSTGRESQL_PARAMS // params_number
    if per_batch < 2:
        raise ValueError(f"too many parameters per account to batch: {params_number}")

    batches: list[list[T]] = [[] for _ in range(len(accounts) // per_batch + 1)]
    target = 0
    for index, account in enumerate(accounts):
        if target >= len(batches):
            raise ValueError(f"too many accounts to split into {len(batches)} batches")
        batches[target].append(account)
        if index > 0 and index % (per_batch - 1) == 0:
            target += 1
    return batches