"""The action handlers for balances, rewards, withdraw addresses and commissions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from bdindex.actions_types import (
    Address,
    Balance,
    Context,
    DelegationReward,
    Payload,
    ValidatorCommissionAmount,
    convert_coins,
    convert_dec_coins,
)
from bdindex.coins import Coin, DecCoin

_LOG = logging.getLogger(__name__)


class BankSource(Protocol):
    """Where bank data is read from."""

    def get_supply(self, height: int) -> list[Coin]: ...

    def get_account_balance(self, address: str, height: int) -> list[Coin]: ...


@dataclass(frozen=True)
class DelegatorReward:
    """The reward a delegator has pending with one validator."""

    validator_address: str
    reward: list[DecCoin]


class DistributionSource(Protocol):
    """Where distribution data is read from."""

    def validator_commission(self, val_oper_addr: str, height: int) -> list[DecCoin]: ...

    def delegator_total_rewards(self, delegator: str, height: int) -> list[DelegatorReward]: ...

    def delegator_withdraw_address(self, delegator: str, height: int) -> str: ...

    def community_pool(self, height: int) -> list[DecCoin]: ...


@dataclass
class ActionSources:
    """The data sources the handlers query."""

    bank_source: BankSource
    distr_source: DistributionSource


def account_balance_handler(context: Context, payload: Payload) -> Balance:
    """The balance of the payload's address."""
    _LOG.debug("executing account balance action for %s at %d", payload.address, payload.input.height)
    height = context.get_height(payload)
    try:
        balance = context.sources.bank_source.get_account_balance(payload.address, height)
    except Exception as exc:
        raise RuntimeError(f"error while getting account balance: {exc}") from exc
    return Balance(coins=convert_coins(balance))


def delegation_reward_handler(context: Context, payload: Payload) -> list[DelegationReward]:
    """The pending rewards of the payload's delegator, one entry per validator."""
    _LOG.debug("executing delegation rewards action for %s at %d", payload.address, payload.input.height)
    height = context.get_height(payload)
    try:
        rewards = context.sources.distr_source.delegator_total_rewards(payload.address, height)
    except Exception as exc:
        raise RuntimeError(f"error while getting delegator total rewards: {exc}") from exc
    return [
        DelegationReward(coins=convert_dec_coins(reward.reward), validator_address=reward.validator_address)
        for reward in rewards
    ]


def delegator_withdraw_address_handler(context: Context, payload: Payload) -> Address:
    """The withdraw address of the payload's delegator, at the latest height."""
    _LOG.debug("executing delegator withdraw address action for %s", payload.address)
    height = context.get_height(None)
    try:
        address = context.sources.distr_source.delegator_withdraw_address(payload.address, height)
    except Exception as exc:
        raise RuntimeError(f"error while getting delegator withdraw address: {exc}") from exc
    return Address(address=address)


def validator_commission_amount_handler(context: Context, payload: Payload) -> ValidatorCommissionAmount:
    """The commission pending for the payload's validator, at the latest height."""
    _LOG.debug("executing validator commission action for %s", payload.address)
    height = context.get_height(None)
    try:
        commission = context.sources.distr_source.validator_commission(payload.address, height)
    except Exception as exc:
        raise RuntimeError(f"error while getting validator commission: {exc}") from exc
    return ValidatorCommissionAmount(coins=convert_dec_coins(commission))