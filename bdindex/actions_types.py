"""Payloads, responses and execution context of the actions endpoints."""

from __future__ import annotations

import base64
import dataclasses
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

from bdindex import coins as chain_coins


class _Node(Protocol):
    def latest_height(self) -> int: ...


def _typed(args: Mapping[str, Any], key: str, kind: type, default: Any, *, unsigned: bool = False) -> Any:
    value = args.get(key)
    if value is None:
        return default
    if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"invalid value for {key}: {value!r}")
    if kind is not int and not isinstance(value, kind):
        raise ValueError(f"invalid value for {key}: {value!r}")
    if unsigned and value < 0:
        raise ValueError(f"negative value for {key}: {value!r}")
    return value


@dataclass(frozen=True)
class PageRequest:
    """Pagination asked of a chain query."""

    offset: int = 0
    limit: int = 0
    count_total: bool = False


@dataclass(frozen=True)
class PayloadArgs:
    """The input arguments of an action."""

    address: str = ""
    height: int = 0
    offset: int = 0
    limit: int = 0
    count_total: bool = False


@dataclass(frozen=True)
class Payload:
    """The body of an action request."""

    session_variables: dict[str, Any] = field(default_factory=dict)
    input: PayloadArgs = field(default_factory=PayloadArgs)

    @classmethod
    def from_json(cls, data: str | bytes) -> Payload:
        """Decode a payload from JSON text, raising ValueError when it is malformed."""
        try:
            raw = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
            raise ValueError(f"invalid payload: {exc}") from exc
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValueError("invalid payload: expected a JSON object")
        session = raw.get("session_variables") or {}
        if not isinstance(session, dict):
            raise ValueError("invalid payload: session_variables must be an object")
        args = raw.get("input") or {}
        if not isinstance(args, dict):
            raise ValueError("invalid payload: input must be an object")
        return cls(
            session_variables=dict(session),
            input=PayloadArgs(
                address=_typed(args, "address", str, ""),
                height=_typed(args, "height", int, 0),
                offset=_typed(args, "offset", int, 0, unsigned=True),
                limit=_typed(args, "limit", int, 0, unsigned=True),
                count_total=_typed(args, "count_total", bool, False),
            ),
        )

    @property
    def address(self) -> str:
        """The address the action is about, or an empty string."""
        return self.input.address

    def pagination(self) -> PageRequest:
        """The pagination requested by the payload."""
        return PageRequest(
            offset=self.input.offset,
            limit=self.input.limit,
            count_total=self.input.count_total,
        )


@dataclass(frozen=True)
class Coin:
    """A coin as returned by an action."""

    amount: str
    denom: str


def convert_coins(coins: Iterable[chain_coins.Coin]) -> list[Coin]:
    """Turn integer coins into response coins."""
    return [Coin(amount=str(coin.amount), denom=coin.denom) for coin in coins]


def convert_dec_coins(coins: Iterable[chain_coins.DecCoin]) -> list[Coin]:
    """Turn decimal coins into response coins, amounts with 18 fractional digits."""
    return [Coin(amount=chain_coins.format_dec(coin.amount), denom=coin.denom) for coin in coins]


@dataclass(frozen=True)
class Address:
    address: str


@dataclass(frozen=True)
class Balance:
    coins: list[Coin]


@dataclass(frozen=True)
class Delegation:
    delegator_address: str
    validator_address: str
    coins: list[Coin]


@dataclass(frozen=True)
class DelegationResponse:
    delegations: list[Delegation]
    pagination: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class DelegationReward:
    coins: list[Coin]
    validator_address: str


@dataclass(frozen=True)
class ValidatorCommissionAmount:
    coins: list[Coin]


@dataclass(frozen=True)
class UnbondingDelegation:
    delegator_address: str
    validator_address: str
    entries: list[Mapping[str, Any]]


@dataclass(frozen=True)
class UnbondingDelegationResponse:
    unbonding_delegations: list[UnbondingDelegation]
    pagination: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class RedelegationEntry:
    completion_time: datetime
    balance: int = field(metadata={"string": True})


@dataclass(frozen=True)
class Redelegation:
    delegator_address: str
    validator_src_address: str
    validator_dst_address: str
    redelegation_entries: list[RedelegationEntry] = field(
        default_factory=list, metadata={"json": "entries"}
    )


@dataclass(frozen=True)
class RedelegationResponse:
    redelegations: list[Redelegation]
    pagination: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class GraphQLError:
    message: str


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if not offset:
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    total = abs(total)
    return f"{text}{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"


def to_json_data(value: Any) -> Any:
    """Turn a response value into plain JSON data using the wire field names."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        for item_field in dataclasses.fields(value):
            item = getattr(value, item_field.name)
            key = item_field.metadata.get("json", item_field.name)
            if item_field.metadata.get("string") and item is not None:
                out[key] = str(item)
            else:
                out[key] = to_json_data(item)
        return out
    if isinstance(value, Mapping):
        return {str(key): to_json_data(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_data(item) for item in value]
    if isinstance(value, datetime):
        return _format_time(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


@dataclass
class Context:
    """What the action handlers work with: a node and the data sources."""

    node: _Node | None
    sources: Any

    def get_height(self, payload: Payload | None) -> int:
        """The payload's height, or the node's latest one when none is given."""
        if payload is None or payload.input.height == 0:
            if self.node is None:
                raise RuntimeError("error while getting chain latest block height: no node")
            try:
                return self.node.latest_height()
            except Exception as exc:
                raise RuntimeError(
                    f"error while getting chain latest block height: {exc}"
                ) from exc
        return payload.input.height