"""Coin values and their textual storage form in composite database columns."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

DEC_PRECISION = 18
_DEC_QUANTUM = Decimal(1).scaleb(-DEC_PRECISION)
_DENOM_RE = re.compile(r"[a-zA-Z][a-zA-Z0-9/:._-]{2,127}")


def _validate_denom(denom: str) -> None:
    if not isinstance(denom, str) or not _DENOM_RE.fullmatch(denom):
        raise ValueError(f"invalid denom: {denom!r}")


def _parse_dec(text: str) -> Decimal:
    """Parse a decimal string, refusing more than 18 fractional digits."""
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"invalid decimal amount: {text!r}") from exc
    if not value.is_finite():
        raise ValueError(f"invalid decimal amount: {text!r}")
    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and exponent < -DEC_PRECISION:
        raise ValueError(f"too much precision in decimal amount: {text!r}")
    return value


def _to_text(src: str | bytes | bytearray | memoryview) -> str:
    if isinstance(src, str):
        return src
    if isinstance(src, (bytes, bytearray, memoryview)):
        return bytes(src).decode()
    raise TypeError(f"cannot read coin data from {type(src).__name__}")


def _strip_markup(text: str, *, split_groups: bool) -> str:
    for token in ('"', "{", "}"):
        text = text.replace(token, "")
    if split_groups:
        text = text.replace("),(", ") (")
    for token in ("(", ")"):
        text = text.replace(token, "")
    return text


def _split_pair(value: str) -> tuple[str, str]:
    parts = value.split(",")
    if len(parts) < 2:
        raise ValueError(f"malformed coin value: {value!r}")
    return parts[0], parts[1]


def to_string(value: str | None) -> str:
    """Return the text of a nullable string, or an empty string for NULL."""
    return value if value is not None else ""


def to_null_string(value: str) -> str | None:
    """Trim the value and turn an empty result into NULL."""
    value = value.strip()
    return value or None


def remove_empty(values: Iterable[str]) -> list[str]:
    """Drop the empty strings from the given values."""
    return [value for value in values if value != ""]


def format_dec(value: Decimal | str | int) -> str:
    """Render a decimal with exactly 18 fractional digits."""
    dec = _parse_dec(str(value)) if not isinstance(value, Decimal) else value
    if not dec.is_finite():
        raise ValueError(f"invalid decimal amount: {value!r}")
    exponent = dec.as_tuple().exponent
    if isinstance(exponent, int) and exponent < -DEC_PRECISION:
        raise ValueError(f"too much precision in decimal amount: {value!r}")
    quantized = dec.quantize(_DEC_QUANTUM)
    if quantized == 0:
        quantized = abs(quantized)
    return f"{quantized:f}"


@dataclass(frozen=True)
class Coin:
    """An integer amount of a denomination."""

    denom: str
    amount: int

    def __post_init__(self) -> None:
        _validate_denom(self.denom)
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"coin amount must be an integer: {self.amount!r}")
        if self.amount < 0:
            raise ValueError(f"negative coin amount: {self.amount}")


@dataclass(frozen=True)
class DecCoin:
    """A decimal amount of a denomination."""

    denom: str
    amount: Decimal

    def __post_init__(self) -> None:
        _validate_denom(self.denom)
        if not isinstance(self.amount, Decimal):
            raise ValueError(f"decimal coin amount must be a Decimal: {self.amount!r}")
        if self.amount < 0:
            raise ValueError(f"negative coin amount: {self.amount}")


@dataclass(frozen=True)
class DbCoin:
    """A coin as stored in the database, amount kept as text."""

    denom: str
    amount: str

    @classmethod
    def from_coin(cls, coin: Coin) -> DbCoin:
        return cls(denom=coin.denom, amount=str(coin.amount))

    def to_sql(self) -> str:
        return f"({self.denom},{self.amount})"

    @classmethod
    def parse(cls, src: str | bytes) -> DbCoin:
        denom, amount = _split_pair(_strip_markup(_to_text(src), split_groups=False))
        return cls(denom=denom, amount=amount)

    def to_coin(self) -> Coin:
        try:
            amount = int(self.amount)
        except ValueError as exc:
            raise ValueError(f"invalid coin amount: {self.amount!r}") from exc
        return Coin(denom=self.denom, amount=amount)


class DbCoins(list):
    """An ordered list of database coins."""

    @classmethod
    def from_coins(cls, coins: Iterable[Coin]) -> DbCoins:
        return cls(DbCoin.from_coin(coin) for coin in coins)

    @classmethod
    def parse(cls, src: str | bytes) -> DbCoins:
        text = _strip_markup(_to_text(src), split_groups=True)
        return cls(DbCoin(*_split_pair(value)) for value in remove_empty(text.split(" ")))

    def to_coins(self) -> list[Coin]:
        return [coin.to_coin() for coin in self]


@dataclass(frozen=True)
class DbDecCoin:
    """A decimal coin as stored in the database, amount kept as text."""

    denom: str
    amount: str

    @classmethod
    def from_dec_coin(cls, coin: DecCoin) -> DbDecCoin:
        return cls(denom=coin.denom, amount=format_dec(coin.amount))

    def to_sql(self) -> str:
        return f"({self.denom},{self.amount})"

    @classmethod
    def parse(cls, src: str | bytes) -> DbDecCoin:
        denom, amount = _split_pair(_strip_markup(_to_text(src), split_groups=False))
        return cls(denom=denom, amount=amount)

    def to_dec_coin(self) -> DecCoin:
        return DecCoin(denom=self.denom, amount=_parse_dec(self.amount))


class DbDecCoins(list):
    """An ordered list of database decimal coins."""

    @classmethod
    def from_dec_coins(cls, coins: Iterable[DecCoin]) -> DbDecCoins:
        return cls(DbDecCoin.from_dec_coin(coin) for coin in coins)

    @classmethod
    def parse(cls, src: str | bytes) -> DbDecCoins:
        text = _strip_markup(_to_text(src), split_groups=True)
        return cls(DbDecCoin(*_split_pair(value)) for value in remove_empty(text.split(" ")))

    def to_dec_coins(self) -> list[DecCoin]:
        return [coin.to_dec_coin() for coin in self]