"""Rows of the validator tables and the stored data of a single validator."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal

from bdindex.coins import to_null_string

_INT64_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _parse_int64(text: str) -> int:
    """Parse a base-10 signed 64-bit integer, as stored for validator rates."""
    if not isinstance(text, str) or not _INT64_RE.fullmatch(text):
        raise ValueError(f"invalid integer rate: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer rate out of range: {text!r}")
    return value


@dataclass
class ValidatorData:
    """Everything stored about a single validator."""

    consensus_address: str
    operator_address: str
    consensus_pubkey: str
    self_delegate_address: str
    max_rate: str
    max_change_rate: str
    height: int

    def max_rate_dec(self) -> Decimal:
        """The maximum commission rate as a decimal; the stored text must be an integer."""
        return Decimal(_parse_int64(self.max_rate))

    def max_change_rate_dec(self) -> Decimal:
        """The maximum commission change rate as a decimal; the stored text must be an integer."""
        return Decimal(_parse_int64(self.max_change_rate))


@dataclass
class ValidatorRow:
    """A row of the validator table."""

    consensus_address: str
    consensus_pubkey: str


@dataclass
class ValidatorInfoRow:
    """A row of the validator_info table."""

    consensus_address: str
    operator_address: str
    self_delegate_address: str
    max_rate: str
    max_change_rate: str
    height: int


@dataclass
class ValidatorDescriptionRow:
    """A row of the validator_description table.

    The avatar URL is stored but takes no part in equality.
    """

    validator_address: str
    moniker: str | None
    identity: str | None
    avatar_url: str | None = field(compare=False)
    website: str | None
    security_contact: str | None
    details: str | None
    height: int

    @classmethod
    def from_strings(
        cls,
        validator_address: str,
        moniker: str,
        identity: str,
        avatar_url: str,
        website: str,
        security_contact: str,
        details: str,
        height: int,
    ) -> ValidatorDescriptionRow:
        """Build a row, trimming each text and turning empty ones into NULL."""
        return cls(
            validator_address=validator_address,
            moniker=to_null_string(moniker),
            identity=to_null_string(identity),
            avatar_url=to_null_string(avatar_url),
            website=to_null_string(website),
            security_contact=to_null_string(security_contact),
            details=to_null_string(details),
            height=height,
        )


@dataclass
class ValidatorCommissionRow:
    """A row of the validator_commission table."""

    validator_address: str
    commission: str | None
    min_self_delegation: str | None
    height: int

    @classmethod
    def from_strings(
        cls,
        validator_address: str,
        commission: str,
        min_self_delegation: str,
        height: int,
    ) -> ValidatorCommissionRow:
        """Build a row, turning empty texts into NULL."""
        return cls(
            validator_address=validator_address,
            commission=to_null_string(commission),
            min_self_delegation=to_null_string(min_self_delegation),
            height=height,
        )


@dataclass
class ValidatorVotingPowerRow:
    """A row of the validator_voting_power table."""

    validator_address: str
    voting_power: int
    height: int


@dataclass
class ValidatorStatusRow:
    """A row of the validator_status table."""

    status: int
    jailed: bool
    validator_address: str
    height: int


@dataclass
class DoubleSignVoteRow:
    """A row of the double_sign_vote table."""

    id: int
    type: int
    height: int
    round: int
    block_id: str
    validator_address: str
    validator_index: int
    signature: str


@dataclass
class DoubleSignEvidenceRow:
    """A row of the double_sign_evidence table."""

    height: int
    vote_a_id: int
    vote_b_id: int