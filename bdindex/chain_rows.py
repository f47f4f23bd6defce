"""Rows of the consensus, governance, mint, price, slashing and staking tables.

Equality follows the stored data: the ``one_row_id`` marker of single-row
tables, a proposal's serialized content and a token price's id are not
compared. Timestamps compare as instants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from bdindex.coins import DbCoins


@dataclass
class GenesisRow:
    """The single row of the genesis table."""

    chain_id: str
    time: datetime
    initial_height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class ConsensusRow:
    """The single row of the consensus table."""

    height: int
    round: int
    step: str
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class AverageTimeRow:
    """The average block time over a minute, an hour, a day or since genesis."""

    average_time: float
    height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class BlockRow:
    """A block stored in the block table."""

    height: int
    hash: str
    num_txs: int
    total_gas: int
    proposer_address: str | None
    pre_commits: int
    timestamp: datetime


@dataclass
class FeeAllowanceRow:
    """A row of the fee_grant_allowance table."""

    id: int
    grantee_address: str
    granter_address: str
    allowance: str
    height: int


@dataclass
class GovParamsRow:
    """The single row of the gov_params table."""

    deposit_params: str
    voting_params: str
    tally_params: str
    height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class ProposalRow:
    """A row of the proposal table."""

    proposal_id: int
    proposal_route: str
    proposal_type: str
    title: str
    description: str
    content: str = field(compare=False)
    submit_time: datetime
    deposit_end_time: datetime
    voting_start_time: datetime
    voting_end_time: datetime
    proposer_address: str
    status: str


@dataclass
class TallyResultRow:
    """A row of the proposal_tally_result table."""

    proposal_id: int
    yes: str
    abstain: str
    no: str
    no_with_veto: str
    height: int


@dataclass
class VoteRow:
    """A row of the proposal_vote table."""

    proposal_id: int
    voter_address: str
    option: str
    height: int


@dataclass
class DepositRow:
    """A row of the proposal_deposit table."""

    proposal_id: int
    depositor_address: str
    amount: DbCoins
    height: int


@dataclass
class ProposalStakingPoolSnapshotRow:
    """The staking pool as it stood for a proposal."""

    proposal_id: int
    bonded_tokens: int
    not_bonded_tokens: int
    height: int


@dataclass
class ProposalValidatorVotingPowerSnapshotRow:
    """A validator's voting power and status as they stood for a proposal."""

    id: int
    proposal_id: int
    validator_address: str
    voting_power: int
    status: int
    jailed: bool
    height: int


@dataclass
class InflationRow:
    """The single row of the inflation table."""

    value: float
    height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class MintParamsRow:
    """The single row of the mint_params table."""

    params: str
    height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class TokenUnitRow:
    """A row of the token_unit table."""

    token_name: str
    denom: str
    exponent: int
    aliases: list[str] = field(default_factory=list)
    price_id: str | None = None


@dataclass
class TokenRow:
    """A row of the token table."""

    name: str
    traded_unit: str


@dataclass
class TokenPriceRow:
    """A row of the token_price table."""

    unit_name: str
    price: float
    market_cap: int
    timestamp: datetime
    id: str = field(default="", compare=False)


@dataclass
class ValidatorSigningInfoRow:
    """A row of the validator_signing_info table."""

    validator_address: str
    start_height: int
    index_offset: int
    jailed_until: datetime
    tombstoned: bool
    missed_blocks_counter: int
    height: int


@dataclass
class SlashingParamsRow:
    """The single row of the slashing_params table."""

    params: str
    height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class StakingParamsRow:
    """The single row of the staking_params table."""

    params: str
    height: int
    one_row_id: bool = field(default=True, compare=False)


@dataclass
class StakingPoolRow:
    """The single row of the staking_pool table."""

    bonded_tokens: int
    not_bonded_tokens: int
    unbonding_tokens: int
    staked_not_bonded_tokens: int
    height: int
    one_row_id: bool = field(default=True, compare=False)