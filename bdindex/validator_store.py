"""Storage of validators, their descriptions, commissions, powers, statuses and evidence."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from itertools import chain

from bdindex.coins import format_dec, to_null_string, to_string
from bdindex.validator_rows import ValidatorData

DO_NOT_MODIFY = "[do-not-modify]"

MAX_MONIKER_LENGTH = 70
MAX_IDENTITY_LENGTH = 3000
MAX_WEBSITE_LENGTH = 140
MAX_SECURITY_CONTACT_LENGTH = 140
MAX_DETAILS_LENGTH = 280

_SCHEMA = """
CREATE TABLE IF NOT EXISTS account (
    address TEXT NOT NULL PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS validator (
    consensus_address TEXT NOT NULL PRIMARY KEY,
    consensus_pubkey  TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS validator_info (
    consensus_address     TEXT   NOT NULL UNIQUE REFERENCES validator (consensus_address),
    operator_address      TEXT   NOT NULL UNIQUE,
    self_delegate_address TEXT   REFERENCES account (address),
    max_change_rate       TEXT   NOT NULL,
    max_rate              TEXT   NOT NULL,
    height                BIGINT NOT NULL
);

CREATE TABLE IF NOT EXISTS validator_description (
    validator_address TEXT   NOT NULL PRIMARY KEY REFERENCES validator (consensus_address),
    moniker           TEXT,
    identity          TEXT,
    avatar_url        TEXT,
    website           TEXT,
    security_contact  TEXT,
    details           TEXT,
    height            BIGINT NOT NULL
);

CREATE TABLE IF NOT EXISTS validator_commission (
    validator_address   TEXT   NOT NULL PRIMARY KEY REFERENCES validator (consensus_address),
    commission          TEXT,
    min_self_delegation TEXT,
    height              BIGINT NOT NULL
);

CREATE TABLE IF NOT EXISTS validator_voting_power (
    validator_address TEXT   NOT NULL PRIMARY KEY REFERENCES validator (consensus_address),
    voting_power      BIGINT NOT NULL,
    height            BIGINT NOT NULL
);

CREATE TABLE IF NOT EXISTS validator_status (
    validator_address TEXT    NOT NULL PRIMARY KEY REFERENCES validator (consensus_address),
    status            INTEGER NOT NULL,
    jailed            BOOLEAN NOT NULL,
    height            BIGINT  NOT NULL
);

CREATE TABLE IF NOT EXISTS double_sign_vote (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    type              SMALLINT NOT NULL,
    height            BIGINT   NOT NULL,
    round             INTEGER  NOT NULL,
    block_id          TEXT     NOT NULL,
    validator_address TEXT     NOT NULL REFERENCES validator (consensus_address),
    validator_index   INTEGER  NOT NULL,
    signature         TEXT     NOT NULL,
    UNIQUE (block_id, validator_address)
);

CREATE TABLE IF NOT EXISTS double_sign_evidence (
    height    BIGINT  NOT NULL,
    vote_a_id INTEGER NOT NULL REFERENCES double_sign_vote (id),
    vote_b_id INTEGER NOT NULL REFERENCES double_sign_vote (id)
);

CREATE TABLE IF NOT EXISTS modules (
    module_name TEXT NOT NULL UNIQUE PRIMARY KEY
);
"""


class StoreError(Exception):
    """Raised when the store cannot save or find the requested data."""


def _check_length(name: str, value: str, limit: int) -> None:
    length = len(value.encode())
    if length > limit:
        raise ValueError(f"invalid {name} length; got: {length}, max: {limit}")


@dataclass(frozen=True)
class Description:
    """The self-declared description of a validator."""

    moniker: str = ""
    identity: str = ""
    website: str = ""
    security_contact: str = ""
    details: str = ""

    def ensure_length(self) -> Description:
        """Return this description, raising ValueError if a field is too long."""
        _check_length("moniker", self.moniker, MAX_MONIKER_LENGTH)
        _check_length("identity", self.identity, MAX_IDENTITY_LENGTH)
        _check_length("website", self.website, MAX_WEBSITE_LENGTH)
        _check_length("security contact", self.security_contact, MAX_SECURITY_CONTACT_LENGTH)
        _check_length("details", self.details, MAX_DETAILS_LENGTH)
        return self

    def update(self, other: Description) -> Description:
        """Apply ``other`` on top of this description, keeping fields marked as not to modify."""

        def pick(new: str, old: str) -> str:
            return old if new == DO_NOT_MODIFY else new

        return Description(
            moniker=pick(other.moniker, self.moniker),
            identity=pick(other.identity, self.identity),
            website=pick(other.website, self.website),
            security_contact=pick(other.security_contact, self.security_contact),
            details=pick(other.details, self.details),
        ).ensure_length()


@dataclass(frozen=True)
class ValidatorDescription:
    """A validator description as of a height."""

    operator_address: str
    description: Description
    avatar_url: str
    height: int


@dataclass(frozen=True)
class ValidatorCommission:
    """A commission update; either value may be absent."""

    validator_address: str
    commission: Decimal | None
    min_self_delegation: int | None
    height: int


@dataclass(frozen=True)
class ValidatorVotingPower:
    """The voting power of a validator at a height."""

    consensus_address: str
    voting_power: int
    height: int


@dataclass(frozen=True)
class ValidatorStatus:
    """The status and jailing of a validator at a height."""

    consensus_address: str
    consensus_pubkey: str
    status: int
    jailed: bool
    height: int


@dataclass(frozen=True)
class DoubleSignVote:
    """One of the two conflicting votes of a double sign."""

    type: int
    height: int
    round: int
    block_id: str
    validator_address: str
    validator_index: int
    signature: str


@dataclass(frozen=True)
class DoubleSignEvidence:
    """Evidence of a validator signing two conflicting votes."""

    height: int
    vote_a: DoubleSignVote
    vote_b: DoubleSignVote


def _groups(count: int, width: int) -> str:
    group = "(" + ", ".join("?" * width) + ")"
    return ", ".join([group] * count)


class ValidatorStore:
    """Validator data kept in an SQLite database."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self.connection.execute("PRAGMA foreign_keys = ON")

    @classmethod
    def open(cls, path: str) -> ValidatorStore:
        """Open the database at ``path`` and make sure its tables exist."""
        store = cls(sqlite3.connect(path))
        store.create_schema()
        return store

    def create_schema(self) -> None:
        """Create the tables that are missing."""
        self.connection.executescript(_SCHEMA)

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> ValidatorStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _execute(self, message: str, sql: str, params: Sequence[object] = ()) -> sqlite3.Cursor:
        try:
            return self.connection.execute(sql, params)
        except sqlite3.Error as exc:
            raise StoreError(f"{message}: {exc}") from exc

    # ------------------------------------------------------------------ validators

    def save_validator_data(self, validator: ValidatorData) -> None:
        """Save a single validator."""
        self.save_validators_data([validator])

    def save_validators_data(self, validators: Iterable[ValidatorData]) -> None:
        """Save validators in bulk, keeping the info of the highest height."""
        validators = list(validators)
        if not validators:
            return
        count = len(validators)
        accounts_sql = (
            f"INSERT INTO account (address) VALUES {_groups(count, 1)} ON CONFLICT DO NOTHING"
        )
        validator_sql = (
            "INSERT INTO validator (consensus_address, consensus_pubkey) "
            f"VALUES {_groups(count, 2)} ON CONFLICT DO NOTHING"
        )
        info_sql = f"""
INSERT INTO validator_info (consensus_address, operator_address, self_delegate_address,
                            max_change_rate, max_rate, height)
VALUES {_groups(count, 6)}
ON CONFLICT (consensus_address) DO UPDATE
    SET consensus_address = excluded.consensus_address,
        operator_address = excluded.operator_address,
        self_delegate_address = excluded.self_delegate_address,
        max_change_rate = excluded.max_change_rate,
        max_rate = excluded.max_rate,
        height = excluded.height
WHERE validator_info.height <= excluded.height"""
        info_params = list(
            chain.from_iterable(
                (
                    v.consensus_address,
                    v.operator_address,
                    v.self_delegate_address,
                    format_dec(v.max_change_rate_dec()),
                    format_dec(v.max_rate_dec()),
                    v.height,
                )
                for v in validators
            )
        )
        with self.connection:
            self._execute(
                "error while storing accounts",
                accounts_sql,
                [v.self_delegate_address for v in validators],
            )
            self._execute(
                "error while storing validators",
                validator_sql,
                list(chain.from_iterable((v.consensus_address, v.consensus_pubkey) for v in validators)),
            )
            self._execute("error while storing validator infos", info_sql, info_params)

    def get_validator_consensus_address(self, address: str) -> str:
        """Return the consensus address of the validator with the given operator address."""
        row = self._execute(
            "error while reading validator info",
            "SELECT consensus_address FROM validator_info WHERE operator_address = ?",
            [address],
        ).fetchone()
        if row is None:
            raise StoreError(
                f"cannot find the consensus address of validator having operator address {address}"
            )
        return row[0]

    def get_validator_operator_address(self, consensus_address: str) -> str:
        """Return the operator address of the validator with the given consensus address."""
        row = self._execute(
            "error while reading validator info",
            "SELECT operator_address FROM validator_info WHERE consensus_address = ?",
            [consensus_address],
        ).fetchone()
        if row is None:
            raise StoreError(
                "cannot find the operator address of validator having consensus address "
                f"{consensus_address}"
            )
        return row[0]

    def _find_validator(self, column: str, value: str) -> ValidatorData | None:
        row = self._execute(
            "error while reading validator",
            f"""
SELECT validator.consensus_address, validator_info.operator_address,
       validator.consensus_pubkey, validator_info.self_delegate_address,
       validator_info.max_rate, validator_info.max_change_rate
FROM validator INNER JOIN validator_info
    ON validator.consensus_address = validator_info.consensus_address
WHERE validator_info.{column} = ?""",
            [value],
        ).fetchone()
        if row is None:
            return None
        return ValidatorData(*row, height=0)

    def get_validator(self, operator_address: str) -> ValidatorData:
        """Return the validator with the given operator address; its height is not read."""
        validator = self._find_validator("operator_address", operator_address)
        if validator is None:
            raise StoreError(f"no validator with validator address {operator_address} could be found")
        return validator

    def get_validators(self) -> list[ValidatorData]:
        """Return every stored validator, ordered by consensus address."""
        rows = self._execute(
            "error while reading validators",
            """
SELECT validator.consensus_address, validator_info.operator_address,
       validator.consensus_pubkey, validator_info.self_delegate_address,
       validator_info.max_rate, validator_info.max_change_rate, validator_info.height
FROM validator INNER JOIN validator_info
    ON validator.consensus_address = validator_info.consensus_address
ORDER BY validator.consensus_address""",
        ).fetchall()
        seen: dict[str, ValidatorData] = {}
        for row in rows:
            seen.setdefault(row[0], ValidatorData(*row))
        return list(seen.values())

    def get_validator_by_self_delegate_address(self, address: str) -> ValidatorData:
        """Return the validator with the given self delegate address."""
        validator = self._find_validator("self_delegate_address", address)
        if validator is None:
            raise StoreError(f"no validator with self delegate address {address} could be found")
        return validator

    # ---------------------------------------------------------------- descriptions

    def save_validator_description(self, description: ValidatorDescription) -> None:
        """Save a description, merging it with the one already stored."""
        consensus_address = self.get_validator_consensus_address(description.operator_address)
        try:
            des = description.description.ensure_length()
        except ValueError as exc:
            raise StoreError(str(exc)) from exc

        avatar_url = description.avatar_url
        existing = self._get_validator_description(consensus_address)
        if existing is not None:
            try:
                des = existing.description.update(des)
            except ValueError as exc:
                raise StoreError(str(exc)) from exc
            if description.avatar_url == DO_NOT_MODIFY:
                avatar_url = existing.avatar_url

        sql = """
INSERT INTO validator_description (
    validator_address, moniker, identity, avatar_url, website, security_contact, details, height
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT (validator_address) DO UPDATE
    SET moniker = excluded.moniker,
        identity = excluded.identity,
        avatar_url = excluded.avatar_url,
        website = excluded.website,
        security_contact = excluded.security_contact,
        details = excluded.details,
        height = excluded.height
WHERE validator_description.height <= excluded.height"""
        params = [
            to_null_string(consensus_address),
            to_null_string(des.moniker),
            to_null_string(des.identity),
            to_null_string(avatar_url),
            to_null_string(des.website),
            to_null_string(des.security_contact),
            to_null_string(des.details),
            description.height,
        ]
        with self.connection:
            self._execute("error while storing validator description", sql, params)

    def _get_validator_description(self, consensus_address: str) -> ValidatorDescription | None:
        try:
            row = self.connection.execute(
                """
SELECT validator_address, moniker, identity, avatar_url, website, security_contact, details, height
FROM validator_description WHERE validator_address = ?""",
                [consensus_address],
            ).fetchone()
        except sqlite3.Error:
            return None
        if row is None:
            return None
        address, moniker, identity, avatar_url, website, security_contact, details, height = row
        return ValidatorDescription(
            operator_address=address,
            description=Description(
                moniker=to_string(moniker),
                identity=to_string(identity),
                website=to_string(website),
                security_contact=to_string(security_contact),
                details=to_string(details),
            ),
            avatar_url=to_string(avatar_url),
            height=height,
        )

    # ----------------------------------------------------------------- commissions

    def save_validator_commission(self, data: ValidatorCommission) -> None:
        """Save a commission update, keeping stored values that the update leaves out."""
        if data.commission is None and data.min_self_delegation is None:
            return
        consensus_address = self.get_validator_consensus_address(data.validator_address)

        commission = ""
        min_self_delegation = ""
        try:
            existing = self.connection.execute(
                "SELECT commission, min_self_delegation FROM validator_commission "
                "WHERE validator_address = ?",
                [consensus_address],
            ).fetchone()
        except sqlite3.Error:
            existing = None
        if existing is not None:
            commission = existing[0] if existing[0] is not None else ""
            min_self_delegation = existing[1] if existing[1] is not None else ""

        if data.commission is not None:
            commission = format_dec(data.commission)
        if data.min_self_delegation is not None:
            min_self_delegation = str(data.min_self_delegation)

        sql = """
INSERT INTO validator_commission (validator_address, commission, min_self_delegation, height)
VALUES (?, ?, ?, ?)
ON CONFLICT (validator_address) DO UPDATE
    SET commission = excluded.commission,
        min_self_delegation = excluded.min_self_delegation,
        height = excluded.height
WHERE validator_commission.height <= excluded.height"""
        with self.connection:
            self._execute(
                "error while storing validator commission",
                sql,
                [consensus_address, commission, min_self_delegation, data.height],
            )

    # ---------------------------------------------------------- powers and statuses

    def save_validators_voting_powers(self, entries: Iterable[ValidatorVotingPower]) -> None:
        """Save voting powers, keeping those of the highest height."""
        entries = list(entries)
        if not entries:
            return
        sql = f"""
INSERT INTO validator_voting_power (validator_address, voting_power, height)
VALUES {_groups(len(entries), 3)}
ON CONFLICT (validator_address) DO UPDATE
    SET voting_power = excluded.voting_power,
        height = excluded.height
WHERE validator_voting_power.height <= excluded.height"""
        params = list(
            chain.from_iterable((e.consensus_address, e.voting_power, e.height) for e in entries)
        )
        with self.connection:
            self._execute("error while storing validators voting power", sql, params)

    def save_validators_statuses(self, statuses: Iterable[ValidatorStatus]) -> None:
        """Save statuses, adding missing validators and keeping the highest height."""
        statuses = list(statuses)
        if not statuses:
            return
        validator_sql = (
            "INSERT INTO validator (consensus_address, consensus_pubkey) "
            f"VALUES {_groups(len(statuses), 2)} ON CONFLICT DO NOTHING"
        )
        status_sql = f"""
INSERT INTO validator_status (validator_address, status, jailed, height)
VALUES {_groups(len(statuses), 4)}
ON CONFLICT (validator_address) DO UPDATE
    SET status = excluded.status,
        jailed = excluded.jailed,
        height = excluded.height
WHERE validator_status.height <= excluded.height"""
        with self.connection:
            self._execute(
                "error while storing validators",
                validator_sql,
                list(chain.from_iterable((s.consensus_address, s.consensus_pubkey) for s in statuses)),
            )
            self._execute(
                "error while storing validators statuses",
                status_sql,
                list(
                    chain.from_iterable(
                        (s.consensus_address, s.status, bool(s.jailed), s.height) for s in statuses
                    )
                ),
            )

    # ---------------------------------------------------------------- double signs

    def _save_double_sign_vote(self, vote: DoubleSignVote) -> int:
        cursor = self._execute(
            "error while storing double sign vote",
            """
INSERT INTO double_sign_vote
    (type, height, round, block_id, validator_address, validator_index, signature)
VALUES (?, ?, ?, ?, ?, ?, ?) ON CONFLICT DO NOTHING""",
            [
                vote.type,
                vote.height,
                vote.round,
                vote.block_id,
                vote.validator_address,
                vote.validator_index,
                vote.signature,
            ],
        )
        if cursor.rowcount == 0 or cursor.lastrowid is None:
            raise StoreError("error while storing double sign vote: vote already stored")
        return cursor.lastrowid

    def save_double_sign_evidence(self, evidence: DoubleSignEvidence) -> None:
        """Save both votes of the evidence and the evidence linking them."""
        with self.connection:
            vote_a = self._save_double_sign_vote(evidence.vote_a)
            vote_b = self._save_double_sign_vote(evidence.vote_b)
            self._execute(
                "error while storing double sign evidence",
                "INSERT INTO double_sign_evidence (height, vote_a_id, vote_b_id) "
                "VALUES (?, ?, ?) ON CONFLICT DO NOTHING",
                [evidence.height, vote_a, vote_b],
            )

    # --------------------------------------------------------------------- modules

    def insert_enable_modules(self, modules: Iterable[str]) -> None:
        """Replace the stored list of enabled modules; an empty list changes nothing."""
        modules = list(modules)
        if not modules:
            return
        with self.connection:
            self._execute("error while deleting modules", "DELETE FROM modules WHERE TRUE")
            self._execute(
                "error while storing modules",
                f"INSERT INTO modules (module_name) VALUES {_groups(len(modules), 1)} "
                "ON CONFLICT DO NOTHING",
                modules,
            )