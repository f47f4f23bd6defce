from decimal import Decimal

import pytest

from bdindex.basic_rows import ModuleRow, module_rows
from bdindex.validator_rows import (
    DoubleSignEvidenceRow,
    DoubleSignVoteRow,
    ValidatorCommissionRow,
    ValidatorData,
    ValidatorDescriptionRow,
    ValidatorInfoRow,
    ValidatorRow,
    ValidatorStatusRow,
    ValidatorVotingPowerRow,
)
from bdindex.validator_store import (
    DO_NOT_MODIFY,
    Description,
    DoubleSignEvidence,
    DoubleSignVote,
    StoreError,
    ValidatorCommission,
    ValidatorDescription,
    ValidatorStatus,
    ValidatorStore,
    ValidatorVotingPower,
)

CONS_1 = "cosmosvalcons1qqqqrezrl53hujmpdch6d805ac75n220ku09rl"
OPER_1 = "cosmosvaloper1rcp29q3hpd246n6qak7jluqep4v006cdsc2kkl"
PUB_1 = "cosmosvalconspub1zcjduepq7mft6gfls57a0a42d7uhx656cckhfvtrlmw744jv4q0mvlv0dypskehfk8"
SELF_1 = "cosmos1z4hfrxvlgl4s8u4n5ngjcw8kdqrcv43599amxs"

CONS_2 = "cosmosvalcons1qq92t2l4jz5pt67tmts8ptl4p0jhr6utx5xa8y"
OPER_2 = "cosmosvaloper1000ya26q2cmh399q4c5aaacd9lmmdqp90kw2jn"
PUB_2 = "cosmosvalconspub1zcjduepqe93asg05nlnj30ej2pe3r8rkeryyuflhtfw3clqjphxn4j3u27msrr63nk"
SELF_2 = "cosmos184ma3twcfjqef6k95ne8w2hk80x2kah7vcwy4a"

PREVOTE_TYPE = 1


@pytest.fixture
def store():
    with ValidatorStore.open(":memory:") as opened:
        yield opened


def _add_validator(store, cons, oper, pub, self_address=SELF_1):
    validator = ValidatorData(cons, oper, pub, self_address, "1", "2", 1)
    store.save_validator_data(validator)
    return validator


def _rows(store, sql, row_type):
    return [row_type(*row) for row in store.connection.execute(sql).fetchall()]


def _info_rows(store):
    return _rows(
        store,
        "SELECT consensus_address, operator_address, self_delegate_address, max_rate, "
        "max_change_rate, height FROM validator_info ORDER BY rowid",
        ValidatorInfoRow,
    )


def _description_rows(store):
    return _rows(
        store,
        "SELECT validator_address, moniker, identity, avatar_url, website, security_contact, "
        "details, height FROM validator_description ORDER BY rowid",
        ValidatorDescriptionRow,
    )


def _commission_rows(store):
    return _rows(
        store,
        "SELECT validator_address, commission, min_self_delegation, height "
        "FROM validator_commission ORDER BY rowid",
        ValidatorCommissionRow,
    )


def test_save_validator_twice():
    with ValidatorStore.open(":memory:") as store:
        validator = ValidatorData(CONS_1, OPER_1, PUB_1, SELF_1, "1", "2", 1)
        store.save_validator_data(validator)
        store.save_validator_data(validator)

        assert _rows(
            store, "SELECT consensus_address, consensus_pubkey FROM validator", ValidatorRow
        ) == [ValidatorRow(CONS_1, PUB_1)]
        assert _info_rows(store) == [
            ValidatorInfoRow(
                CONS_1, OPER_1, SELF_1, "1.000000000000000000", "2.000000000000000000", 1
            )
        ]


def test_save_validators_and_update(store):
    validators = [
        ValidatorData(CONS_1, OPER_1, PUB_1, SELF_1, "1", "2", 10),
        ValidatorData(CONS_2, OPER_2, PUB_2, SELF_2, "1", "2", 10),
    ]
    store.save_validators_data(validators)

    validator_rows = _rows(
        store,
        "SELECT consensus_address, consensus_pubkey FROM validator ORDER BY rowid",
        ValidatorRow,
    )
    assert validator_rows == [ValidatorRow(CONS_1, PUB_1), ValidatorRow(CONS_2, PUB_2)]
    assert _info_rows(store) == [
        ValidatorInfoRow(CONS_1, OPER_1, SELF_1, "1.000000000000000000", "2.000000000000000000", 10),
        ValidatorInfoRow(CONS_2, OPER_2, SELF_2, "1.000000000000000000", "2.000000000000000000", 10),
    ]

    store.save_validators_data(
        [
            ValidatorData(CONS_1, OPER_1, PUB_1, SELF_1, "100", "200", 9),
            ValidatorData(CONS_2, OPER_2, PUB_2, SELF_2, "10", "5", 11),
        ]
    )
    assert len(_rows(store, "SELECT consensus_address, consensus_pubkey FROM validator", ValidatorRow)) == 2
    assert _info_rows(store) == [
        ValidatorInfoRow(CONS_1, OPER_1, SELF_1, "1.000000000000000000", "2.000000000000000000", 10),
        ValidatorInfoRow(CONS_2, OPER_2, SELF_2, "10.000000000000000000", "5.000000000000000000", 11),
    ]


def test_save_validators_empty_stores_nothing(store):
    store.save_validators_data([])
    assert store.connection.execute("SELECT COUNT(*) FROM validator").fetchone()[0] == 0


def test_get_validator(store):
    store.connection.execute("INSERT INTO account (address) VALUES (?)", [SELF_2])
    store.connection.execute(
        "INSERT INTO validator (consensus_address, consensus_pubkey) VALUES (?, ?)", [CONS_1, PUB_1]
    )
    store.connection.execute(
        "INSERT INTO validator_info (consensus_address, operator_address, self_delegate_address, "
        "max_change_rate, max_rate, height) VALUES (?, ?, ?, '2', '1', 1)",
        [CONS_1, OPER_1, SELF_2],
    )

    validator = store.get_validator(OPER_1)
    assert validator.consensus_address == CONS_1
    assert validator.operator_address == OPER_1
    assert validator.consensus_pubkey == PUB_1
    assert validator.self_delegate_address == SELF_2
    assert validator.max_change_rate_dec() == Decimal(2)
    assert validator.max_rate_dec() == Decimal(1)


def test_get_validator_missing(store):
    with pytest.raises(StoreError, match="no validator with validator address"):
        store.get_validator(OPER_1)


def test_get_validators(store):
    store.connection.executemany("INSERT INTO account (address) VALUES (?)", [(SELF_1,), (SELF_2,)])
    store.connection.executemany(
        "INSERT INTO validator (consensus_address, consensus_pubkey) VALUES (?, ?)",
        [(CONS_1, PUB_1), (CONS_2, PUB_2)],
    )
    store.connection.executemany(
        "INSERT INTO validator_info (consensus_address, operator_address, self_delegate_address, "
        "max_rate, max_change_rate, height) VALUES (?, ?, ?, '1', '2', 1)",
        [(CONS_1, OPER_1, SELF_1), (CONS_2, OPER_2, SELF_2)],
    )

    assert store.get_validators() == [
        ValidatorData(CONS_2, OPER_2, PUB_2, SELF_2, "1", "2", 1),
        ValidatorData(CONS_1, OPER_1, PUB_1, SELF_1, "1", "2", 1),
    ]


def test_address_lookups(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1, SELF_2)
    assert store.get_validator_consensus_address(OPER_1) == CONS_1
    assert store.get_validator_operator_address(CONS_1) == OPER_1
    assert store.get_validator_by_self_delegate_address(SELF_2).operator_address == OPER_1
    with pytest.raises(StoreError, match="cannot find the consensus address"):
        store.get_validator_consensus_address(OPER_2)
    with pytest.raises(StoreError, match="cannot find the operator address"):
        store.get_validator_operator_address(CONS_2)
    with pytest.raises(StoreError, match="self delegate address"):
        store.get_validator_by_self_delegate_address(SELF_1)


def test_save_validator_description(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1)

    store.save_validator_description(
        ValidatorDescription(
            OPER_1,
            Description("moniker", "identity", "", "securityContact", "details"),
            "avatar-url",
            10,
        )
    )
    expected = [
        ValidatorDescriptionRow.from_strings(
            CONS_1, "moniker", "identity", "avatar-url", "", "securityContact", "details", 10
        )
    ]
    assert _description_rows(store) == expected

    # Lower height leaves the row untouched
    store.save_validator_description(
        ValidatorDescription(OPER_1, Description("moniker"), "lower-avatar-url", 9)
    )
    assert _description_rows(store) == expected

    # Same height replaces it
    store.save_validator_description(
        ValidatorDescription(OPER_1, Description("moniker"), "new-avatar-url", 10)
    )
    rows = _description_rows(store)
    assert rows == [
        ValidatorDescriptionRow.from_strings(CONS_1, "moniker", "", "new-avatar-url", "", "", "", 10)
    ]
    assert rows[0].avatar_url == "new-avatar-url"

    # Higher height replaces it
    store.save_validator_description(
        ValidatorDescription(
            OPER_1,
            Description("moniker", "higher-identity", "higher-website"),
            "higher-avatar-url",
            11,
        )
    )
    assert _description_rows(store) == [
        ValidatorDescriptionRow.from_strings(
            CONS_1, "moniker", "higher-identity", "higher-avatar-url", "higher-website", "", "", 11
        )
    ]


def test_description_do_not_modify_keeps_existing(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1)
    store.save_validator_description(
        ValidatorDescription(OPER_1, Description("moniker", "identity"), "avatar-url", 10)
    )
    store.save_validator_description(
        ValidatorDescription(
            OPER_1,
            Description("renamed", DO_NOT_MODIFY, DO_NOT_MODIFY, DO_NOT_MODIFY, DO_NOT_MODIFY),
            DO_NOT_MODIFY,
            11,
        )
    )
    rows = _description_rows(store)
    assert rows == [
        ValidatorDescriptionRow.from_strings(CONS_1, "renamed", "identity", "", "", "", "", 11)
    ]
    assert rows[0].avatar_url == "avatar-url"


def test_description_unknown_validator(store):
    with pytest.raises(StoreError):
        store.save_validator_description(
            ValidatorDescription(OPER_1, Description("moniker"), "", 1)
        )


def test_description_length_limits():
    assert Description("a" * 70).ensure_length() == Description("a" * 70)
    with pytest.raises(ValueError, match="moniker"):
        Description("a" * 71).ensure_length()
    with pytest.raises(ValueError, match="details"):
        Description(details="d" * 281).ensure_length()


def test_description_update():
    base = Description("moniker", "identity", "website", "contact", "details")
    updated = base.update(Description(DO_NOT_MODIFY, "", "new-site", DO_NOT_MODIFY, ""))
    assert updated == Description("moniker", "", "new-site", "contact", "")


def test_save_validator_commission(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1)

    store.save_validator_commission(
        ValidatorCommission(OPER_1, Decimal("0.011"), 12, 10)
    )
    expected = [ValidatorCommissionRow.from_strings(CONS_1, "0.011000000000000000", "12", 10)]
    assert _commission_rows(store) == expected

    store.save_validator_commission(ValidatorCommission(OPER_1, Decimal("0.050"), 100, 9))
    assert _commission_rows(store) == expected

    store.save_validator_commission(ValidatorCommission(OPER_1, Decimal("0.050"), 100, 10))
    assert _commission_rows(store) == [
        ValidatorCommissionRow.from_strings(CONS_1, "0.050000000000000000", "100", 10)
    ]

    store.save_validator_commission(ValidatorCommission(OPER_1, Decimal("0.70"), 200, 11))
    assert _commission_rows(store) == [
        ValidatorCommissionRow.from_strings(CONS_1, "0.700000000000000000", "200", 11)
    ]


def test_commission_partial_update_keeps_other_value(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1)
    store.save_validator_commission(ValidatorCommission(OPER_1, Decimal("0.1"), 5, 10))
    store.save_validator_commission(ValidatorCommission(OPER_1, None, 7, 11))
    assert _commission_rows(store) == [
        ValidatorCommissionRow.from_strings(CONS_1, "0.100000000000000000", "7", 11)
    ]


def test_commission_without_values_is_ignored(store):
    store.save_validator_commission(ValidatorCommission(OPER_2, None, None, 1))
    assert _commission_rows(store) == []


def test_save_validators_voting_powers(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1)
    _add_validator(store, CONS_2, OPER_2, PUB_2)

    store.save_validators_voting_powers(
        [ValidatorVotingPower(CONS_1, 1000, 10), ValidatorVotingPower(CONS_2, 2000, 10)]
    )
    sql = (
        "SELECT validator_address, voting_power, height FROM validator_voting_power ORDER BY rowid"
    )
    assert _rows(store, sql, ValidatorVotingPowerRow) == [
        ValidatorVotingPowerRow(CONS_1, 1000, 10),
        ValidatorVotingPowerRow(CONS_2, 2000, 10),
    ]

    store.save_validators_voting_powers(
        [ValidatorVotingPower(CONS_1, 5, 9), ValidatorVotingPower(CONS_2, 10, 11)]
    )
    assert _rows(store, sql, ValidatorVotingPowerRow) == [
        ValidatorVotingPowerRow(CONS_1, 1000, 10),
        ValidatorVotingPowerRow(CONS_2, 10, 11),
    ]


def test_save_validator_statuses(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1)
    _add_validator(store, CONS_2, OPER_2, PUB_2)

    store.save_validators_statuses(
        [
            ValidatorStatus(CONS_1, PUB_1, 1, False, 10),
            ValidatorStatus(CONS_2, PUB_2, 2, True, 10),
        ]
    )
    sql = (
        "SELECT status, jailed, validator_address, height FROM validator_status ORDER BY rowid"
    )

    def stored():
        return [
            ValidatorStatusRow(status, bool(jailed), address, height)
            for status, jailed, address, height in store.connection.execute(sql)
        ]

    assert stored() == [
        ValidatorStatusRow(1, False, CONS_1, 10),
        ValidatorStatusRow(2, True, CONS_2, 10),
    ]

    store.save_validators_statuses(
        [
            ValidatorStatus(CONS_1, PUB_1, 3, True, 9),
            ValidatorStatus(CONS_2, PUB_2, 3, True, 11),
        ]
    )
    assert stored() == [
        ValidatorStatusRow(1, False, CONS_1, 10),
        ValidatorStatusRow(3, True, CONS_2, 11),
    ]


def test_save_double_sign_evidence(store):
    _add_validator(store, CONS_1, OPER_1, PUB_1)
    vote_a = DoubleSignVote(
        PREVOTE_TYPE,
        10,
        1,
        "A42C9492F5DE01BFA6117137102C3EF909F1A46C2F56915F542D12AC2D0A5BCA",
        CONS_1,
        1,
        "1qwPQjPrc7DH7+f6YAE3fOkq6phDAJ60dEyhmcZ7dx2ZgGvi9DbVLsn4leYqRNA/63ZeeH5kVly8zI1jCh4iBg==",
    )
    vote_b = DoubleSignVote(
        PREVOTE_TYPE,
        10,
        1,
        "418A20D12F45FC9340BE0CD2EDB0FFA1E4316176B8CE11E123EF6CBED23C8423",
        CONS_1,
        1,
        "A5m7SVuvZ8YNXcUfBKLgkeV+Vy5ea+7rPfzlbkEvHOPPce6B7A2CwOIbCmPSVMKUarUdta+HiyTV+IELaOYyDA==",
    )
    store.save_double_sign_evidence(DoubleSignEvidence(10, vote_a, vote_b))

    assert _rows(
        store, "SELECT height, vote_a_id, vote_b_id FROM double_sign_evidence", DoubleSignEvidenceRow
    ) == [DoubleSignEvidenceRow(10, 1, 2)]
    assert _rows(
        store,
        "SELECT id, type, height, round, block_id, validator_address, validator_index, signature "
        "FROM double_sign_vote ORDER BY id",
        DoubleSignVoteRow,
    ) == [
        DoubleSignVoteRow(1, PREVOTE_TYPE, 10, 1, vote_a.block_id, CONS_1, 1, vote_a.signature),
        DoubleSignVoteRow(2, PREVOTE_TYPE, 10, 1, vote_b.block_id, CONS_1, 1, vote_b.signature),
    ]

    with pytest.raises(StoreError, match="double sign vote"):
        store.save_double_sign_evidence(DoubleSignEvidence(10, vote_a, vote_b))


def test_insert_enable_modules(store):
    modules = ["auth", "bank", "consensus", "distribution", "gov", "mint", "pricefeed", "staking", "supply"]
    store.insert_enable_modules(modules)
    sql = "SELECT module_name FROM modules ORDER BY rowid"
    assert _rows(store, sql, ModuleRow) == module_rows(modules)

    store.insert_enable_modules(["bank"])
    assert _rows(store, sql, ModuleRow) == [ModuleRow("bank")]

    store.insert_enable_modules([])
    assert _rows(store, sql, ModuleRow) == [ModuleRow("bank")]