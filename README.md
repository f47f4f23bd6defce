# bdindex

Building blocks for a blockchain data indexer: typed table rows, coin
encoding for database columns, a validator store backed by SQLite, and a
small JSON action server that answers queries about balances, rewards,
withdraw addresses and commissions.

## What is inside

- `bdindex.coins`: `Coin` (integer amount) and `DecCoin` (`Decimal` amount),
  both checking their denomination and refusing negative amounts, and their
  database forms `DbCoin`, `DbCoins`, `DbDecCoin`, `DbDecCoins`. A single
  coin is written as a composite literal with `to_sql` (`(uatom,100)`) and
  every form is read back from database text with `parse`. Helpers:
  `to_null_string` trims text and turns an empty result into `None`,
  `to_string` does the reverse, `remove_empty` drops empty strings, and
  `format_dec` renders a decimal with exactly 18 fractional digits.
- `bdindex.basic_rows`: `AccountRow`, `DistributionParamsRow`,
  `CommunityPoolRow`, `SupplyRow`, `ModuleRow` and `module_rows(names)`.
- `bdindex.chain_rows`: rows for genesis, consensus, average block time,
  blocks, fee allowances, governance (params, proposals, tallies, votes,
  deposits, snapshots), inflation and mint params, token units, tokens and
  prices, signing info, slashing params, staking params and the staking
  pool. Equality ignores the `one_row_id` marker of single-row tables, a
  proposal's `content` and a token price's `id`.
- `bdindex.validator_rows`: `ValidatorData` and the rows of the validator
  tables. `ValidatorData.max_rate_dec()` and `max_change_rate_dec()` read
  the stored rates, which must be base-10 integers, as `Decimal`s.
  `ValidatorDescriptionRow.from_strings` and
  `ValidatorCommissionRow.from_strings` build rows with empty texts turned
  into `None`.
- `bdindex.batching`: `split_accounts(accounts, params_number)` cuts a list
  into batches that keep one bulk insert under 65535 parameters.
- `bdindex.validator_store`: `ValidatorStore`, described below.
- `bdindex.actions_types`, `bdindex.actions_handlers`,
  `bdindex.actions_worker`, `bdindex.actions_metrics`: the action server,
  described below.

## Storing validators

`ValidatorStore` wraps an `sqlite3` connection. `ValidatorStore.open(path)`
connects and creates the missing tables; a store built on an existing
connection can call `create_schema()` itself. It is a context manager that
closes the connection on exit.

```python
from decimal import Decimal

from bdindex.validator_rows import ValidatorData
from bdindex.validator_store import (
    Description,
    ValidatorCommission,
    ValidatorDescription,
    ValidatorStore,
)

with ValidatorStore.open(":memory:") as store:
    store.save_validator_data(
        ValidatorData(
            "cosmosvalcons1example",
            "cosmosvaloper1example",
            "cosmosvalconspub1example",
            "cosmos1example",
            "1",
            "2",
            10,
        )
    )

    validator = store.get_validator("cosmosvaloper1example")
    print(validator.max_rate_dec())

    store.save_validator_description(
        ValidatorDescription(
            "cosmosvaloper1example", Description(moniker="moniker"), "avatar-url", 10
        )
    )
    store.save_validator_commission(
        ValidatorCommission("cosmosvaloper1example", Decimal("0.05"), 100, 10)
    )

    store.insert_enable_modules(["auth", "bank", "staking"])
```

What the store does:

- `save_validator_data` / `save_validators_data` add the self delegate
  accounts and validators if missing and write the validator info; the
  rates are stored with 18 fractional digits.
- `save_validator_description`, `save_validator_commission`,
  `save_validators_voting_powers` and `save_validators_statuses` only
  replace a stored row when the new height is not lower than the stored
  one. A description field or avatar URL equal to `[do-not-modify]` keeps
  the stored value; a commission update that leaves a value out keeps the
  stored one, and one that leaves both out does nothing.
- `save_validators_statuses` also adds validators that are missing.
- `save_double_sign_evidence` stores both votes and the evidence linking
  them; storing a vote that is already there raises `StoreError`.
- `insert_enable_modules` replaces the list of enabled modules; an empty
  list changes nothing.
- `get_validator_consensus_address`, `get_validator_operator_address`,
  `get_validator`, `get_validator_by_self_delegate_address` and
  `get_validators` read validators back. `get_validator` and
  `get_validator_by_self_delegate_address` do not read the height and
  return `0` for it; `get_validators` returns one validator per consensus
  address, ordered by it.

Looking up an address that is not stored, a description field that is too
long, or a database failure raises `StoreError`.

## Coins in database columns

```python
from bdindex.coins import DbCoins

coins = DbCoins.parse('{"(uatom,100)","(stake,5)"}')
for coin in coins.to_coins():
    print(coin)
```

## Serving actions

A handler takes a `Context` and a `Payload` and returns a response object.
`Context(node, sources)` needs a node with a `latest_height()` method and
an `ActionSources` holding a `BankSource` and a `DistributionSource`; both
sources are protocols you implement.

```python
from bdindex.actions_handlers import (
    account_balance_handler,
    delegation_reward_handler,
    delegator_withdraw_address_handler,
    validator_commission_amount_handler,
)
from bdindex.actions_worker import ActionsConfig, ActionsWorker

worker = ActionsWorker(context)
worker.register_handler("/account_balance", account_balance_handler)
worker.register_handler("/delegation_reward", delegation_reward_handler)
worker.register_handler("/delegator_withdraw_address", delegator_withdraw_address_handler)
worker.register_handler("/validator_commission_amount", validator_commission_amount_handler)

worker.start(ActionsConfig.default().port)
```

A request body looks like
`{"input": {"address": "cosmos1example", "height": 0}}`. A height of zero
(or none) means the node's latest height; the withdraw address and
commission handlers always use the latest height.

`worker.handle(path, body)` runs one request directly and returns the HTTP
status and the response body: `200` with the JSON response, `400` with
`{"message": ...}` when the handler fails, `500` when the body is not a
valid payload, and `404` for a path with no handler. `start(port)` serves
the same over HTTP on every interface until interrupted.

Each action is counted in `bdindex.actions_metrics`: `success_counter`,
`error_counter` and `response_time_buckets` update the in-process
`ACTION_COUNTER`, `ACTION_ERROR_COUNTER` and `ACTION_RESPONSE_TIME`, which
can be read with `Counter.value` and `Histogram.bucket_counts`.

`parse_config(yaml_text)` reads the `actions` section of a YAML document
into an `ActionsConfig` with a `port` and an optional `node` mapping, or
returns `None` when there is no such section. A section without a port
gives port `0`; `ActionsConfig.default()` gives port `3000`.

## What this package does not do

It does not connect to a chain or fetch blocks: there is no indexer loop,
no command-line program, and no ready-made bank or distribution source. The
action server answers only the four queries above, with data from sources
you supply, and the metrics are kept in memory rather than exposed on an
endpoint. Of the database, only the validator tables and the modules table
have a store; the other row types describe tables without saving them.