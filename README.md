# socialhub

The core of a game's social service. It covers club, merchant, VIP and union
configuration, friend gifts, per-user remarks, chat bans, account records and
user lookups. Peer services and the storage backend sit behind small
interfaces that you supply. The package also ships in-memory versions of the
data agent and the configuration service.

## Installing

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

### `socialhub.conffile`

This module reads the hierarchical configuration format. Domains are written
as nested `<Name> ... </Name>` blocks. Parameters inside them are
`key = value` lines.

- `parse_config(text)` and `load_config(path)` return a `ConfigFile`.
- `ConfigFile.get(path, default)` reads a value addressed as
  `/Main/Interface/HallServer<ProxyObj>`. A missing value gives `default`.
  If there is no default, it raises `ConfigError`.
- `ConfigFile.domains(path)` lists the sub-domains of a domain, in file order.
- Malformed text raises `ConfigError`.

### `socialhub.dbtypes`

This module holds the request and response dataclasses for the data agent:

- `Field`, `ClusterInfo`, `ReadDataRequest`, `ReadDataResponse`,
  `WriteDataRequest`, `WriteDataResponse`, `Condition`, `OrderBy`,
  `TableReadRequest` and `TableReadResponse`.
- The enums `RedisType`, `DataKind`, `OperateType`, `QueryType`,
  `SubOperateType`, `ColumnType`, `FragmentFactor` and `ConditionKind`.

It also has three helpers:

- `redis_key(redis_type, kind, suffix)` builds keys of the form `type:kind:suffix`.
- `string_hash(text)` gives the 64-bit hash used to shard string keys.
- `rows_as_dicts(rows)` turns rows of fields into dicts.

`DBAgent` is an in-memory data agent. It has three methods:

- `redis_read` reads cache entries, including list ranges.
- `redis_write` handles insert, write and replace-in-list.
- `read` selects from tables, with conditions and descending or ascending ordering.

### `socialhub.timefmt`

- `format_log_time()` and `format_custom_time(timestamp)` format local time as
  `YYYY-MM-DD HH:MM:SS`.
- `parse_time_tick(text)` parses that layout back to a Unix timestamp. Empty or
  bad text gives 0.
- `date_number(timestamp)` gives a `YYYYMMDD` integer.
- `split_ints(text)` splits `|`-separated integers.
- `random_between(maximum, minimum)` picks a random integer in the range. It
  raises `ValueError` on an empty range.

### `socialhub.configs`

This module has typed records for the configuration tables:
`ClubLevelConfig`, `ClubLevelCoinConfig`, `ClubCoinConfig`, `SysVipConfig`,
`SysConstConfig`, `UnionLevelConfig`, `GeneralConfig` and `MailTemplate`.

`ConfigService` is an in-memory source of those tables.

`ConfigStore` holds the loaded tables and answers lookups:

- `load(service)` fetches every table. A table that fails to load keeps its
  previous contents.
- Lookups by key: `club_level`, `club_level_coin`, `club_coin`, `sys_vip`,
  `sys_const` and `union_level`. An unknown key raises `KeyError`.
- `upgrade_level(exp)` and `downgrade_level(exp)` return the highest level
  that the given activity reaches, or `None`.
- `max_merchant_level()` and `max_friends_count()` return single values.
- `describe()` gives a readable dump of all tables.

Two functions read values from a parsed config file:

- `read_mail_templates(conf)` reads the mail templates under `/Main/mail`.
- `read_create_club_cost(conf)` reads `/Main<CreateClubCost>`. The default is 10000.

### `socialhub.services`

- `read_endpoints(conf)` reads the peer endpoints under `/Main/Interface` into
  a `ServiceEndpoints`.
- `ServiceHub(endpoints, connector, mail_templates)` connects to each peer
  lazily, through your `connector`. It routes calls by user id or by string
  key, so the same key always reaches the same node.
- The hub's operations are `push`, `send_club_mail`, `modify_wealth`,
  `modify_wallet_balance`, `wallet_balance`, `gen_message` and `log_to_db`.
- `send_club_mail` fills the template's `&` placeholders in order, using
  `render_mail(content, params)`.
- A peer with no endpoint, or with no reachable node, raises `ServiceUnavailable`.

### `socialhub.users`

These functions look up users through the hall service:

- `get_name`, `get_vip_level` and `get_profile`. `get_profile` returns a
  `UserProfile`.
- `is_inner_account` and `is_forbidden`.

`get_gateway_address` reads an online user's gateway from the data agent.

Failures raise `UserLookupError`.

### `socialhub.processor`

`Processor(agents, clock)` runs the storage operations against the data agent
node that `agents(key)` returns.

- Chat extras: `select_chat_ext`, `add_chat_ext` and `update_chat_ext`.
- Friend gifts: `give_chips_time`.
- Accounts: `select_user_account`, which returns a `UserAccount`.
- Remarks: `replace_remark`, `add_remark`, `delete_remark`, `user_remark` and
  `remark_content`.
- Tables: `read_table`.
- Chat bans: `forbid_chat` and `forbidden_state`.

Storage failures raise `StorageError`. Invalid user ids raise `ValueError`.

## Example

```python
from socialhub.conffile import parse_config
from socialhub.configs import read_create_club_cost
from socialhub.dbtypes import DBAgent
from socialhub.processor import Processor

conf = parse_config("<Main>\n  CreateClubCost = 5000\n</Main>\n")
print(read_create_club_cost(conf))  # 5000

agent = DBAgent()
processor = Processor(lambda key: agent)
processor.add_remark(1001, 2002, "teammate")
print(processor.user_remark(1001, 2002))  # teammate
```

## What it does not do

This package is a library. It has no command and no server process.

It has no network transport for peer services. You pass `ServiceHub` a
connector that returns the node objects, and the hall, push, order, global and
log nodes must provide the methods the hub calls.

`DBAgent` keeps everything in memory. Nothing is stored persistently.