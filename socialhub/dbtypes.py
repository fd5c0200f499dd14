"""Request and response types for the data agent, and an in-memory agent.

Cache keys have the form ``<redis type>:<data kind>:<suffix>``. Cache
entries are plain values/hashes or lists of rows; tables are lists of rows
queried with conditions and ordering.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

_ERROR = -1


class RedisType(enum.IntEnum):
    STRING = 0
    HASH = 1
    LIST = 2


class DataKind(enum.IntEnum):
    USER_ACCOUNT = 20
    USER_STATE_ONLINE = 23
    FRIEND_INFO = 30
    CHAT_EXT_INFO = 49
    USER_REMARK = 52
    USER_FORBID_CHAT = 53


class OperateType(enum.IntEnum):
    READ = 0
    INSERT = 1
    WRITE = 2


class QueryType(enum.IntEnum):
    SELECT = 0
    REPLACE = 1


class SubOperateType(enum.IntEnum):
    NONE = 0
    LIST_RANGE = 1


class ColumnType(enum.IntEnum):
    INT = 0
    BIGINT = 1
    STRING = 2


class FragmentFactor(enum.IntEnum):
    USER_ID = 0
    STRING = 1


class ConditionKind(enum.IntEnum):
    EQ = 0
    NE = 1
    GT = 2
    LT = 3
    GE = 4
    LE = 5


@dataclass
class Field:
    name: str
    value: str = ""
    col_type: ColumnType = ColumnType.STRING


@dataclass
class ClusterInfo:
    factor_type: FragmentFactor = FragmentFactor.USER_ID
    factor: int = 0
    business: str = "property"


@dataclass
class ReadDataRequest:
    key_name: str
    fields: list[str] = field(default_factory=list)
    operate_type: OperateType = OperateType.READ
    cluster: ClusterInfo = field(default_factory=ClusterInfo)
    query_type: QueryType = QueryType.SELECT
    sub_operate: SubOperateType = SubOperateType.NONE
    start: int = 0
    end: int = -1


@dataclass
class ReadDataResponse:
    result: int = 0
    rows: list[list[Field]] = field(default_factory=list)


@dataclass
class WriteDataRequest:
    key_name: str
    fields: list[Field] = field(default_factory=list)
    operate_type: OperateType = OperateType.WRITE
    cluster: ClusterInfo = field(default_factory=ClusterInfo)
    query_type: QueryType = QueryType.SELECT


@dataclass
class WriteDataResponse:
    result: int = 0


@dataclass
class Condition:
    column: str
    value: str
    kind: ConditionKind = ConditionKind.EQ
    col_type: ColumnType = ColumnType.STRING


@dataclass
class OrderBy:
    column: str
    descending: bool = True


@dataclass
class TableReadRequest:
    table: str
    columns: list[str] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)
    order_by: list[OrderBy] = field(default_factory=list)
    query_type: QueryType = QueryType.SELECT


@dataclass
class TableReadResponse:
    result: int = 0
    records: list[list[Field]] = field(default_factory=list)


def redis_key(redis_type: RedisType, kind: DataKind, suffix: object) -> str:
    """Build a cache key ``<type>:<kind>:<suffix>``."""
    return f"{int(redis_type)}:{int(kind)}:{suffix}"


def string_hash(text: str) -> int:
    """Hash a string the way the cluster shards string keys (64-bit)."""
    value = 0
    for byte in text.encode("utf-8"):
        signed = byte - 256 if byte > 127 else byte
        value = (5 * value + signed) & 0xFFFFFFFFFFFFFFFF
    return value


def rows_as_dicts(rows: Iterable[Iterable[Field]]) -> list[dict[str, str]]:
    """Turn rows of fields into dicts; the first field of a name wins."""
    result = []
    for row in rows:
        mapping: dict[str, str] = {}
        for item in row:
            mapping.setdefault(item.name, item.value)
        result.append(mapping)
    return result


def _key_type(key: str) -> RedisType | None:
    head, _, _ = key.partition(":")
    try:
        return RedisType(int(head))
    except ValueError:
        return None


def _project(entry: Mapping[str, str], columns: Sequence[str]) -> list[Field]:
    if not columns:
        return [Field(name, value) for name, value in entry.items()]
    return [Field(name, entry[name]) for name in columns if name in entry]


def _list_range(items: list, start: int, end: int) -> list:
    size = len(items)
    if start < 0:
        start = max(start + size, 0)
    if end < 0:
        end += size
    end = min(end, size - 1)
    if start > end:
        return []
    return items[start : end + 1]


def _ordered(value: str) -> tuple[int, int | str]:
    try:
        return (0, int(value))
    except ValueError:
        return (1, value)


def _compare(left: str, right: str) -> int:
    a, b = _ordered(left), _ordered(right)
    if a[0] != b[0]:
        a, b = (1, left), (1, right)
    return (a > b) - (a < b)


_MATCHERS = {
    ConditionKind.EQ: lambda c: c == 0,
    ConditionKind.NE: lambda c: c != 0,
    ConditionKind.GT: lambda c: c > 0,
    ConditionKind.LT: lambda c: c < 0,
    ConditionKind.GE: lambda c: c >= 0,
    ConditionKind.LE: lambda c: c <= 0,
}


def _matches(row: Mapping[str, str], condition: Condition) -> bool:
    if condition.column not in row:
        return False
    return _MATCHERS[condition.kind](_compare(row[condition.column], condition.value))


class DBAgent:
    """In-memory data agent holding cache entries and tables.

    List writes with :attr:`QueryType.REPLACE` replace the entry whose first
    two written columns match; otherwise the row is appended.
    """

    def __init__(self, tables: Mapping[str, Iterable[Mapping[str, str]]] | None = None) -> None:
        self._values: dict[str, dict[str, str]] = {}
        self._lists: dict[str, list[dict[str, str]]] = {}
        self.tables: dict[str, list[dict[str, str]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def redis_read(self, request: ReadDataRequest) -> ReadDataResponse:
        """Read a cache entry; a missing key yields no rows."""
        if request.operate_type is not OperateType.READ:
            return ReadDataResponse(result=_ERROR)
        key_type = _key_type(request.key_name)
        if key_type is None:
            return ReadDataResponse(result=_ERROR)
        if key_type is RedisType.LIST:
            entries = self._lists.get(request.key_name, [])
            if request.sub_operate is SubOperateType.LIST_RANGE:
                entries = _list_range(entries, request.start, request.end)
            rows = [_project(entry, request.fields) for entry in entries]
        else:
            stored = self._values.get(request.key_name)
            rows = [] if stored is None else [_project(stored, request.fields)]
        return ReadDataResponse(result=0, rows=rows)

    def redis_write(self, request: WriteDataRequest) -> WriteDataResponse:
        """Insert, update or append a cache entry."""
        if request.operate_type not in (OperateType.INSERT, OperateType.WRITE):
            return WriteDataResponse(result=_ERROR)
        key_type = _key_type(request.key_name)
        if key_type is None or not request.fields:
            return WriteDataResponse(result=_ERROR)
        values = {item.name: item.value for item in request.fields}
        if key_type is RedisType.LIST:
            entries = self._lists.setdefault(request.key_name, [])
            if request.query_type is QueryType.REPLACE:
                identity = [item.name for item in request.fields[:2]]
                position = next(
                    (
                        index
                        for index, entry in enumerate(entries)
                        if all(entry.get(name) == values[name] for name in identity)
                    ),
                    None,
                )
                if position is not None:
                    entries[position] = values
                    return WriteDataResponse(result=0)
            entries.append(values)
            return WriteDataResponse(result=0)
        existing = self._values.get(request.key_name)
        if existing is None:
            self._values[request.key_name] = values
        elif request.operate_type is OperateType.INSERT:
            return WriteDataResponse(result=_ERROR)
        else:
            existing.update(values)
        return WriteDataResponse(result=0)

    def read(self, request: TableReadRequest) -> TableReadResponse:
        """Select rows of a table with conditions and ordering."""
        if request.query_type is not QueryType.SELECT:
            return TableReadResponse(result=_ERROR)
        rows = [
            row
            for row in self.tables.get(request.table, [])
            if all(_matches(row, condition) for condition in request.conditions)
        ]
        for order in reversed(request.order_by):
            rows.sort(key=lambda row: _ordered(row.get(order.column, "")), reverse=order.descending)
        return TableReadResponse(result=0, records=[_project(row, request.columns) for row in rows])