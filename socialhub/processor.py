"""Storage operations of the social server: chat extras, remarks, chat bans and accounts."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .dbtypes import (
    ClusterInfo,
    ColumnType,
    Condition,
    ConditionKind,
    DataKind,
    Field,
    FragmentFactor,
    OperateType,
    OrderBy,
    QueryType,
    ReadDataRequest,
    RedisType,
    SubOperateType,
    TableReadRequest,
    WriteDataRequest,
    redis_key,
    rows_as_dicts,
    string_hash,
)
from .timefmt import parse_time_tick

log = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_ACCOUNT_COLUMNS = [
    "uid",
    "username",
    "password",
    "safes_password",
    "reg_type",
    "reg_time",
    "reg_ip",
    "reg_device_no",
    "is_robot",
    "agcid",
    "disabled",
    "device_id",
    "device_type",
    "platform",
    "channel_id",
    "area_id",
    "is_forbidden",
    "forbidden_time",
    "bindChannelId",
    "bindOpenId",
    "isinwhitelist",
    "whitelisttime",
    "country_id",
]


class StorageError(Exception):
    """Raised when the data agent fails a read or a write."""


def _to_int(text: str) -> int:
    """Parse the leading integer of ``text``; text without one gives 0."""
    match = _LEADING_INT.match(text or "")
    return int(match.group(1)) if match else 0


@dataclass
class UserAccount:
    uid: int
    user_name: str = ""
    device_id: str = ""
    device_type: str = ""
    platform: int = 0
    channel_id: int = 0
    area_id: int = 0
    is_robot: int = 0
    reg_time: int = 0
    bind_channel_id: int = 0
    bind_open_id: str = ""
    reg_type: int = 0
    is_in_whitelist: int = 0
    whitelist_time: int = 0
    country_id: str = ""


def _encode_info(info: Mapping[str, Any]) -> str:
    payload = json.dumps(dict(info), sort_keys=True, separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def _decode_info(text: str) -> dict[str, Any] | None:
    try:
        decoded = json.loads(base64.b64decode(text, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        log.error("undecodable chat ext content: %r", text)
        return None
    return decoded if isinstance(decoded, dict) else None


class Processor:
    """Runs the server's storage operations against the data agent.

    ``agents`` maps a user id or string key to the data agent node serving it.
    """

    def __init__(self, agents: Callable[[int | str], Any], clock: Callable[[], float] = time.time) -> None:
        self._agents = agents
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def _call(self, key: int | str, method: str, request: Any) -> Any:
        try:
            return getattr(self._agents(key), method)(request)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"data agent {method} failed for {key!r}") from exc

    def _write(self, key: int | str, request: WriteDataRequest, what: str) -> None:
        response = self._call(key, "redis_write", request)
        if response.result != 0:
            raise StorageError(f"{what} failed, result {response.result}")

    # chat extras

    def _chat_ext_request(self, number: str, info: Mapping[str, Any], operate: OperateType) -> WriteDataRequest:
        return WriteDataRequest(
            key_name=redis_key(RedisType.STRING, DataKind.CHAT_EXT_INFO, number),
            fields=[
                Field("transaction_id", number, ColumnType.STRING),
                Field("content", _encode_info(info), ColumnType.STRING),
            ],
            operate_type=operate,
            cluster=ClusterInfo(factor_type=FragmentFactor.STRING, factor=string_hash(number)),
        )

    def select_chat_ext(self, number: str) -> dict[str, Any] | None:
        """Return the chat extra stored under ``number``, or None if none is readable."""
        request = ReadDataRequest(
            key_name=redis_key(RedisType.STRING, DataKind.CHAT_EXT_INFO, number),
            fields=["content"],
            cluster=ClusterInfo(factor_type=FragmentFactor.STRING, factor=string_hash(number)),
        )
        response = self._call(number, "redis_read", request)
        info = None
        for row in response.rows:
            for item in row:
                if item.name == "content":
                    info = _decode_info(item.value)
        return info

    def add_chat_ext(self, number: str, info: Mapping[str, Any]) -> None:
        """Store a new chat extra; an existing one makes this fail."""
        self._write(number, self._chat_ext_request(number, info, OperateType.INSERT), "add chat ext")

    def update_chat_ext(self, number: str, info: Mapping[str, Any]) -> None:
        """Store or overwrite a chat extra."""
        self._write(number, self._chat_ext_request(number, info, OperateType.WRITE), "update chat ext")

    # friends

    def give_chips_time(self, uid: int, friend_uid: int) -> int:
        """Return when ``uid`` last gave chips to ``friend_uid``, or 0 if never."""
        if uid <= 0 or friend_uid <= 0:
            raise ValueError(f"invalid uid {uid} or friend uid {friend_uid}")
        request = ReadDataRequest(
            key_name=redis_key(RedisType.LIST, DataKind.FRIEND_INFO, uid),
            fields=["friend_uid", "give_time"],
            cluster=ClusterInfo(factor_type=FragmentFactor.USER_ID, factor=uid),
            sub_operate=SubOperateType.LIST_RANGE,
            start=0,
            end=-1,
        )
        response = self._call(uid, "redis_read", request)
        if response.result != 0:
            raise StorageError(f"reading friend info failed, result {response.result}")
        for row in response.rows:
            other, given = 0, 0
            for item in row:
                if item.name == "friend_uid":
                    other = _to_int(item.value)
                elif item.name == "give_time":
                    given = parse_time_tick(item.value)
            if other > 0 and given > 0 and other == friend_uid:
                return given
        return 0

    # accounts

    def select_user_account(self, uid: int) -> UserAccount:
        """Return the account record of ``uid``."""
        if uid <= 0:
            raise ValueError(f"invalid uid {uid}")
        request = ReadDataRequest(
            key_name=redis_key(RedisType.HASH, DataKind.USER_ACCOUNT, uid),
            fields=list(_ACCOUNT_COLUMNS),
            cluster=ClusterInfo(factor_type=FragmentFactor.STRING, factor=string_hash(str(uid))),
        )
        response = self._call(uid, "redis_read", request)
        if response.result != 0:
            raise StorageError(f"reading account of {uid} failed, result {response.result}")
        if not response.rows:
            raise LookupError(f"no account for uid {uid}")
        account = UserAccount(uid=uid)
        for row in response.rows:
            for item in row:
                value = item.value
                if item.name == "username":
                    account.user_name = value
                elif item.name == "device_id":
                    account.device_id = value
                elif item.name == "device_type":
                    account.device_type = value
                elif item.name == "platform":
                    account.platform = _to_int(value)
                elif item.name == "channel_id":
                    account.channel_id = _to_int(value)
                elif item.name == "area_id":
                    account.area_id = _to_int(value)
                elif item.name == "is_robot":
                    account.is_robot = _to_int(value)
                elif item.name == "reg_time":
                    account.reg_time = parse_time_tick(value)
                elif item.name == "bindChannelId":
                    account.bind_channel_id = _to_int(value)
                elif item.name == "bindOpenId":
                    account.bind_open_id = value
                elif item.name == "reg_type":
                    account.reg_type = _to_int(value)
                elif item.name == "isinwhitelist":
                    account.is_in_whitelist = _to_int(value)
                elif item.name == "whitelisttime":
                    account.whitelist_time = parse_time_tick(value)
                elif item.name == "country_id":
                    account.country_id = value
        return account

    # remarks

    def replace_remark(self, uid: int, remark_uid: int, content: str, state: int) -> None:
        """Store ``uid``'s remark about ``remark_uid``, replacing an earlier one."""
        request = WriteDataRequest(
            key_name=redis_key(RedisType.LIST, DataKind.USER_REMARK, uid),
            fields=[
                Field("uid", str(uid), ColumnType.BIGINT),
                Field("remark_uid", str(remark_uid), ColumnType.BIGINT),
                Field("state", str(state), ColumnType.INT),
                Field("content", content, ColumnType.STRING),
                Field("log_time", str(self._now()), ColumnType.BIGINT),
            ],
            operate_type=OperateType.WRITE,
            cluster=ClusterInfo(factor_type=FragmentFactor.USER_ID, factor=uid),
            query_type=QueryType.REPLACE,
        )
        self._write(uid, request, "replace remark")

    def user_remark(self, uid: int, remark_uid: int) -> str:
        """Return ``uid``'s cached remark about ``remark_uid``; ``""`` if none or unreadable."""
        request = ReadDataRequest(
            key_name=redis_key(RedisType.LIST, DataKind.USER_REMARK, uid),
            fields=["remark_uid", "state", "content"],
            cluster=ClusterInfo(factor_type=FragmentFactor.USER_ID, factor=uid),
            sub_operate=SubOperateType.LIST_RANGE,
            start=0,
            end=-1,
        )
        try:
            response = self._call(uid, "redis_read", request)
        except StorageError:
            log.exception("reading remarks of %s failed", uid)
            return ""
        if response.result != 0:
            log.error("reading remarks of %s failed, result %s", uid, response.result)
            return ""
        for row in rows_as_dicts(response.rows):
            if _to_int(row.get("remark_uid", "")) == remark_uid:
                return row.get("content", "")
        return ""

    def add_remark(self, uid: int, remark_uid: int, content: str) -> None:
        self.replace_remark(uid, remark_uid, content, 1)

    def delete_remark(self, uid: int, remark_uid: int) -> None:
        self.replace_remark(uid, remark_uid, "", 0)

    def remark_content(self, uid: int, remark_uid: int) -> str:
        """Return the newest active remark from the remark table; ``""`` if none or on failure."""
        try:
            records = self.read_table(
                uid,
                "tb_remark",
                ["remark_uid", "content"],
                [("uid", 0, str(uid)), ("remark_uid", 0, str(remark_uid)), ("state", 0, "1")],
                "log_time",
            )
        except StorageError:
            log.exception("select tb_remark failed")
            return ""
        return records[0].get("content", "") if records else ""

    # tables

    def read_table(
        self,
        uid: int,
        table_name: str,
        columns: Iterable[str],
        conditions: Iterable[Sequence[Any]],
        order_column: str,
    ) -> list[dict[str, str]]:
        """Select ``columns`` of a table.

        ``conditions`` are ``(column, kind, value)`` triples combined with AND;
        entries of another length are skipped. A non-empty ``order_column``
        sorts the rows in descending order.
        """
        parsed = [
            Condition(
                column=str(item[0]),
                value=str(item[2]),
                kind=ConditionKind(_to_int(str(item[1]))),
                col_type=ColumnType.STRING,
            )
            for item in conditions
            if len(item) == 3
        ]
        request = TableReadRequest(
            table=table_name,
            columns=list(columns),
            conditions=parsed,
            order_by=[OrderBy(order_column, descending=True)] if order_column else [],
        )
        response = self._call(uid, "read", request)
        if response.result != 0:
            raise StorageError(f"reading table {table_name} failed, result {response.result}")
        return rows_as_dicts(response.records)

    # chat bans

    def forbid_chat(self, uid: int, forbid_uid: int, is_forbidden: int) -> None:
        """Record whether ``uid`` blocks chat from ``forbid_uid``."""
        request = WriteDataRequest(
            key_name=redis_key(RedisType.LIST, DataKind.USER_FORBID_CHAT, uid),
            fields=[
                Field("uid", str(uid), ColumnType.BIGINT),
                Field("forbit_uid", str(forbid_uid), ColumnType.BIGINT),
                Field("is_forbit", str(int(is_forbidden)), ColumnType.INT),
                Field("log_time", str(self._now()), ColumnType.BIGINT),
            ],
            operate_type=OperateType.WRITE,
            cluster=ClusterInfo(factor_type=FragmentFactor.USER_ID, factor=uid),
            query_type=QueryType.REPLACE,
        )
        self._write(uid, request, "forbid chat")

    def forbidden_state(self, uid: int, forbid_uid: int) -> int:
        """Return the newest chat-ban flag from the ban table; 0 if none or on failure."""
        try:
            records = self.read_table(
                uid,
                "tb_forbitchat",
                ["forbit_uid", "is_forbit"],
                [("uid", 0, str(uid)), ("forbit_uid", 0, str(forbid_uid))],
                "log_time",
            )
        except StorageError:
            log.exception("select tb_forbitchat failed")
            return 0
        for record in records:
            if "is_forbit" in record:
                return _to_int(record["is_forbit"])
        return 0