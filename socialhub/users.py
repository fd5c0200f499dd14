"""Lookups of user data held by the hall service and the data agent."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .dbtypes import ClusterInfo, DataKind, FragmentFactor, ReadDataRequest, RedisType, redis_key

log = logging.getLogger(__name__)


class UserLookupError(Exception):
    """Raised when user data cannot be fetched."""


@dataclass(frozen=True)
class UserProfile:
    nickname: str
    avatar: str
    logout_time: int


def _require(service: Any, what: str) -> Any:
    if service is None:
        raise UserLookupError(f"{what} is not available")
    return service


def _basic(hall: Any, uid: int) -> Any:
    _require(hall, "hall service")
    try:
        return hall.get_user_basic(uid)
    except Exception as exc:
        raise UserLookupError(f"get user basic failed, uid {uid}") from exc


def _account(hall: Any, uid: int) -> Any:
    _require(hall, "hall service")
    try:
        return hall.get_user_account(uid)
    except Exception as exc:
        raise UserLookupError(f"get user account failed, uid {uid}") from exc


def get_gateway_address(db_agent: Any, uid: int) -> str:
    """Return the gateway address of an online user, or ``""`` if none is recorded."""
    _require(db_agent, "data agent")
    request = ReadDataRequest(
        key_name=redis_key(RedisType.HASH, DataKind.USER_STATE_ONLINE, uid),
        fields=["gwaddr", "gwcid"],
        cluster=ClusterInfo(factor_type=FragmentFactor.USER_ID, factor=uid),
    )
    response = db_agent.redis_read(request)
    if response.result != 0:
        raise UserLookupError(f"reading online state failed, uid {uid}, result {response.result}")
    address = ""
    for row in response.rows:
        for item in row:
            if item.name == "gwaddr":
                address = item.value
    return address


def get_name(hall: Any, uid: int) -> str:
    """Return the user's name."""
    return _basic(hall, uid).name


def get_vip_level(hall: Any, uid: int) -> int:
    """Return the user's VIP level."""
    return _basic(hall, uid).vip_level


def get_profile(hall: Any, uid: int) -> UserProfile:
    """Return name, avatar and logout time; an online user's logout time is 0."""
    basic = _basic(hall, uid)
    logout_time = basic.last_logout_time
    if basic.last_login_time > logout_time:
        logout_time = 0
    log.debug(
        "profile uid %s, login %s, logout %s", uid, basic.last_login_time, basic.last_logout_time
    )
    return UserProfile(nickname=basic.name, avatar=basic.head, logout_time=logout_time)


def is_inner_account(hall: Any, uid: int) -> bool:
    """Return True when the account has no bound external id."""
    return not _account(hall, uid).bind_tg_id


def is_forbidden(hall: Any, uid: int) -> bool:
    """Return whether the account is frozen; the account service marks that with ``is_forbidden == 0``."""
    return _account(hall, uid).is_forbidden == 0