"""Game configuration tables and the store that serves lookups over them."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field

from .conffile import ConfigError, ConfigFile

log = logging.getLogger(__name__)

DEFAULT_CREATE_CLUB_COST = 10000
FRIENDS_MAXNUM_TYPE = 1


@dataclass
class ClubLevelConfig:
    level: int
    people_max: int = 0
    admin_max: int = 0
    activity_one: int = 0
    activity_two: int = 0
    up_fast: int = 0
    level_day: int = 0


@dataclass
class ClubLevelCoinConfig:
    level: int
    max_fee: int = 0
    min_coin: int = 0
    total_coin: int = 0
    warn_fee: int = 0
    warn_coin: int = 0


@dataclass
class ClubCoinConfig:
    coin_id: int
    diamond: int = 0
    number: int = 0
    extra: int = 0


@dataclass
class SysVipConfig:
    level: int
    permissions: list[int] = field(default_factory=list)
    permission_nums: list[int] = field(default_factory=list)
    describe: str = ""
    price: int = 0
    exp: int = 0


@dataclass
class SysConstConfig:
    name: str
    value: int = 0


@dataclass
class UnionLevelConfig:
    level_id: int
    union_mem: int = 0
    up_level_cost: int = 0


@dataclass
class GeneralConfig:
    value: int
    name: str = ""


@dataclass
class MailTemplate:
    title: str = ""
    content: str = ""


@dataclass
class ConfigService:
    """In-memory source of configuration tables.

    Remote implementations override the methods and raise on failure.
    """

    club_level_data: dict[int, ClubLevelConfig] = field(default_factory=dict)
    club_level_coin_data: dict[int, ClubLevelCoinConfig] = field(default_factory=dict)
    club_coin_data: dict[int, ClubCoinConfig] = field(default_factory=dict)
    sys_vip_data: dict[int, SysVipConfig] = field(default_factory=dict)
    sys_const_data: dict[str, SysConstConfig] = field(default_factory=dict)
    union_level_data: dict[int, UnionLevelConfig] = field(default_factory=dict)
    general_data: dict[int, dict[int, GeneralConfig]] = field(default_factory=dict)

    def club_levels(self) -> dict[int, ClubLevelConfig]:
        return dict(self.club_level_data)

    def club_level_coins(self) -> dict[int, ClubLevelCoinConfig]:
        return dict(self.club_level_coin_data)

    def club_coins(self) -> dict[int, ClubCoinConfig]:
        return dict(self.club_coin_data)

    def sys_vips(self) -> dict[int, SysVipConfig]:
        return dict(self.sys_vip_data)

    def sys_consts(self) -> dict[str, SysConstConfig]:
        return dict(self.sys_const_data)

    def union_levels(self) -> dict[int, UnionLevelConfig]:
        return dict(self.union_level_data)

    def general_configs(self) -> dict[int, dict[int, GeneralConfig]]:
        return {kind: dict(entries) for kind, entries in self.general_data.items()}


def read_mail_templates(conf: ConfigFile) -> dict[int, MailTemplate]:
    """Read the mail templates under ``/Main/mail``, keyed by numeric domain name."""
    templates: dict[int, MailTemplate] = {}
    for domain in conf.domains("/Main/mail"):
        try:
            key = int(domain)
        except ValueError:
            raise ConfigError(f"mail template name is not a number: {domain!r}") from None
        sub = f"/Main/mail/{domain}"
        templates.setdefault(
            key,
            MailTemplate(title=conf.get(sub + "<title>", ""), content=conf.get(sub + "<content>", "")),
        )
    return templates


def read_create_club_cost(conf: ConfigFile) -> int:
    """Return the cost of creating a club, defaulting to 10000."""
    raw = conf.get("/Main<CreateClubCost>", str(DEFAULT_CREATE_CLUB_COST))
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"CreateClubCost is not a number: {raw!r}") from None


def _sorted_values(table: Mapping) -> list:
    return [table[key] for key in sorted(table)]


class ConfigStore:
    """Holds the loaded configuration tables and answers lookups."""

    def __init__(
        self,
        mail_templates: Mapping[int, MailTemplate] | None = None,
        create_club_cost: int = DEFAULT_CREATE_CLUB_COST,
        friends_limit_type: int = FRIENDS_MAXNUM_TYPE,
    ) -> None:
        self.mail_templates: dict[int, MailTemplate] = dict(mail_templates or {})
        self.create_club_cost = create_club_cost
        self.friends_limit_type = friends_limit_type
        self._lock = threading.Lock()
        self._club_levels: dict[int, ClubLevelConfig] = {}
        self._club_level_coins: dict[int, ClubLevelCoinConfig] = {}
        self._max_merchant_level = 0
        self._club_coins: dict[int, ClubCoinConfig] = {}
        self._sys_vips: dict[int, SysVipConfig] = {}
        self._sys_consts: dict[str, SysConstConfig] = {}
        self._union_levels: dict[int, UnionLevelConfig] = {}
        self._general: dict[int, dict[int, GeneralConfig]] = {}

    def _fetch(self, name: str, loader):
        try:
            return loader()
        except Exception:
            log.exception("loading %s failed; keeping previous table", name)
            return None

    def load(self, service: ConfigService) -> None:
        """Fetch every table from ``service``; a table that fails keeps its old contents."""
        with self._lock:
            general = self._fetch("general configs", service.general_configs)
            if general is not None:
                self._general = general
            levels = self._fetch("club levels", service.club_levels)
            if levels is not None:
                self._club_levels = levels
            coins_by_level = self._fetch("club level coins", service.club_level_coins)
            if coins_by_level is not None:
                self._club_level_coins = coins_by_level
                highest = 0
                for key in sorted(coins_by_level):
                    if coins_by_level[key].level > highest:
                        highest = key
                self._max_merchant_level = highest
            coins = self._fetch("club coins", service.club_coins)
            if coins is not None:
                self._club_coins = coins
            vips = self._fetch("vip levels", service.sys_vips)
            if vips is not None:
                self._sys_vips = vips
            consts = self._fetch("constants", service.sys_consts)
            if consts is not None:
                self._sys_consts = consts
            unions = self._fetch("union levels", service.union_levels)
            if unions is not None:
                self._union_levels = unions

    @staticmethod
    def _lookup(table: Mapping, key, what: str):
        try:
            return table[key]
        except KeyError:
            raise KeyError(f"no {what} config for {key!r}") from None

    def club_level(self, level: int) -> ClubLevelConfig:
        return self._lookup(self._club_levels, level, "club level")

    def _reached(self, exp: int, threshold) -> ClubLevelConfig | None:
        reached = None
        for config in _sorted_values(self._club_levels):
            if threshold(config) > exp:
                break
            reached = config
        return reached

    def upgrade_level(self, exp: int) -> ClubLevelConfig | None:
        """Return the highest level whose upgrade threshold ``exp`` reaches, if any."""
        return self._reached(exp, lambda config: config.activity_one)

    def downgrade_level(self, exp: int) -> ClubLevelConfig | None:
        """Return the highest level whose keep threshold ``exp`` reaches, if any."""
        return self._reached(exp, lambda config: config.activity_two)

    def club_level_coin(self, level: int) -> ClubLevelCoinConfig:
        return self._lookup(self._club_level_coins, level, "club merchant level")

    def max_merchant_level(self) -> int:
        return self._max_merchant_level

    def club_coin(self, coin_id: int) -> ClubCoinConfig:
        return self._lookup(self._club_coins, coin_id, "club coin")

    def sys_vip(self, level: int) -> SysVipConfig:
        return self._lookup(self._sys_vips, level, "vip level")

    def sys_const(self, name: str) -> SysConstConfig:
        return self._lookup(self._sys_consts, name, "constant")

    def union_level(self, level: int) -> UnionLevelConfig:
        return self._lookup(self._union_levels, level, "union level")

    def max_friends_count(self) -> int:
        """Return the friend limit from the general configs, or 0 if unset or invalid."""
        entries = self._general.get(self.friends_limit_type)
        if entries is None or len(entries) != 1:
            log.error("friend limit config missing or ambiguous, type %s", self.friends_limit_type)
            return 0
        value = next(iter(entries.values())).value
        if value < 0:
            log.error("friend limit config negative: %s", value)
            return 0
        return value

    def describe(self) -> str:
        """Return a readable dump of every loaded table."""
        parts: list[str] = []
        for key, mail in sorted(self.mail_templates.items()):
            parts.append(f"type:{key}\t\ntitle:{mail.title}\t\ncontent:{mail.content}\t\n")
        for key, c in sorted(self._club_levels.items()):
            parts.append(
                f"level:{key}\t\npeopleMax:{c.people_max}\t\nadminMax:{c.admin_max}\t\n"
                f"activityOne:{c.activity_one}\t\nactivityTwo:{c.activity_two}\t\n"
                f"upFast:{c.up_fast}\t\nlevelDay:{c.level_day}\t\n"
            )
        for _, c in sorted(self._club_level_coins.items()):
            parts.append(
                f"level:{c.level}\t\nmaxFee:{c.max_fee}\t\nminCoin:{c.min_coin}\t\n"
                f"totalCoin:{c.total_coin}\t\nwarnFee:{c.warn_fee}\t\nwarnCoin:{c.warn_coin}\t\n"
            )
        for key, c in sorted(self._club_coins.items()):
            parts.append(f"id:{key}\t\ndiamond:{c.diamond}\t\nnumber:{c.number}\t\nextra:{c.extra}\t\n")
        for key, c in sorted(self._sys_vips.items()):
            permissions = "".join(f"{p} " for p in c.permissions)
            nums = "".join(f"{n} " for n in c.permission_nums)
            parts.append(
                f"level:{key}\t\npermissions:[ {permissions}]\t\npermissionNums:[ {nums}]\t\n"
                f"describe:{c.describe}\t\nprice:{c.price}\t\nexp:{c.exp}\t\n"
            )
        for name, c in sorted(self._sys_consts.items()):
            parts.append(f"name:{name}\t\nvalue:{c.value}\t\n")
        for _, c in sorted(self._union_levels.items()):
            parts.append(
                f"level_id:{c.level_id}\t\nunion_mem:{c.union_mem}\t\nup_level_cost:{c.up_level_cost}\t\n"
            )
        return "".join(parts)