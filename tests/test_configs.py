import pytest

from socialhub.conffile import ConfigError, parse_config
from socialhub.configs import (
    FRIENDS_MAXNUM_TYPE,
    ClubCoinConfig,
    ClubLevelCoinConfig,
    ClubLevelConfig,
    ConfigService,
    ConfigStore,
    GeneralConfig,
    MailTemplate,
    SysConstConfig,
    SysVipConfig,
    UnionLevelConfig,
    read_create_club_cost,
    read_mail_templates,
)


def make_service():
    return ConfigService(
        club_level_data={
            1: ClubLevelConfig(1, people_max=50, activity_one=0, activity_two=0),
            2: ClubLevelConfig(2, people_max=100, activity_one=100, activity_two=50),
            3: ClubLevelConfig(3, people_max=200, activity_one=500, activity_two=300),
        },
        club_level_coin_data={
            1: ClubLevelCoinConfig(1, max_fee=10),
            2: ClubLevelCoinConfig(2, max_fee=20),
            4: ClubLevelCoinConfig(4, max_fee=40),
        },
        club_coin_data={7: ClubCoinConfig(7, diamond=30, number=300, extra=5)},
        sys_vip_data={2: SysVipConfig(2, permissions=[1, 3], permission_nums=[5, 6], describe="gold")},
        sys_const_data={"tax": SysConstConfig("tax", 15)},
        union_level_data={1: UnionLevelConfig(1, union_mem=10, up_level_cost=999)},
        general_data={FRIENDS_MAXNUM_TYPE: {1: GeneralConfig(250)}},
    )


@pytest.fixture
def store():
    result = ConfigStore()
    result.load(make_service())
    return result


def test_lookups_return_loaded_entries(store):
    assert store.club_level(2).people_max == 100
    assert store.club_level_coin(4).max_fee == 40
    assert store.club_coin(7).number == 300
    assert store.sys_vip(2).describe == "gold"
    assert store.sys_const("tax").value == 15
    assert store.union_level(1).up_level_cost == 999


def test_missing_club_level_raises(store):
    with pytest.raises(KeyError):
        store.club_level(9)


def test_missing_club_level_coin_raises(store):
    with pytest.raises(KeyError):
        store.club_level_coin(3)


def test_missing_club_coin_raises(store):
    with pytest.raises(KeyError):
        store.club_coin(1)


def test_missing_sys_vip_raises(store):
    with pytest.raises(KeyError):
        store.sys_vip(0)


def test_missing_sys_const_raises(store):
    with pytest.raises(KeyError):
        store.sys_const("missing")


def test_missing_union_level_raises(store):
    with pytest.raises(KeyError):
        store.union_level(5)


def test_upgrade_level_picks_highest_reached(store):
    assert store.upgrade_level(150).level == 2
    assert store.upgrade_level(100).level == 2
    assert store.upgrade_level(10_000).level == 3


def test_downgrade_level_uses_second_threshold(store):
    assert store.downgrade_level(60).level == 2
    assert store.downgrade_level(300).level == 3


def test_level_search_with_nothing_reached():
    service = ConfigService(club_level_data={1: ClubLevelConfig(1, activity_one=10, activity_two=10)})
    store = ConfigStore()
    store.load(service)
    assert store.upgrade_level(5) is None
    assert store.downgrade_level(5) is None


def test_max_merchant_level(store):
    assert store.max_merchant_level() == 4


def test_max_friends_count(store):
    assert store.max_friends_count() == 250


def test_max_friends_count_missing_is_zero():
    store = ConfigStore()
    store.load(ConfigService())
    assert store.max_friends_count() == 0


def test_max_friends_count_ambiguous_is_zero():
    service = ConfigService(general_data={FRIENDS_MAXNUM_TYPE: {1: GeneralConfig(5), 2: GeneralConfig(6)}})
    store = ConfigStore()
    store.load(service)
    assert store.max_friends_count() == 0


def test_max_friends_count_negative_is_zero():
    service = ConfigService(general_data={FRIENDS_MAXNUM_TYPE: {1: GeneralConfig(-3)}})
    store = ConfigStore()
    store.load(service)
    assert store.max_friends_count() == 0


class FailingClubLevels(ConfigService):
    def club_levels(self):
        raise RuntimeError("config service down")


def test_failed_table_keeps_previous_contents(store):
    failing = FailingClubLevels(sys_const_data={"tax": SysConstConfig("tax", 20)})
    store.load(failing)
    assert store.club_level(3).people_max == 200
    assert store.sys_const("tax").value == 20


def test_service_returns_copies():
    service = make_service()
    levels = service.club_levels()
    levels.clear()
    assert len(service.club_levels()) == 3


def test_describe_lists_tables(store):
    text = store.describe()
    assert "level:2\t\npeopleMax:100\t\n" in text
    assert "permissions:[ 1 3 ]\t\n" in text
    assert "name:tax\t\nvalue:15\t\n" in text
    assert "up_level_cost:999\t\n" in text


CONF = """
<Main>
    CreateClubCost = 25000
    <mail>
        <3>
            title = Welcome
            content = Joined club &
        </3>
        <5>
            title = Bye
        </5>
    </mail>
</Main>
"""


def test_read_mail_templates():
    templates = read_mail_templates(parse_config(CONF))
    assert templates == {
        3: MailTemplate(title="Welcome", content="Joined club &"),
        5: MailTemplate(title="Bye", content=""),
    }


def test_read_mail_templates_rejects_non_numeric_name():
    conf = parse_config("<Main>\n<mail>\n<abc>\ntitle = x\n</abc>\n</mail>\n</Main>\n")
    with pytest.raises(ConfigError):
        read_mail_templates(conf)


def test_read_create_club_cost_from_file():
    assert read_create_club_cost(parse_config(CONF)) == 25000


def test_read_create_club_cost_default():
    assert read_create_club_cost(parse_config("<Main>\n</Main>\n")) == 10000


def test_read_create_club_cost_invalid():
    with pytest.raises(ConfigError):
        read_create_club_cost(parse_config("<Main>\nCreateClubCost = lots\n</Main>\n"))


def test_store_keeps_mail_templates_and_cost():
    templates = read_mail_templates(parse_config(CONF))
    store = ConfigStore(templates, read_create_club_cost(parse_config(CONF)))
    assert store.mail_templates[3].title == "Welcome"
    assert store.create_club_cost == 25000
    assert "type:3\t\ntitle:Welcome\t\n" in store.describe()