from types import SimpleNamespace

import pytest

from socialhub.conffile import parse_config
from socialhub.configs import MailTemplate
from socialhub.dbtypes import string_hash
from socialhub.services import (
    ServiceEndpoints,
    ServiceHub,
    ServiceUnavailable,
    read_endpoints,
    render_mail,
)

CONF = """
<Main>
    <Interface>
        <ConfigServer>
            ProxyObj = Social.ConfigServer.ConfigObj
        </ConfigServer>
        <HallServer>
            ProxyObj = Social.HallServer.HallObj
        </HallServer>
    </Interface>
</Main>
"""


class Node:
    def __init__(self, name):
        self.name = name
        self.calls = []

    def __getattr__(self, method):
        def call(*args, **kwargs):
            self.calls.append((method, args, kwargs))
            return 42

        return call


class Connector:
    def __init__(self, size=3):
        self.size = size
        self.calls = []

    def __call__(self, endpoint):
        self.calls.append(endpoint)
        return [Node(f"{endpoint}#{i}") for i in range(self.size)]


ALL = ServiceEndpoints(
    config="cfg", db_agent="db", push="push", hall="hall", global_="glob", log2db="log", order="order"
)


def test_read_endpoints_from_config():
    endpoints = read_endpoints(parse_config(CONF))
    assert endpoints.config == "Social.ConfigServer.ConfigObj"
    assert endpoints.hall == "Social.HallServer.HallObj"
    assert endpoints.order == ""


def test_render_mail_fills_in_order():
    assert render_mail("a & b &", ["x", "y"]) == "a x b y"


def test_render_mail_extra_params_ignored_and_missing_left():
    assert render_mail("only &", ["x", "y"]) == "only x"
    assert render_mail("& and &", ["x"]) == "x and &"


def test_db_agent_routes_by_int_and_string():
    hub = ServiceHub(ALL, Connector())
    assert hub.db_agent(4).name == "db#1"
    assert hub.db_agent("abc") is hub.db_agent(string_hash("abc"))


def test_same_key_same_node_and_connect_once():
    connector = Connector()
    hub = ServiceHub(ALL, connector)
    assert hub.hall_service(10) is hub.hall_service(10)
    assert connector.calls == ["hall"]


def test_missing_endpoint_raises():
    hub = ServiceHub(ServiceEndpoints(), Connector())
    with pytest.raises(ServiceUnavailable):
        hub.config_service()


def test_empty_cluster_is_retried():
    connector = Connector(size=0)
    hub = ServiceHub(ALL, connector)
    with pytest.raises(ServiceUnavailable):
        hub.push_service(1)
    connector.size = 2
    assert hub.push_service(1).name == "push#1"
    assert connector.calls == ["push", "push"]


def test_send_club_mail_uses_template():
    hub = ServiceHub(ALL, Connector(1), {5: MailTemplate(title="Club", content="joined & by &")})
    hub.send_club_mail(7, 2, 5, 900, ["club", "alice"])
    method, _, kwargs = hub.hall_service(7).calls[0]
    assert method == "send_mail_to_user_from_system"
    assert kwargs == {
        "uid": 7,
        "mail_type": 2,
        "title": "Club",
        "content": "joined club by alice",
        "extra": "900",
    }


def test_send_club_mail_unknown_template_is_empty():
    hub = ServiceHub(ALL, Connector(1))
    hub.send_club_mail(7, 2, 99, 1, ["x"])
    _, _, kwargs = hub.hall_service(7).calls[0]
    assert (kwargs["title"], kwargs["content"]) == ("", "")


def test_wallet_balance_and_unavailable():
    hub = ServiceHub(ALL, Connector(1))
    assert hub.wallet_balance(3) == 42
    assert ServiceHub(ServiceEndpoints(), Connector()).wallet_balance(3) == 0


def test_forwarding_routes_by_request_ids():
    hub = ServiceHub(ALL, Connector(2))
    wealth = SimpleNamespace(uid=3)
    hub.modify_wealth(wealth)
    assert hub.hall_service(3).calls == [("modify_user_wealth", (wealth,), {})]
    message = SimpleNamespace(player_id=4)
    hub.gen_message(message)
    assert hub.global_service(4).calls == [("gen_message", (message,), {})]
    hub.log_to_db(5, "record")
    assert hub.log_service(5).calls == [("log2db", ("record",), {})]
    hub.push(6, "hello")
    assert hub.push_service(6).calls == [("push_msg", ("hello",), {})]
    wallet = SimpleNamespace(uid=1)
    hub.modify_wallet_balance(wallet)
    assert hub.order_service(1).calls == [("modify_wallet_balance", (wallet,), {})]