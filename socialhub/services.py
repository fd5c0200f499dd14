"""Access to the peer services the social server talks to.

Every peer is reached through an endpoint string read from the
configuration file. A connector turns an endpoint into the nodes serving
it; requests for a user or key are routed to one node by hashing, so the
same key always reaches the same node.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .conffile import ConfigFile
from .configs import MailTemplate
from .dbtypes import string_hash

log = logging.getLogger(__name__)

_INTERFACE = "/Main/Interface/{}<ProxyObj>"


class ServiceUnavailable(Exception):
    """Raised when a peer service has no endpoint or no reachable node."""


@dataclass(frozen=True)
class ServiceEndpoints:
    """Endpoint strings of the peer services; empty means not configured."""

    config: str = ""
    db_agent: str = ""
    push: str = ""
    hall: str = ""
    global_: str = ""
    log2db: str = ""
    order: str = ""


def read_endpoints(conf: ConfigFile) -> ServiceEndpoints:
    """Read every peer endpoint from ``/Main/Interface``; missing ones are empty."""

    def endpoint(server: str) -> str:
        return conf.get(_INTERFACE.format(server), "")

    return ServiceEndpoints(
        config=endpoint("ConfigServer"),
        db_agent=endpoint("DBAgentServer"),
        push=endpoint("PushServer"),
        hall=endpoint("HallServer"),
        global_=endpoint("GlobalServer"),
        log2db=endpoint("Log2DBServer"),
        order=endpoint("OrderServer"),
    )


def render_mail(content: str, params: Sequence[str]) -> str:
    """Fill the ``&`` placeholders of ``content`` with ``params``, one at a time, in order."""
    for param in params:
        content = content.replace("&", param, 1)
    return content


class ServiceHub:
    """Lazily connects to peer services and routes requests to their nodes.

    ``connector`` receives an endpoint string and returns the sequence of
    nodes serving it. A successful connection is cached; an empty result is
    retried on the next request.
    """

    def __init__(
        self,
        endpoints: ServiceEndpoints,
        connector: Callable[[str], Sequence[Any]],
        mail_templates: Mapping[int, MailTemplate] | None = None,
    ) -> None:
        self.endpoints = endpoints
        self.mail_templates: dict[int, MailTemplate] = dict(mail_templates or {})
        self._connector = connector
        self._nodes: dict[str, Sequence[Any]] = {}
        self._lock = threading.Lock()

    def _cluster(self, name: str) -> Sequence[Any]:
        with self._lock:
            nodes = self._nodes.get(name)
            if nodes:
                return nodes
            endpoint = getattr(self.endpoints, name)
            if not endpoint:
                raise ServiceUnavailable(f"no endpoint configured for {name}")
            nodes = list(self._connector(endpoint))
            if not nodes:
                raise ServiceUnavailable(f"no node reachable for {name} at {endpoint!r}")
            self._nodes[name] = nodes
            log.debug("connected %s at %s (%d nodes)", name, endpoint, len(nodes))
            return nodes

    def _routed(self, name: str, key: int | str) -> Any:
        nodes = self._cluster(name)
        if isinstance(key, str):
            key = string_hash(key)
        return nodes[key % len(nodes)]

    def config_service(self) -> Any:
        """Return the configuration service."""
        return self._cluster("config")[0]

    def db_agent(self, key: int | str) -> Any:
        """Return the data agent node for a user id or a string key."""
        return self._routed("db_agent", key)

    def push_service(self, uid: int) -> Any:
        return self._routed("push", uid)

    def hall_service(self, uid: int) -> Any:
        return self._routed("hall", uid)

    def global_service(self, uid: int) -> Any:
        return self._routed("global_", uid)

    def log_service(self, uid: int) -> Any:
        return self._routed("log2db", uid)

    def order_service(self, uid: int) -> Any:
        return self._routed("order", uid)

    def push(self, uid: int, message: Any) -> None:
        """Push a message to a user."""
        self.push_service(uid).push_msg(message)

    def send_club_mail(
        self,
        uid: int,
        mail_kind: int,
        template_id: int,
        club_id: int,
        params: Sequence[str],
    ) -> None:
        """Send a system mail built from a template, with the club id as extra data.

        An unknown template gives an empty title and content.
        """
        template = self.mail_templates.get(template_id, MailTemplate())
        self.hall_service(uid).send_mail_to_user_from_system(
            uid=uid,
            mail_type=mail_kind,
            title=template.title,
            content=render_mail(template.content, params),
            extra=str(club_id),
        )

    def modify_wealth(self, request: Any) -> None:
        """Forward a wealth change to the hall node of ``request.uid``."""
        self.hall_service(request.uid).modify_user_wealth(request)
        log.debug("modify wealth for uid %s: %r", request.uid, request)

    def modify_wallet_balance(self, request: Any) -> None:
        """Forward a wallet balance change to the order node of ``request.uid``."""
        self.order_service(request.uid).modify_wallet_balance(request)
        log.debug("modify wallet balance for uid %s: %r", request.uid, request)

    def wallet_balance(self, uid: int) -> int:
        """Return a user's wallet balance, or 0 when the order service is unavailable."""
        try:
            order = self.order_service(uid)
        except ServiceUnavailable:
            log.error("order service unavailable, uid %s", uid)
            return 0
        return order.select_wallet_balance(uid)

    def gen_message(self, request: Any) -> None:
        """Forward a message to the global node of ``request.player_id``."""
        self.global_service(request.player_id).gen_message(request)
        log.debug("gen message: %r", request)

    def log_to_db(self, uid: int, request: Any) -> None:
        """Forward a log record to the log node of ``uid``."""
        self.log_service(uid).log2db(request)