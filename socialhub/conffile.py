"""Reader for the service's hierarchical configuration files.

The format nests named domains and holds ``key=value`` parameters::

    <Main>
        CreateClubCost = 10000
        <Interface>
            <ConfigServer>
                ProxyObj = Social.ConfigServer.ConfigObj
            </ConfigServer>
        </Interface>
    </Main>

Values are addressed with paths such as ``/Main/Interface/ConfigServer<ProxyObj>``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


class ConfigError(Exception):
    """Raised when a configuration text is malformed or a value is missing."""


@dataclass
class _Domain:
    name: str
    params: dict[str, str] = field(default_factory=dict)
    children: dict[str, "_Domain"] = field(default_factory=dict)


def _split_path(path: str) -> tuple[list[str], str | None]:
    """Split ``/A/B<key>`` into its domain names and the parameter name."""
    param = None
    domain_part = path
    if "<" in path:
        domain_part, _, rest = path.partition("<")
        if not rest.endswith(">"):
            raise ConfigError(f"malformed path: {path!r}")
        param = rest[:-1].strip()
        if not param:
            raise ConfigError(f"empty parameter name in path: {path!r}")
    names = [name.strip() for name in domain_part.split("/") if name.strip()]
    return names, param


class ConfigFile:
    """A parsed configuration tree."""

    def __init__(self, root: _Domain | None = None) -> None:
        self._root = root if root is not None else _Domain("")

    def _find(self, names: list[str]) -> _Domain | None:
        domain = self._root
        for name in names:
            domain = domain.children.get(name)
            if domain is None:
                return None
        return domain

    def get(self, path: str, default: str | None = None) -> str:
        """Return the parameter addressed by ``path``.

        When it is absent, ``default`` is returned; without a default a
        :class:`ConfigError` is raised.
        """
        names, param = _split_path(path)
        if param is None:
            raise ConfigError(f"path names no parameter: {path!r}")
        domain = self._find(names)
        if domain is not None and param in domain.params:
            return domain.params[param]
        if default is not None:
            return default
        raise ConfigError(f"no such parameter: {path!r}")

    def domains(self, path: str) -> list[str]:
        """Return the names of the sub-domains under ``path``, in file order."""
        names, param = _split_path(path)
        if param is not None:
            raise ConfigError(f"domain path carries a parameter: {path!r}")
        domain = self._find(names)
        return [] if domain is None else list(domain.children)


def parse_config(text: str) -> ConfigFile:
    """Parse configuration text into a :class:`ConfigFile`."""
    root = _Domain("")
    stack = [root]
    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("</"):
            if not line.endswith(">"):
                raise ConfigError(f"line {lineno}: malformed closing tag")
            name = line[2:-1].strip()
            if len(stack) == 1 or stack[-1].name != name:
                raise ConfigError(f"line {lineno}: unexpected closing tag </{name}>")
            stack.pop()
        elif line.startswith("<"):
            if not line.endswith(">"):
                raise ConfigError(f"line {lineno}: malformed opening tag")
            name = line[1:-1].strip()
            if not name or any(ch in name for ch in "<>/"):
                raise ConfigError(f"line {lineno}: invalid domain name {name!r}")
            child = stack[-1].children.setdefault(name, _Domain(name))
            stack.append(child)
        else:
            key, _, value = line.partition("=")
            key = key.strip()
            if not key:
                raise ConfigError(f"line {lineno}: parameter without a name")
            stack[-1].params[key] = value.strip()
    if len(stack) > 1:
        raise ConfigError(f"unclosed domain <{stack[-1].name}>")
    return ConfigFile(root)


def load_config(path: str | Path) -> ConfigFile:
    """Read and parse the configuration file at ``path``."""
    return parse_config(Path(path).read_text(encoding="utf-8"))