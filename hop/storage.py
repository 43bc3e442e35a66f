from __future__ import annotations

import contextlib
import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

from platformdirs import user_config_dir
from pydantic import ValidationError

from .errors import ConfigIoError, ConfigMalformedError, RegistryError
from .models import Server, describe_validation_error
from .registry import Registry

APP_NAME = "hop"
FORMAT_VERSION = 1


def default_config_path() -> Path:
    """Return the per-user location of the server list."""
    return Path(user_config_dir(APP_NAME, appauthor=False)) / "servers.json"


def parse_servers(path: Path, text: str) -> list[Server]:
    """Parse config file contents into servers.

    Accepts the versioned ``{"version": 1, "servers": [...]}`` document as
    well as a bare list of entries. Empty input yields no servers.
    """
    if not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigMalformedError(path, f"invalid JSON ({e})") from e

    if isinstance(data, dict):
        version = data.get("version", FORMAT_VERSION)
        if not isinstance(version, int) or isinstance(version, bool):
            raise ConfigMalformedError(path, f"invalid format version {version!r}")
        if version > FORMAT_VERSION:
            raise ConfigMalformedError(path, f"unsupported format version {version}")
        servers_raw = data.get("servers", [])
    elif isinstance(data, list):
        servers_raw = data
    else:
        raise ConfigMalformedError(path, "expected an object or a list of servers")

    if not isinstance(servers_raw, list):
        raise ConfigMalformedError(path, "'servers' must be a list")

    servers = []
    for index, item in enumerate(servers_raw):
        if not isinstance(item, dict):
            raise ConfigMalformedError(path, f"server #{index + 1} is not an object")
        try:
            servers.append(Server.model_validate(item))
        except ValidationError as e:
            raise ConfigMalformedError(path, f"server #{index + 1}: {describe_validation_error(e)}") from e
    return servers


def dump_servers(servers: Iterable[Server], **extra) -> str:
    payload = {"version": FORMAT_VERSION, **extra, "servers": [s.model_dump() for s in servers]}
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def read_servers(path: Path) -> list[Server]:
    """Read servers from ``path``; a missing file yields an empty list."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as e:
        raise ConfigIoError(path, e) from e
    except UnicodeDecodeError as e:
        raise ConfigMalformedError(path, f"not valid UTF-8 ({e.reason})") from e
    return parse_servers(path, text)


def write_servers(path: Path, servers: Iterable[Server], **extra) -> None:
    """Atomically replace ``path`` with the serialized servers."""
    text = dump_servers(servers, **extra)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp", encoding="utf-8"
        ) as tf:
            tmp_name = tf.name
            tf.write(text)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise ConfigIoError(path, e) from e
    finally:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)


class ConfigStore:
    """Loads and persists the server registry at an explicit path."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Registry:
        servers = read_servers(self.path)
        try:
            return Registry(servers, store=self)
        except RegistryError as e:
            raise ConfigMalformedError(self.path, str(e)) from e

    def save(self, registry: Registry) -> None:
        write_servers(self.path, registry.list())

    def init(self) -> bool:
        """Create an empty config file. Returns False if it already exists."""
        if self.exists():
            return False
        write_servers(self.path, [])
        return True
