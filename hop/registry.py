from __future__ import annotations

import difflib
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .errors import DuplicateAliasError, DuplicateNameError, InvalidEntryError, NotFoundError
from .models import Server, ServerPatch, describe_validation_error

if TYPE_CHECKING:
    from .storage import ConfigStore


class Registry:
    """Ordered collection of servers with unique names and aliases.

    Mutating operations persist through the attached store, if any.
    """

    def __init__(self, servers: Iterable[Server] = (), store: ConfigStore | None = None):
        self._servers: list[Server] = []
        self._store = store
        for server in servers:
            self._check_unique(server)
            self._servers.append(server)

    def __len__(self) -> int:
        return len(self._servers)

    def __iter__(self) -> Iterator[Server]:
        return iter(self._servers)

    def list(self) -> tuple[Server, ...]:
        return tuple(self._servers)

    def resolve(self, identifier: str) -> Server:
        """Find a server by exact name, falling back to exact alias."""
        for s in self._servers:
            if s.name == identifier:
                return s
        for s in self._servers:
            if s.alias is not None and s.alias == identifier:
                return s
        raise NotFoundError(identifier)

    def add(self, server: Server) -> Server:
        self._check_unique(server)
        self._servers.append(server)
        self._persist()
        return server

    def remove(self, identifier: str) -> Server:
        server = self.resolve(identifier)
        self._servers.remove(server)
        self._persist()
        return server

    def edit(self, identifier: str, patch: ServerPatch) -> Server:
        """Apply the fields set on ``patch`` to the resolved server, keeping its position."""
        current = self.resolve(identifier)
        index = self._servers.index(current)
        try:
            updated = Server.model_validate({**current.model_dump(), **patch.changes()})
        except ValidationError as e:
            raise InvalidEntryError(describe_validation_error(e)) from e

        others = self._servers[:index] + self._servers[index + 1 :]
        self._check_unique(updated, others)
        self._servers[index] = updated
        self._persist()
        return updated

    def suggest(self, query: str, limit: int = 5) -> list[Server]:
        """Rank servers loosely matching ``query``.

        Advisory only: ``resolve`` never falls back to these candidates.
        """
        needle = query.lower()
        ranked: list[tuple[int, int, Server]] = []
        for position, s in enumerate(self._servers):
            keys = [k.lower() for k in s.identifiers()]
            if any(k.startswith(needle) for k in keys):
                rank = 0
            elif any(needle in k for k in keys):
                rank = 1
            elif any(difflib.get_close_matches(needle, keys, n=1, cutoff=0.6)):
                rank = 2
            else:
                continue
            ranked.append((rank, position, s))
        ranked.sort(key=lambda item: (item[0], item[1]))
        return [s for _, _, s in ranked[:limit]]

    def _check_unique(self, server: Server, others: Iterable[Server] | None = None) -> None:
        others = self._servers if others is None else others
        taken = set()
        for s in others:
            taken.update(s.identifiers())
        if server.name in taken:
            raise DuplicateNameError(server.name)
        if server.alias is not None and server.alias in taken:
            raise DuplicateAliasError(server.alias)

    def _persist(self) -> None:
        if self._store is not None:
            self._store.save(self)
