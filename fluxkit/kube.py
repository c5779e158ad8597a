"""A small cluster client abstraction, settings, logging and polling."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, TextIO

from fluxkit.resources import Resource


@dataclass(frozen=True)
class NamespacedName:
    """The namespace and name that identify an object."""

    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


def parse_namespaced_name(value: str) -> NamespacedName:
    """Parse ``namespace/name``; a value without a slash is a bare name."""
    namespace, sep, name = value.partition("/")
    if not sep:
        return NamespacedName(name=value)
    return NamespacedName(namespace=namespace, name=name.split("/", 1)[0])


class NotFoundError(LookupError):
    """Raised when an object does not exist in the cluster."""

    def __init__(self, kind: str, namespaced_name: NamespacedName):
        self.kind = kind
        self.namespaced_name = namespaced_name
        super().__init__(f'{kind} "{namespaced_name.name}" not found')


class CommandError(Exception):
    """Raised when a command cannot complete."""


@dataclass
class Settings:
    """Options shared by all commands."""

    namespace: str = "flux-system"
    timeout: float = 300.0
    poll_interval: float = 2.0


@dataclass
class Logger:
    """Records progress messages and optionally writes them to a stream."""

    stream: TextIO | None = None
    entries: list[tuple[str, str]] = field(default_factory=list)

    _SYMBOLS = {"action": "►", "success": "✔", "waiting": "◎", "failure": "✗"}

    def _emit(self, level: str, message: str) -> None:
        self.entries.append((level, message))
        if self.stream is not None:
            print(f"{self._SYMBOLS[level]} {message}", file=self.stream)

    def action(self, message: str) -> None:
        self._emit("action", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def waiting(self, message: str) -> None:
        self._emit("waiting", message)

    def failure(self, message: str) -> None:
        self._emit("failure", message)


def poll_immediate(
    interval: float, timeout: float, condition: Callable[[], bool]
) -> None:
    """Call ``condition`` now and then every ``interval`` seconds until it is true.

    Errors raised by the condition propagate; TimeoutError is raised when
    ``timeout`` seconds pass without success.
    """
    deadline = time.monotonic() + timeout
    while True:
        if condition():
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("timed out waiting for the condition")
        time.sleep(min(interval, remaining))


def _key(obj: Resource) -> tuple[str, str, str]:
    return obj.kind, obj.namespace, obj.name


class InMemoryClient:
    """A cluster client that keeps objects in memory.

    ``on_update`` is called with the stored object after every persisted
    update, which lets a caller stand in for a controller.
    """

    def __init__(
        self,
        objects: Iterable[Resource] = (),
        on_update: Callable[[Resource], None] | None = None,
    ):
        self._objects: dict[tuple[str, str, str], Resource] = {}
        self.on_update = on_update
        for obj in objects:
            self.add(obj)

    def add(self, obj: Resource) -> None:
        self._objects[_key(obj)] = obj.deep_copy()

    def get(self, kind: str, namespaced_name: NamespacedName) -> Resource:
        key = (kind, namespaced_name.namespace, namespaced_name.name)
        try:
            return self._objects[key].deep_copy()
        except KeyError:
            raise NotFoundError(kind, namespaced_name) from None

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        name: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> list[Resource]:
        """List objects of a kind; an empty namespace means all namespaces."""
        wanted = labels or {}
        found = [
            obj.deep_copy()
            for obj in self._objects.values()
            if obj.kind == kind
            and (not namespace or obj.namespace == namespace)
            and (name is None or obj.name == name)
            and all(obj.labels.get(k) == v for k, v in wanted.items())
        ]
        return sorted(found, key=lambda o: (o.namespace, o.name))

    def _require(self, obj: Resource) -> tuple[str, str, str]:
        key = _key(obj)
        if key not in self._objects:
            raise NotFoundError(obj.kind, NamespacedName(obj.namespace, obj.name))
        return key

    def update(self, obj: Resource, dry_run: bool = False) -> Resource:
        key = self._require(obj)
        if dry_run:
            return obj.deep_copy()
        stored = obj.deep_copy()
        self._objects[key] = stored
        if self.on_update is not None:
            self.on_update(stored)
        return stored.deep_copy()

    def delete(self, obj: Resource, dry_run: bool = False) -> None:
        key = self._require(obj)
        if not dry_run:
            del self._objects[key]


def _default_logger() -> Logger:
    return Logger(stream=sys.stderr)