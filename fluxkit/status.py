"""Readiness checks and component references."""

from __future__ import annotations

from typing import Callable, NamedTuple

from fluxkit.kube import CommandError, InMemoryClient, NamespacedName


class _ObjMetadata(NamedTuple):
    namespace: str
    name: str
    group: str
    kind: str

    def __str__(self) -> str:
        return f"{self.namespace}_{self.name}_{self.group}_{self.kind}"


def is_ready(
    client: InMemoryClient, namespaced_name: NamespacedName, kind: str
) -> Callable[[], bool]:
    """Build a condition that is true once the object reports Ready.

    The condition raises CommandError with the controller's message when
    Ready is False for the current generation.
    """

    def condition() -> bool:
        obj = client.get(kind, namespaced_name)
        if obj.generation != obj.observed_generation():
            return False
        ready = obj.ready_condition()
        if ready is not None:
            if ready.status == "True":
                return True
            if ready.status == "False":
                raise CommandError(ready.message)
        return False

    return condition


def build_component_object_refs(namespace: str, *components: str) -> list[_ObjMetadata]:
    """References to the Deployments of the named components."""
    refs = []
    for deployment in components:
        name = deployment.strip()
        if not name:
            raise ValueError("empty name for object")
        refs.append(_ObjMetadata(namespace.strip(), name, "apps", "Deployment"))
    return refs