"""Suspend the reconciliation of toolkit resources."""

from __future__ import annotations

from fluxkit.kube import CommandError, InMemoryClient, Logger, Settings
from fluxkit.resources import (
    HELM_RELEASE_KIND,
    KUSTOMIZATION_KIND,
    ApiType,
    Resource,
    api_type_for_kind,
)

_ALIASES = {
    "ks": KUSTOMIZATION_KIND,
    "hr": HELM_RELEASE_KIND,
}


def _resolve_api_type(kind: str) -> ApiType:
    """Accept a kind, a command alias or the human-readable kind."""
    kind = _ALIASES.get(kind, kind)
    try:
        return api_type_for_kind(kind)
    except ValueError:
        for candidate in (
            "Bucket",
            "HelmChart",
            "GitRepository",
            "HelmRepository",
            "Kustomization",
            "HelmRelease",
            "Alert",
            "Receiver",
            "ImageRepository",
            "ImageUpdateAutomation",
        ):
            api = api_type_for_kind(candidate)
            if api.human_kind == kind:
                return api
        raise


def suspend(
    client: InMemoryClient,
    settings: Settings,
    logger: Logger,
    kind: str,
    name: str | None = None,
    all_resources: bool = False,
) -> list[Resource]:
    """Suspend one named object, or every object of a kind in the namespace.

    Returns the objects that were suspended. Raises CommandError when no
    name is given and ``all_resources`` is false, and ValueError for an
    unknown kind.
    """
    api = _resolve_api_type(kind)
    if not name and not all_resources:
        raise CommandError(f"{api.human_kind} name is required")

    items = client.list(api.kind, namespace=settings.namespace, name=name or None)
    if not items:
        logger.failure(
            f"no {api.kind} objects found in {settings.namespace} namespace"
        )
        return []

    suspended = []
    for item in items:
        logger.action(
            f"suspending {api.human_kind} {item.name} in {settings.namespace} namespace"
        )
        item.set_suspended(True)
        suspended.append(client.update(item))
        logger.success(f"{api.human_kind} suspended")
    return suspended