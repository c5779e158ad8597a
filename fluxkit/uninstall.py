"""Remove the toolkit components, custom resources and namespace from a cluster."""

from __future__ import annotations

from typing import Callable

from fluxkit.kube import CommandError, InMemoryClient, Logger, Settings
from fluxkit.resources import (
    BUCKET_KIND,
    GIT_REPOSITORY_KIND,
    HELM_CHART_KIND,
    HELM_RELEASE_KIND,
    HELM_REPOSITORY_KIND,
    KUSTOMIZATION_KIND,
    Resource,
)

INSTANCE_LABEL = "app.kubernetes.io/instance"
CONFIRM_LABEL = (
    "Are you sure you want to delete Flux and its custom resource definitions"
)

_NAMESPACED_COMPONENT_KINDS = (
    "Deployment",
    "Service",
    "NetworkPolicy",
    "ServiceAccount",
)
_CLUSTER_COMPONENT_KINDS = ("ClusterRole", "ClusterRoleBinding")
_FINALIZER_KINDS = (
    GIT_REPOSITORY_KIND,
    HELM_REPOSITORY_KIND,
    HELM_CHART_KIND,
    BUCKET_KIND,
    KUSTOMIZATION_KIND,
    HELM_RELEASE_KIND,
)
CRD_KIND = "CustomResourceDefinition"
NAMESPACE_KIND = "Namespace"


def dry_run_suffix(dry_run: bool) -> str:
    """The marker appended to messages when nothing is really changed."""
    return "(dry run)" if dry_run else ""


def _describe(obj: Resource, namespaced: bool) -> str:
    if namespaced:
        return f"{obj.kind}/{obj.namespace}/{obj.name}"
    return f"{obj.kind}/{obj.name}"


def _delete_all(
    client: InMemoryClient,
    logger: Logger,
    items: list[Resource],
    namespaced: bool,
    dry_run: bool,
) -> list[Resource]:
    suffix = dry_run_suffix(dry_run)
    deleted = []
    for obj in items:
        label = _describe(obj, namespaced)
        try:
            client.delete(obj, dry_run=dry_run)
        except Exception as err:  # every failure is reported and skipped
            logger.failure(f"{label} deletion failed: {err}")
        else:
            logger.success(f"{label} deleted {suffix}")
            deleted.append(obj)
    return deleted


def uninstall_components(
    client: InMemoryClient, logger: Logger, namespace: str, dry_run: bool = False
) -> list[Resource]:
    """Delete the labelled component objects of an installation.

    Returns the objects that were deleted (or would be, on a dry run).
    """
    selector = {INSTANCE_LABEL: namespace}
    deleted = []
    for kind in _NAMESPACED_COMPONENT_KINDS:
        items = client.list(kind, namespace=namespace, labels=selector)
        deleted += _delete_all(client, logger, items, True, dry_run)
    for kind in _CLUSTER_COMPONENT_KINDS:
        items = client.list(kind, labels=selector)
        deleted += _delete_all(client, logger, items, False, dry_run)
    return deleted


def uninstall_finalizers(
    client: InMemoryClient, logger: Logger, dry_run: bool = False
) -> list[Resource]:
    """Clear the finalizers of every toolkit resource in all namespaces.

    Returns the objects that were updated (or would be, on a dry run).
    """
    suffix = dry_run_suffix(dry_run)
    updated = []
    for kind in _FINALIZER_KINDS:
        for obj in client.list(kind):
            obj.finalizers = []
            label = f"{obj.kind}/{obj.namespace}/{obj.name}"
            try:
                client.update(obj, dry_run=dry_run)
            except Exception as err:
                logger.failure(f"{label} removing finalizers failed: {err}")
            else:
                logger.success(f"{label} finalizers deleted {suffix}")
                updated.append(obj)
    return updated


def uninstall_custom_resource_definitions(
    client: InMemoryClient, logger: Logger, namespace: str, dry_run: bool = False
) -> list[Resource]:
    """Delete the custom resource definitions labelled with the installation."""
    items = client.list(CRD_KIND, labels={INSTANCE_LABEL: namespace})
    return _delete_all(client, logger, items, False, dry_run)


def uninstall_namespace(
    client: InMemoryClient, logger: Logger, namespace: str, dry_run: bool = False
) -> bool:
    """Delete the installation namespace; return whether the deletion succeeded."""
    ns = Resource(kind=NAMESPACE_KIND, name=namespace)
    try:
        client.delete(ns, dry_run=dry_run)
    except Exception as err:
        logger.failure(f"Namespace/{namespace} deletion failed: {err}")
        return False
    logger.success(f"Namespace/{namespace} deleted {dry_run_suffix(dry_run)}")
    return True


def _prompt_confirm() -> bool:
    try:
        answer = input(f"{CONFIRM_LABEL} [y/N]: ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def uninstall(
    client: InMemoryClient,
    settings: Settings,
    logger: Logger,
    keep_namespace: bool = False,
    dry_run: bool = False,
    silent: bool = False,
    confirm: Callable[[], bool] | None = None,
) -> None:
    """Remove the components, finalizers, definitions and namespace.

    Unless ``dry_run`` or ``silent`` is set the user is asked to confirm,
    through ``confirm`` or a terminal prompt; CommandError("aborting") is
    raised when the answer is no.
    """
    if not dry_run and not silent:
        ask = confirm if confirm is not None else _prompt_confirm
        if not ask():
            raise CommandError("aborting")

    namespace = settings.namespace
    logger.action(f"deleting components in {namespace} namespace")
    uninstall_components(client, logger, namespace, dry_run)

    logger.action("deleting toolkit.fluxcd.io finalizers in all namespaces")
    uninstall_finalizers(client, logger, dry_run)

    logger.action("deleting toolkit.fluxcd.io custom resource definitions")
    uninstall_custom_resource_definitions(client, logger, namespace, dry_run)

    if not keep_namespace:
        uninstall_namespace(client, logger, namespace, dry_run)

    logger.success("uninstall finished")