"""Resume the reconciliation of suspended toolkit resources."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fluxkit.kube import CommandError, InMemoryClient, Logger, NamespacedName, Settings, poll_immediate
from fluxkit.resources import (
    ALERT_KIND,
    BUCKET_KIND,
    GIT_REPOSITORY_KIND,
    HELM_CHART_KIND,
    HELM_RELEASE_KIND,
    HELM_REPOSITORY_KIND,
    IMAGE_REPOSITORY_KIND,
    IMAGE_UPDATE_AUTOMATION_KIND,
    KUSTOMIZATION_KIND,
    RECEIVER_KIND,
    ApiType,
    Resource,
    api_type_for_kind,
)
from fluxkit.status import is_ready

_ALIASES = {
    "ks": KUSTOMIZATION_KIND,
    "hr": HELM_RELEASE_KIND,
}

_KINDS = (
    BUCKET_KIND,
    HELM_CHART_KIND,
    GIT_REPOSITORY_KIND,
    HELM_REPOSITORY_KIND,
    KUSTOMIZATION_KIND,
    HELM_RELEASE_KIND,
    ALERT_KIND,
    RECEIVER_KIND,
    IMAGE_REPOSITORY_KIND,
    IMAGE_UPDATE_AUTOMATION_KIND,
)


def _resolve_api_type(kind: str) -> ApiType:
    """Accept a kind, a command alias or the human-readable kind."""
    kind = _ALIASES.get(kind, kind)
    if kind in _KINDS:
        return api_type_for_kind(kind)
    for candidate in _KINDS:
        api = api_type_for_kind(candidate)
        if api.human_kind == kind:
            return api
    raise ValueError(f"unknown kind {kind!r}")


def _artifact_revision(obj: Resource) -> str:
    artifact = obj.status.get("artifact") or {}
    return str(artifact.get("revision", ""))


def _format_rfc3339(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        text = value.isoformat(timespec="seconds")
        return text.replace("+00:00", "Z")
    return str(value)


def resume_success_message(obj: Resource) -> str:
    """The message reported once a resumed object has reconciled."""
    kind = obj.kind
    if kind == ALERT_KIND:
        return "Alert reconciliation completed"
    if kind == RECEIVER_KIND:
        return "Receiver reconciliation completed"
    if kind in (HELM_RELEASE_KIND, KUSTOMIZATION_KIND):
        return f"applied revision {obj.status.get('lastAppliedRevision', '')}"
    if kind in (HELM_CHART_KIND, GIT_REPOSITORY_KIND, HELM_REPOSITORY_KIND, BUCKET_KIND):
        return f"fetched revision {_artifact_revision(obj)}"
    if kind == IMAGE_REPOSITORY_KIND:
        scan = obj.status.get("lastScanResult") or {}
        return f"scan fetched {int(scan.get('tagCount', 0))} tags"
    if kind == IMAGE_UPDATE_AUTOMATION_KIND:
        ready = obj.ready_condition()
        if ready is not None:
            return ready.message
        last_run = obj.status.get("lastAutomationRunTime")
        if last_run is not None:
            return "last run " + _format_rfc3339(last_run)
        return "automation not yet run"
    raise ValueError(f"unknown kind {kind!r}")


def resume(
    client: InMemoryClient,
    settings: Settings,
    logger: Logger,
    kind: str,
    name: str | None = None,
    all_resources: bool = False,
) -> list[Resource]:
    """Resume one named object, or every object of a kind in the namespace.

    Each resumed object is waited on until it reports Ready; a failure or
    timeout is logged and the next object is handled. Returns the objects
    that were updated. Raises CommandError when no name is given and
    ``all_resources`` is false, and ValueError for an unknown kind.
    """
    api = _resolve_api_type(kind)
    if not name and not all_resources:
        raise CommandError(f"{api.human_kind} name is required")

    items = client.list(api.kind, namespace=settings.namespace, name=name or None)
    if not items:
        logger.failure(f"no {api.kind} objects found in {settings.namespace} namespace")
        return []

    resumed = []
    for item in items:
        logger.action(
            f"resuming {api.human_kind} {item.name} in {settings.namespace} namespace"
        )
        item.set_suspended(False)
        resumed.append(client.update(item))
        logger.success(f"{api.human_kind} resumed")

        namespaced_name = NamespacedName(namespace=settings.namespace, name=item.name)
        logger.waiting(f"waiting for {api.kind} reconciliation")
        try:
            poll_immediate(
                settings.poll_interval,
                settings.timeout,
                is_ready(client, namespaced_name, api.kind),
            )
        except (CommandError, TimeoutError, LookupError) as err:
            logger.failure(str(err))
            continue
        logger.success(f"{api.kind} reconciliation completed")
        current = client.get(api.kind, namespaced_name)
        logger.success(resume_success_message(current))

    return resumed