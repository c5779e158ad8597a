"""Trigger reconciliations of toolkit resources and wait for them to finish."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Callable

from fluxkit.kube import (
    CommandError,
    InMemoryClient,
    Logger,
    NamespacedName,
    Settings,
    poll_immediate,
)
from fluxkit.resources import (
    BUCKET_KIND,
    GIT_REPOSITORY_KIND,
    HELM_RELEASE_KIND,
    HELM_REPOSITORY_KIND,
    IMAGE_REPOSITORY_KIND,
    IMAGE_UPDATE_AUTOMATION_KIND,
    KUSTOMIZATION_KIND,
    RECEIVER_KIND,
    RECONCILE_REQUEST_ANNOTATION,
    ApiType,
    Resource,
    api_type_for_kind,
)
from fluxkit.resume import resume_success_message
from fluxkit.status import is_ready

_ALIASES = {
    "ks": KUSTOMIZATION_KIND,
    "hr": HELM_RELEASE_KIND,
}

# Kinds that have a plain reconcile command.
_RECONCILABLE = (
    BUCKET_KIND,
    GIT_REPOSITORY_KIND,
    HELM_REPOSITORY_KIND,
    IMAGE_REPOSITORY_KIND,
    IMAGE_UPDATE_AUTOMATION_KIND,
    KUSTOMIZATION_KIND,
    HELM_RELEASE_KIND,
)

# Kinds whose reconcile command can reconcile their source first, with the
# source kinds each one accepts.
_SOURCE_KINDS = {
    KUSTOMIZATION_KIND: (GIT_REPOSITORY_KIND, BUCKET_KIND),
    HELM_RELEASE_KIND: (HELM_REPOSITORY_KIND, GIT_REPOSITORY_KIND, BUCKET_KIND),
}

_LAST_HANDLED = "lastHandledReconcileAt"


def _resolve_api_type(kind: str, allowed: tuple[str, ...] = _RECONCILABLE) -> ApiType:
    """Accept a kind, a command alias or the human-readable kind."""
    kind = _ALIASES.get(kind, kind)
    for candidate in allowed:
        api = api_type_for_kind(candidate)
        if kind in (api.kind, api.human_kind):
            return api
    raise ValueError(f"unknown kind {kind!r}")


def _format_rfc3339_nano(moment: datetime) -> str:
    """Format a time the way RFC 3339 with trimmed fractional seconds does."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    fraction = f"{moment.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def reconcile_success_message(obj: Resource) -> str:
    """The message reported once a reconciliation has completed."""
    return resume_success_message(obj)


def source_of(obj: Resource) -> tuple[str | None, NamespacedName]:
    """The kind and name of the source an object is built from.

    The kind is None when the source is of a kind that cannot be
    reconciled on the object's behalf. Raises ValueError for objects that
    have no source.
    """
    if obj.kind == KUSTOMIZATION_KIND:
        ref = obj.spec.get("sourceRef") or {}
    elif obj.kind == HELM_RELEASE_KIND:
        chart = (obj.spec.get("chart") or {}).get("spec") or {}
        ref = chart.get("sourceRef") or {}
    else:
        raise ValueError(f"{obj.kind} has no source")

    source_kind = ref.get("kind", "")
    kind = source_kind if source_kind in _SOURCE_KINDS[obj.kind] else None
    return kind, NamespacedName(
        namespace=ref.get("namespace", "") or "", name=ref.get("name", "") or ""
    )


def request_reconciliation(
    client: InMemoryClient,
    namespaced_name: NamespacedName,
    kind: str,
    now: datetime | None = None,
) -> Resource:
    """Annotate an object so that its controller reconciles it."""
    obj = client.get(kind, namespaced_name)
    moment = now if now is not None else datetime.now(timezone.utc)
    obj.annotations[RECONCILE_REQUEST_ANNOTATION] = _format_rfc3339_nano(moment)
    return client.update(obj)


def _reconciliation_handled(
    client: InMemoryClient,
    namespaced_name: NamespacedName,
    kind: str,
    last_handled: str,
) -> Callable[[], bool]:
    def condition() -> bool:
        obj = client.get(kind, namespaced_name)
        return str(obj.status.get(_LAST_HANDLED, "")) != last_handled

    return condition


def _annotate_and_wait(
    client: InMemoryClient,
    settings: Settings,
    logger: Logger,
    api: ApiType,
    namespaced_name: NamespacedName,
    obj: Resource,
) -> Resource:
    logger.action(
        f"annotating {api.kind} {namespaced_name.name} in {settings.namespace} namespace"
    )
    last_handled = str(obj.status.get(_LAST_HANDLED, ""))
    request_reconciliation(client, namespaced_name, api.kind)
    logger.success(f"{api.kind} annotated")

    logger.waiting(f"waiting for {api.kind} reconciliation")
    poll_immediate(
        settings.poll_interval,
        settings.timeout,
        _reconciliation_handled(client, namespaced_name, api.kind, last_handled),
    )
    logger.success(f"{api.kind} reconciliation completed")

    current = client.get(api.kind, namespaced_name)
    ready = current.ready_condition()
    if ready is not None and ready.status == "False":
        raise CommandError(f"{api.kind} reconciliation failed")
    logger.success(reconcile_success_message(current))
    return current


def _fetch_unsuspended(
    client: InMemoryClient, api: ApiType, settings: Settings, name: str | None
) -> tuple[NamespacedName, Resource]:
    if not name:
        raise CommandError(f"{api.kind} name is required")
    namespaced_name = NamespacedName(namespace=settings.namespace, name=name)
    obj = client.get(api.kind, namespaced_name)
    if obj.is_suspended():
        raise CommandError("resource is suspended")
    return namespaced_name, obj


def reconcile(
    client: InMemoryClient,
    settings: Settings,
    logger: Logger,
    kind: str,
    name: str | None,
) -> Resource:
    """Request a reconciliation of one object and wait until it is handled.

    Returns the object as it stands afterwards. Raises CommandError when no
    name is given, the object is suspended or its reconciliation failed,
    NotFoundError when it does not exist and TimeoutError when the
    controller does not respond in time.
    """
    api = _resolve_api_type(kind)
    namespaced_name, obj = _fetch_unsuspended(client, api, settings, name)
    return _annotate_and_wait(client, settings, logger, api, namespaced_name, obj)


def reconcile_with_source(
    client: InMemoryClient,
    settings: Settings,
    logger: Logger,
    kind: str,
    name: str | None,
    with_source: bool = False,
) -> Resource:
    """Reconcile a Kustomization or HelmRelease, optionally its source first."""
    api = _resolve_api_type(kind, tuple(_SOURCE_KINDS))
    namespaced_name, obj = _fetch_unsuspended(client, api, settings, name)

    if with_source:
        source_kind, source_name = source_of(obj)
        if source_kind is None:
            raise CommandError(f"cannot reconcile the source of {api.kind} {name}")
        source_settings = dataclasses.replace(
            settings, namespace=source_name.namespace or settings.namespace
        )
        reconcile(client, source_settings, logger, source_kind, source_name.name)

    return _annotate_and_wait(client, settings, logger, api, namespaced_name, obj)


def reconcile_receiver(
    client: InMemoryClient,
    settings: Settings,
    logger: Logger,
    name: str | None,
) -> Resource:
    """Request a reconciliation of a Receiver and wait until it is Ready."""
    if not name:
        raise CommandError("receiver name is required")
    namespaced_name = NamespacedName(namespace=settings.namespace, name=name)
    receiver = client.get(RECEIVER_KIND, namespaced_name)
    if receiver.is_suspended():
        raise CommandError("resource is suspended")

    logger.action(f"annotating Receiver {name} in {settings.namespace} namespace")
    request_reconciliation(client, namespaced_name, RECEIVER_KIND)
    logger.success("Receiver annotated")

    logger.waiting("waiting for Receiver reconciliation")
    poll_immediate(
        settings.poll_interval,
        settings.timeout,
        is_ready(client, namespaced_name, RECEIVER_KIND),
    )
    logger.success("Receiver reconciliation completed")
    return client.get(RECEIVER_KIND, namespaced_name)