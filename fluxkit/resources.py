"""Resource model for toolkit custom resources and their API types."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterable

READY_CONDITION = "Ready"
RECONCILE_REQUEST_ANNOTATION = "reconcile.fluxcd.io/requestedAt"

SOURCE_GROUP = "source.toolkit.fluxcd.io"
KUSTOMIZE_GROUP = "kustomize.toolkit.fluxcd.io"
HELM_GROUP = "helm.toolkit.fluxcd.io"
NOTIFICATION_GROUP = "notification.toolkit.fluxcd.io"
IMAGE_GROUP = "image.toolkit.fluxcd.io"

BUCKET_KIND = "Bucket"
HELM_CHART_KIND = "HelmChart"
GIT_REPOSITORY_KIND = "GitRepository"
HELM_REPOSITORY_KIND = "HelmRepository"
KUSTOMIZATION_KIND = "Kustomization"
HELM_RELEASE_KIND = "HelmRelease"
ALERT_KIND = "Alert"
RECEIVER_KIND = "Receiver"
IMAGE_REPOSITORY_KIND = "ImageRepository"
IMAGE_UPDATE_AUTOMATION_KIND = "ImageUpdateAutomation"


@dataclass
class Condition:
    """A status condition as reported by a controller."""

    type: str
    status: str = "Unknown"
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""


def find_status_condition(
    conditions: Iterable[Condition], condition_type: str
) -> Condition | None:
    """Return the first condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


@dataclass(frozen=True)
class ApiType:
    """The kind of a resource together with the name used in messages."""

    kind: str
    human_kind: str
    group: str


_API_TYPES = {
    api.kind: api
    for api in (
        ApiType(BUCKET_KIND, "source bucket", SOURCE_GROUP),
        ApiType(HELM_CHART_KIND, "source chart", SOURCE_GROUP),
        ApiType(GIT_REPOSITORY_KIND, "source git", SOURCE_GROUP),
        ApiType(HELM_REPOSITORY_KIND, "source helm", SOURCE_GROUP),
        ApiType(KUSTOMIZATION_KIND, "kustomization", KUSTOMIZE_GROUP),
        ApiType(HELM_RELEASE_KIND, "helmrelease", HELM_GROUP),
        ApiType(ALERT_KIND, "alert", NOTIFICATION_GROUP),
        ApiType(RECEIVER_KIND, "receiver", NOTIFICATION_GROUP),
        ApiType(IMAGE_REPOSITORY_KIND, "image repository", IMAGE_GROUP),
        ApiType(IMAGE_UPDATE_AUTOMATION_KIND, "image update", IMAGE_GROUP),
    )
}


def api_type_for_kind(kind: str) -> ApiType:
    """Look up the API type of a toolkit kind; raise ValueError if unknown."""
    try:
        return _API_TYPES[kind]
    except KeyError:
        raise ValueError(f"unknown kind {kind!r}") from None


@dataclass
class Resource:
    """A cluster object: metadata, spec, status and status conditions."""

    kind: str
    name: str
    namespace: str = ""
    api_version: str = ""
    generation: int = 1
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    owner_references: list[dict[str, str]] = field(default_factory=list)
    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)
    conditions: list[Condition] = field(default_factory=list)

    def ready_condition(self) -> Condition | None:
        """The Ready condition, if the controller has reported one."""
        return find_status_condition(self.conditions, READY_CONDITION)

    def is_suspended(self) -> bool:
        return bool(self.spec.get("suspend", False))

    def set_suspended(self, value: bool = True) -> None:
        self.spec["suspend"] = bool(value)

    def observed_generation(self) -> int:
        return int(self.status.get("observedGeneration", 0))

    def deep_copy(self) -> Resource:
        return copy.deepcopy(self)