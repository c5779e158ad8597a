from datetime import datetime, timezone

import pytest

from fluxkit.kube import CommandError, InMemoryClient, Logger, NamespacedName, Settings
from fluxkit.resources import Condition, Resource
from fluxkit.resume import resume, resume_success_message

NS = "flux-system"


def _settings():
    return Settings(namespace=NS, timeout=0.05, poll_interval=0.01)


def _controller(ready_status="True", message="ok"):
    def on_update(stored):
        stored.status["observedGeneration"] = stored.generation
        stored.conditions = [Condition(type="Ready", status=ready_status, message=message)]

    return on_update


def _ks(name, revision="main/abc"):
    return Resource(
        kind="Kustomization",
        name=name,
        namespace=NS,
        spec={"suspend": True},
        status={"lastAppliedRevision": revision},
    )


def test_name_required():
    client = InMemoryClient()
    with pytest.raises(CommandError, match="kustomization name is required"):
        resume(client, _settings(), Logger(), "Kustomization")


def test_unknown_kind():
    with pytest.raises(ValueError):
        resume(InMemoryClient(), _settings(), Logger(), "Nope", "x")


def test_nothing_found_logs_failure():
    logger = Logger()
    result = resume(InMemoryClient(), _settings(), logger, "Kustomization", "missing")
    assert result == []
    assert logger.entries == [
        ("failure", f"no Kustomization objects found in {NS} namespace")
    ]


def test_resume_kustomization_by_alias():
    client = InMemoryClient([_ks("podinfo")], on_update=_controller())
    logger = Logger()
    result = resume(client, _settings(), logger, "ks", "podinfo")
    assert [r.name for r in result] == ["podinfo"]
    stored = client.get("Kustomization", NamespacedName(NS, "podinfo"))
    assert stored.is_suspended() is False
    assert ("action", f"resuming kustomization podinfo in {NS} namespace") in logger.entries
    assert ("success", "kustomization resumed") in logger.entries
    assert ("success", "Kustomization reconciliation completed") in logger.entries
    assert logger.entries[-1] == ("success", "applied revision main/abc")


def test_ready_false_is_logged_and_continues():
    client = InMemoryClient(
        [_ks("a"), _ks("b")], on_update=_controller("False", "build failed")
    )
    logger = Logger()
    result = resume(client, _settings(), logger, "Kustomization", all_resources=True)
    assert [r.name for r in result] == ["a", "b"]
    failures = [m for level, m in logger.entries if level == "failure"]
    assert failures == ["build failed", "build failed"]
    assert ("success", "Kustomization reconciliation completed") not in logger.entries


def test_timeout_is_logged():
    client = InMemoryClient([_ks("podinfo")])
    logger = Logger()
    resume(client, _settings(), logger, "Kustomization", "podinfo")
    assert logger.entries[-1] == ("failure", "timed out waiting for the condition")
    stored = client.get("Kustomization", NamespacedName(NS, "podinfo"))
    assert stored.is_suspended() is False


def test_only_namespace_objects_are_resumed():
    other = _ks("elsewhere")
    other.namespace = "other"
    client = InMemoryClient([_ks("a"), other], on_update=_controller())
    resume(client, _settings(), Logger(), "Kustomization", all_resources=True)
    assert client.get("Kustomization", NamespacedName("other", "elsewhere")).is_suspended()


def test_success_message_alert_and_receiver():
    assert resume_success_message(Resource(kind="Alert", name="a")) == "Alert reconciliation completed"
    assert (
        resume_success_message(Resource(kind="Receiver", name="r"))
        == "Receiver reconciliation completed"
    )


@pytest.mark.parametrize("kind", ["HelmChart", "GitRepository", "HelmRepository", "Bucket"])
def test_success_message_sources(kind):
    obj = Resource(kind=kind, name="s", status={"artifact": {"revision": "main/123"}})
    assert resume_success_message(obj) == "fetched revision main/123"


def test_success_message_helmrelease():
    obj = Resource(kind="HelmRelease", name="h", status={"lastAppliedRevision": "6.0.0"})
    assert resume_success_message(obj) == "applied revision 6.0.0"


def test_success_message_image_repository():
    obj = Resource(kind="ImageRepository", name="i", status={"lastScanResult": {"tagCount": 7}})
    assert resume_success_message(obj) == "scan fetched 7 tags"


def test_success_message_image_update():
    obj = Resource(kind="ImageUpdateAutomation", name="u")
    assert resume_success_message(obj) == "automation not yet run"
    obj.status["lastAutomationRunTime"] = datetime(2021, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert resume_success_message(obj) == "last run 2021-06-01T12:00:00Z"
    obj.conditions = [Condition(type="Ready", status="True", message="pushed")]
    assert resume_success_message(obj) == "pushed"