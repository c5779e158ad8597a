import pytest

from fluxkit.kube import CommandError, InMemoryClient, Logger, NamespacedName, NotFoundError, Settings
from fluxkit.resources import Resource
from fluxkit.uninstall import (
    dry_run_suffix,
    uninstall,
    uninstall_components,
    uninstall_custom_resource_definitions,
    uninstall_finalizers,
    uninstall_namespace,
)

NS = "flux-system"
LABELS = {"app.kubernetes.io/instance": NS}


def _cluster():
    return InMemoryClient(
        [
            Resource(kind="Deployment", name="source-controller", namespace=NS, labels=dict(LABELS)),
            Resource(kind="Service", name="source-controller", namespace=NS, labels=dict(LABELS)),
            Resource(kind="NetworkPolicy", name="allow-egress", namespace=NS, labels=dict(LABELS)),
            Resource(kind="ServiceAccount", name="helm-controller", namespace=NS, labels=dict(LABELS)),
            Resource(kind="ClusterRole", name="crd-controller", labels=dict(LABELS)),
            Resource(kind="ClusterRoleBinding", name="cluster-reconciler", labels=dict(LABELS)),
            Resource(kind="CustomResourceDefinition", name="buckets.source.toolkit.fluxcd.io", labels=dict(LABELS)),
            Resource(kind="Deployment", name="unrelated", namespace=NS),
            Resource(kind="Namespace", name=NS),
            Resource(
                kind="GitRepository",
                name="podinfo",
                namespace="apps",
                finalizers=["finalizers.fluxcd.io"],
            ),
            Resource(
                kind="Kustomization",
                name="podinfo",
                namespace="apps",
                finalizers=["finalizers.fluxcd.io"],
            ),
        ]
    )


def _exists(client, kind, namespace, name):
    try:
        client.get(kind, NamespacedName(namespace, name))
    except NotFoundError:
        return False
    return True


def test_dry_run_suffix():
    assert dry_run_suffix(True) == "(dry run)"
    assert dry_run_suffix(False) == ""


def test_uninstall_components_deletes_labelled_objects_only():
    client = _cluster()
    logger = Logger()
    deleted = uninstall_components(client, logger, NS, dry_run=False)
    assert [o.kind for o in deleted] == [
        "Deployment",
        "Service",
        "NetworkPolicy",
        "ServiceAccount",
        "ClusterRole",
        "ClusterRoleBinding",
    ]
    assert not _exists(client, "Deployment", NS, "source-controller")
    assert not _exists(client, "ClusterRole", "", "crd-controller")
    assert _exists(client, "Deployment", NS, "unrelated")
    assert ("success", "Deployment/flux-system/source-controller deleted ") in logger.entries
    assert ("success", "ClusterRole/crd-controller deleted ") in logger.entries


def test_uninstall_components_dry_run_keeps_objects():
    client = _cluster()
    logger = Logger()
    deleted = uninstall_components(client, logger, NS, dry_run=True)
    assert len(deleted) == 6
    assert _exists(client, "Deployment", NS, "source-controller")
    assert _exists(client, "ClusterRoleBinding", "", "cluster-reconciler")
    assert all(msg.endswith("(dry run)") for level, msg in logger.entries if level == "success")


def test_uninstall_finalizers_clears_all_namespaces():
    client = _cluster()
    logger = Logger()
    updated = uninstall_finalizers(client, logger, dry_run=False)
    assert {(o.kind, o.namespace, o.name) for o in updated} == {
        ("GitRepository", "apps", "podinfo"),
        ("Kustomization", "apps", "podinfo"),
    }
    assert client.get("GitRepository", NamespacedName("apps", "podinfo")).finalizers == []
    assert client.get("Kustomization", NamespacedName("apps", "podinfo")).finalizers == []
    assert ("success", "GitRepository/apps/podinfo finalizers deleted ") in logger.entries


def test_uninstall_finalizers_dry_run_leaves_finalizers():
    client = _cluster()
    uninstall_finalizers(client, Logger(), dry_run=True)
    stored = client.get("GitRepository", NamespacedName("apps", "podinfo"))
    assert stored.finalizers == ["finalizers.fluxcd.io"]


def test_uninstall_crds():
    client = _cluster()
    deleted = uninstall_custom_resource_definitions(client, Logger(), NS, dry_run=False)
    assert [o.name for o in deleted] == ["buckets.source.toolkit.fluxcd.io"]
    assert client.list("CustomResourceDefinition") == []


def test_uninstall_namespace_missing_logs_failure():
    client = InMemoryClient()
    logger = Logger()
    assert uninstall_namespace(client, logger, NS, dry_run=False) is False
    level, message = logger.entries[-1]
    assert level == "failure"
    assert message.startswith("Namespace/flux-system deletion failed: ")


def test_uninstall_namespace_deletes():
    client = _cluster()
    logger = Logger()
    assert uninstall_namespace(client, logger, NS) is True
    assert not _exists(client, "Namespace", "", NS)
    assert logger.entries[-1] == ("success", "Namespace/flux-system deleted ")


def test_uninstall_silent_removes_everything():
    client = _cluster()
    logger = Logger()
    uninstall(client, Settings(namespace=NS), logger, silent=True)
    assert not _exists(client, "Namespace", "", NS)
    assert client.list("CustomResourceDefinition") == []
    assert [o.name for o in client.list("Deployment")] == ["unrelated"]
    assert logger.entries[0] == ("action", "deleting components in flux-system namespace")
    assert logger.entries[-1] == ("success", "uninstall finished")


def test_uninstall_keep_namespace():
    client = _cluster()
    logger = Logger()
    uninstall(client, Settings(namespace=NS), logger, keep_namespace=True, silent=True)
    assert [o.name for o in client.list("Namespace")] == [NS]
    assert client.list("CustomResourceDefinition") == []
    assert logger.entries[-1] == ("success", "uninstall finished")


def test_uninstall_declined_aborts_without_changes():
    client = _cluster()
    with pytest.raises(CommandError, match="aborting"):
        uninstall(client, Settings(namespace=NS), Logger(), confirm=lambda: False)
    assert _exists(client, "Deployment", NS, "source-controller")
    assert _exists(client, "Namespace", "", NS)


def test_uninstall_confirmed_runs():
    client = _cluster()
    asked = []

    def confirm():
        asked.append(True)
        return True

    logger = Logger()
    uninstall(client, Settings(namespace=NS), logger, confirm=confirm)
    assert asked == [True]
    assert client.list("Namespace") == []
    assert logger.entries[-1] == ("success", "uninstall finished")


def test_uninstall_dry_run_skips_prompt_and_changes_nothing():
    client = _cluster()

    def confirm():
        raise AssertionError("should not ask")

    logger = Logger()
    uninstall(client, Settings(namespace=NS), logger, dry_run=True, confirm=confirm)
    assert _exists(client, "Namespace", "", NS)
    assert _exists(client, "Deployment", NS, "source-controller")
    assert ("success", "Namespace/flux-system deleted (dry run)") in logger.entries