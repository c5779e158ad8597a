# fluxkit

fluxkit handles routine operations on GitOps toolkit resources. These are
Kustomizations, HelmReleases, sources (Git repositories, Helm repositories,
Helm charts and buckets), image automation objects, alerts and receivers.
With fluxkit you can:

- suspend and resume these resources;
- request a reconciliation and wait for it to finish;
- remove the toolkit's components and definitions from a cluster.

Every operation runs through a client object that provides `get`, `list`,
`update` and `delete`. The package ships `InMemoryClient`, a client that
holds its objects in memory.

## Installation

The package has no runtime dependencies. Install the `test` extra if you
also want pytest.

## Example

```python
from fluxkit.kube import InMemoryClient, Logger, Settings
from fluxkit.resources import Resource
from fluxkit.suspend import suspend

client = InMemoryClient([Resource(kind="Kustomization", name="apps", namespace="flux-system")])
logger = Logger()
suspend(client, Settings(), logger, "ks", "apps")
print(logger.entries)
```

## Modules

### `fluxkit.resources`

This module holds the resource model.

- `Resource` is a dataclass that describes an object. Its fields are:
  - kind, name and namespace;
  - API version and generation;
  - labels, annotations, finalizers and owner references;
  - `spec` and `status` dicts;
  - a list of `Condition`s.

  Its methods are `ready_condition`, `is_suspended`, `set_suspended`,
  `observed_generation` and `deep_copy`.
- `find_status_condition` returns the first condition of a given type.
- `api_type_for_kind` returns the `ApiType` (kind, human-readable kind and
  API group) for a toolkit kind. It raises `ValueError` for an unknown kind.

### `fluxkit.kube`

This module holds the plumbing that every operation shares.

- `NamespacedName` is a namespace and name pair. `parse_namespaced_name`
  parses `namespace/name`. A value without a slash is a bare name.
- `Settings` carries the namespace, timeout and poll interval. The defaults
  are `flux-system`, 300 seconds and 2 seconds.
- `Logger` records `(level, message)` pairs in `entries`. Its methods are
  `action`, `success`, `waiting` and `failure`. If you give it a stream, it
  also writes each message there with a symbol prefix.
- `poll_immediate` calls a condition at once, then calls it again every
  interval until it returns true. It raises `TimeoutError` when the timeout
  passes. Errors raised by the condition propagate.
- `InMemoryClient` stores copies of objects. `list` filters by kind,
  namespace, name and labels; an empty namespace means all namespaces.
  `update` and `delete` accept `dry_run`. An `on_update` callback receives
  each object after a real update is stored, so a test can act as a
  controller.
- `NotFoundError` (a `LookupError`) is raised for missing objects.
  `CommandError` is raised when an operation cannot complete.

### `fluxkit.status`

- `is_ready` builds a condition for `poll_immediate`. The condition returns
  true when two things hold:
  - the object's observed generation equals its generation;
  - its `Ready` condition is `True`.

  If `Ready` is `False`, the condition raises `CommandError` with the
  condition's message.
- `build_component_object_refs` returns references to the `apps`
  Deployments of the named components. It raises `ValueError` for an empty
  name.

### `fluxkit.suspend`

`suspend(client, settings, logger, kind, name, all_resources)` sets the
suspend flag on one named object. With `all_resources`, it sets the flag on
every object of that kind in the namespace. It returns the updated objects.

### `fluxkit.resume`

`resume(client, settings, logger, kind, name, all_resources)` clears the
suspend flag, then waits for each object to become ready.

`resume_success_message` builds the message reported for each kind, for
example "applied revision …", "fetched revision …" or
"scan fetched N tags".

### `fluxkit.reconcile`

- `reconcile` handles buckets, Git and Helm repositories, image
  repositories, image update automations, Kustomizations and HelmReleases.
  It works in these steps:
  1. Records the object's `status["lastHandledReconcileAt"]`.
  2. Sets the `reconcile.fluxcd.io/requestedAt` annotation.
  3. Waits until that status value changes.
  4. Raises `CommandError` if `Ready` ends up `False`.
- `reconcile_with_source` handles Kustomizations and HelmReleases. With
  `with_source`, it first reconciles the referenced source, in the source's
  own namespace if one is set.
- `reconcile_receiver` annotates a Receiver and waits until it is ready.
- The helpers are `request_reconciliation`, `source_of` and
  `reconcile_success_message`.

### `fluxkit.uninstall`

`uninstall` works in this order:

1. Deletes the Deployments, Services, NetworkPolicies and ServiceAccounts
   labelled `app.kubernetes.io/instance=<namespace>`.
2. Deletes the ClusterRoles and ClusterRoleBindings with that label.
3. Clears finalizers from toolkit resources in all namespaces.
4. Deletes the labelled custom resource definitions.
5. Deletes the namespace, unless `keep_namespace` is set.

Each step is also available on its own: `uninstall_components`,
`uninstall_finalizers`, `uninstall_custom_resource_definitions` and
`uninstall_namespace`. A failure on one object is logged, and the step goes
on to the next object. In dry-run mode, log lines end with `(dry run)` (see
`dry_run_suffix`).

## Behaviour worth knowing

- `suspend` and `resume` need a name unless `all_resources` is set.
- They accept a kind (`Kustomization`), an alias (`ks`, `hr`) or a
  human-readable kind (`source git`). An unknown kind raises `ValueError`.
- When nothing matches, they log a failure and return an empty list.
- `resume` does not stop when one object fails to become ready or times
  out. It logs the failure and moves on to the next object.
- Reconciling a suspended resource raises `CommandError`.
- `uninstall` asks for confirmation unless `silent` or `dry_run` is set.
  The question goes through the `confirm` callable; if none is given, a
  terminal prompt is used. A "no" answer raises `CommandError("aborting")`.

## What this package does not do

- **No command-line program.** fluxkit is a library only; every operation
  is a function you call.
- **No API server client.** The only client included is `InMemoryClient`.
  To work against a live cluster, you need to supply a client with the same
  methods.
- **No tracing.** fluxkit cannot trace an in-cluster object back to the
  Kustomization or HelmRelease that manages it.