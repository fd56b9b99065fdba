# opct

Building blocks for running provider validation of an OpenShift cluster:
preflight checks, preparing the validation namespace and RBAC, starting the
Sonobuoy run, following the progress of the plugins, downloading the results
archive and cleaning up afterwards.

Cluster and aggregator access go through small duck-typed interfaces. The
package ships in-memory implementations of both,
`opct.kube.InMemoryCluster` and `opct.sonobuoy.InMemorySonobuoy`, which the
rest of the package works against.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Command line

The package installs an `opct` command with these subcommands:

```
opct version
opct get images
opct get images --to-repository registry.example.com:5000
opct adm
```

- `opct version` prints the tool version, the plugins image and the Sonobuoy
  version.
- `opct get images` lists every container image the validation environment
  pulls. With `--to-repository`, each line holds the source image and its
  destination in the given mirror repository, separated by a space.
- `opct get` on its own prints a hint to use `-h`.
- `opct adm` prints its help.

## Library use

Images (`opct.types`, `opct.images`):

```python
from opct.images import generate_image, list_images
from opct.types import plugins_image

print(plugins_image())
print(generate_image("quay.io/opct", "sonobuoy:v0.57.3", "registry.example.com:5000"))
for line in list_images("registry.example.com:5000"):
    print(line)
```

Cleaning up (`opct.destroy.Destroyer`) deletes the Sonobuoy environment, every
namespace whose name matches `e2e-*`, and the privileged cluster role and
binding. `destroy()` runs every step and returns the errors it met instead of
raising them:

```python
from opct.destroy import Destroyer
from opct.kube import InMemoryCluster, Namespace
from opct.sonobuoy import InMemorySonobuoy

cluster = InMemoryCluster()
cluster.create_namespace(Namespace(name="e2e-csi"))
errors = Destroyer(cluster, InMemorySonobuoy()).destroy()
```

Following the progress of a run (`opct.status.Status`):

```python
import sys

from opct.kube import InMemoryCluster, Namespace
from opct.sonobuoy import AggregatorStatus, InMemorySonobuoy, PluginStatus
from opct.status import Status

cluster = InMemoryCluster()
cluster.create_namespace(Namespace(name="opct"))
sonobuoy = InMemorySonobuoy([
    AggregatorStatus(
        status="complete",
        plugins=[PluginStatus(plugin="openshift-tests", status="complete",
                              result_status="passed")],
    )
])

status = Status(cluster, sonobuoy, watch=False, interval_seconds=10)
status.pre_run_check()
status.wait_for_status_report()
status.print_status(sys.stdout)
```

With `watch=True`, `print_status` keeps polling until the aggregator reports
`complete`. `opct.status.run_status_command` chains the pre-run check, waiting
for the aggregator pod to be running and ready (`opct.wait`), waiting for a
status report and printing it. The table itself is built and rendered by
`opct.printer.build_printable_status` and `opct.printer.render_status`.

Starting a run:

- `opct.preflight.pre_run_check(kube, dedicated, mode, skip_checks)` checks
  cluster operators, the image registry, the dedicated test node, that the
  `opct` namespace does not exist yet and, in `upgrade` mode, the `opct`
  MachineConfigPool. With `skip_checks=True` some failures are only logged;
  the skipped checks are returned.
- `opct.run.pre_run_setup(options, kube)` creates the namespace, service
  account, privileged cluster role and binding.
- `opct.run.run(options, kube, sonobuoy, default_manifests)` runs the Sonobuoy
  preflight checks, creates the version and plugin-variable ConfigMaps, renders
  the plugin manifests and hands a `RunConfig` to Sonobuoy. Manifest templates
  may use `{{.PluginsImage}}`, `{{.CollectorImage}}`,
  `{{.MustGatherMonitoringImage}}` and `{{.OpenshiftTestsImage}}`
  (`opct.run.process_manifest_template`). `RunOptions.image_repository`
  points every image at a mirror (`opct.run.resolve_images`).

Results: `opct.retrieve.retrieve_results_retry` downloads the results tar
stream, extracts it into a directory, renames each file with an `opct_` prefix
(dropping a `sonobuoy_` prefix) and retries up to ten times by default. An
optional `scanner` callable can filter the stream before extraction.

Dedicated node: `opct.setup_node.setup_node` picks a worker not running
Prometheus (unless a node name is given), then adds the
`node-role.kubernetes.io/tests` label and a `NoSchedule` taint. An optional
`confirm` callable is asked first.

## Errors

Failures are raised as exceptions specific to each step: `KubeError` and its
subclasses `NotFoundError` and `KubeconfigError`, `WaitError`, `StatusError`,
`PodLookupError`, `PreflightError`, `SetupNodeError`, `RunError` and
`RetrieveError`.

## What this package does not do

- It does not talk to a live cluster. There is no Kubernetes or Sonobuoy API
  client; `opct.kube.resolve_kubeconfig` only finds the kubeconfig path. To
  work against a real cluster you supply objects with the same methods as
  `InMemoryCluster` and `InMemorySonobuoy`.
- The `opct` command offers only `version`, `get`, `get images` and `adm`.
  Running, watching, retrieving, destroying and node setup are available as
  library functions, not as subcommands, and `adm` has no subcommands.
- No plugin manifests are bundled; pass them to `run` as `default_manifests`
  or list files in `RunOptions.plugins`.
- No results report, no scanning of results for sensitive data (beyond the
  `scanner` hook) and no metrics or etcd log analysis.