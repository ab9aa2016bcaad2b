# powervs-csi

Building blocks for a block storage driver that runs on PowerVS virtual
machines inside a Kubernetes cluster.

## What is in the package

- **Cloud model** (`powervs_csi.cloud`): the `Disk`, `DiskOptions` and
  `PVMInstance` dataclasses, the abstract `Cloud` base class that a storage
  backend implements (create, delete, attach, detach, resize and look up
  volumes; look up instances; update storage pool affinity), and
  `resolve_volume_type`, which accepts `tier1` or `tier3`, returns the default
  type `tier1` for an empty string and raises `ValueError` otherwise. Missing
  resources are signalled with `ResourceNotFoundError`;
  `ResourceAlreadyExistsError` is also defined.
- **Instance metadata** (`powervs_csi.metadata`): `tokenize_provider_id`
  splits a provider ID of the form
  `ibmpowervs://<region>/<zone>/<service_instance_id>/<powervs_machine_id>`
  into a frozen `Metadata` value and raises `MetadataError` for a malformed
  ID. `get_instance_info_from_provider_id(clientset, node_name)` reads the
  node through `clientset.get_node(node_name)` and parses its `provider_id`;
  `kubernetes_api_instance_info(clientset)` does the same for the node named
  by the `CSI_NODE_NAME` environment variable; `new_metadata_service` builds
  the client with a caller-supplied factory from a kubeconfig path first.
  `MetadataService` is a protocol with `region`, `zone`, `cloud_instance_id`
  and `pvm_instance_id`.
- **Node update** (`powervs_csi.node_scope`, `powervs_csi.nodeupdate`):
  `new_node_update_scope(params, cloud_factory)` checks that a
  `NodeUpdateScopeParams` names a service instance, an instance and a zone
  (raising `ValueError` otherwise) and opens a cloud with
  `cloud_factory(service_instance_id, zone, False)`.
  `NodeUpdateReconciler(client, cloud_factory).reconcile(node_name)` turns
  storage pool affinity off for an `ACTIVE` or `SHUTOFF` instance that still
  has it on. A node the client reports with `NodeNotFoundError` is ignored;
  other failures raise `ReconcileError`.
- **Multipath devices**:
  - `powervs_csi.device_utils`: named-group regex matching, first-line file
    reads, and sysfs helpers `get_mpath_name`, `get_uuid` and
    `delete_sd_device`.
  - `powervs_csi.multipath`: counting active paths with `dmsetup status`,
    disabling queueing, removing device maps (the root map `mpatha` is never
    removed), retrying removal, and deleting SCSI devices that `multipathd`
    reports as orphan. Failures raise `MultipathError`.
  - `powervs_csi.device`: `Device(wwn)` with `populate`, `create_device`
    (rescans SCSI hosts until a map with at least one active path appears)
    and `delete_device`; plus `scsi_host_rescan`, `scsi_host_rescan_with_lock`
    (concurrent callers share one running scan) and `get_device_wwn`.
    Failures raise `DeviceError`.
- **Driver options** (`powervs_csi.options`): `get_options(argv)` parses a
  command line into `Options`. The first argument may be a `Mode`
  (`controller`, `node` or `all`; default `all`). Flags may be written with
  one or two dashes: `endpoint` (default `unix://tmp/csi.sock`), `debug`,
  `kubeconfig`, `cloud-config`, `v` (log verbosity) and, except in controller
  mode, `volume-attach-limit` (default `-1`). An unknown command or bad flag
  raises `UsageError`; `-version` prints version information as JSON and
  raises `SystemExit(0)`.

## Examples

Reading a provider ID:

```python
from powervs_csi.metadata import MetadataError, tokenize_provider_id

metadata = tokenize_provider_id("ibmpowervs://us-south/dal12/instance-1/machine-1")
print(metadata.zone)  # dal12

try:
    tokenize_provider_id("ibmpowervs://us-south//instance-1/machine-1")
except MetadataError as exc:
    print(exc)  # ... err: zone can't be empty
```

Choosing a volume type:

```python
from powervs_csi.cloud import resolve_volume_type

resolve_volume_type("tier3")  # "tier3"
resolve_volume_type("")       # "tier1"
```

Parsing driver options:

```python
from powervs_csi.options import Mode, get_options

options = get_options(["node", "--endpoint=unix:///csi/csi.sock", "--volume-attach-limit=8"])
assert options.driver_mode is Mode.NODE
assert options.node_options.volume_attach_limit == 8
```

## What the package does not do

- It does not include a CSI gRPC server or a command to start one; there is
  no console script.
- It has no concrete `Cloud` implementation and no Kubernetes client. Callers
  supply a `Cloud` (through a factory) and a client object with a
  `get_node(name)` method.

## Requirements

Python 3.10 or later, no third-party dependencies. The device and multipath
modules expect a Linux host with `dmsetup`, `multipathd` and `bash`
available and access to `/sys`.