from types import SimpleNamespace

import pytest

from powervs_csi.cloud import Cloud, PVMInstance, ResourceNotFoundError
from powervs_csi.nodeupdate import NodeNotFoundError, NodeUpdateReconciler, ReconcileError

PROVIDER_ID = "ibmpowervs://us-south/dal12/svc-instance/machine-1"


class _Client:
    def __init__(self, nodes=None, error=None):
        self.nodes = nodes or {}
        self.error = error

    def get_node(self, name):
        if self.error is not None:
            raise self.error
        if name not in self.nodes:
            raise NodeNotFoundError(name)
        return SimpleNamespace(provider_id=self.nodes[name], namespace="")


class _Cloud(Cloud):
    def __init__(self, instance=None, details_error=None, update_error=None):
        self.instance = instance
        self.details_error = details_error
        self.update_error = update_error
        self.updated = []

    def get_pvm_instance_details(self, instance_id):
        if self.details_error is not None:
            raise self.details_error
        return self.instance

    def update_storage_pool_affinity(self, instance_id):
        if self.update_error is not None:
            raise self.update_error
        self.updated.append(instance_id)

    def create_disk(self, volume_name, disk_options):
        raise ResourceNotFoundError()

    def delete_disk(self, volume_id):
        return False

    def attach_disk(self, volume_id, node_id):
        raise ResourceNotFoundError()

    def detach_disk(self, volume_id, node_id):
        raise ResourceNotFoundError()

    def resize_disk(self, volume_id, req_size):
        raise ResourceNotFoundError()

    def wait_for_volume_state(self, volume_id, state):
        raise ResourceNotFoundError()

    def get_disk_by_name(self, name):
        raise ResourceNotFoundError()

    def get_disk_by_id(self, volume_id):
        raise ResourceNotFoundError()

    def get_pvm_instance_by_name(self, instance_name):
        raise ResourceNotFoundError()

    def get_pvm_instance_by_id(self, instance_id):
        raise ResourceNotFoundError()

    def is_attached(self, volume_id, node_id):
        return False


def _reconciler(client, cloud, calls=None):
    def factory(service_instance_id, zone, debug):
        if calls is not None:
            calls.append((service_instance_id, zone, debug))
        return cloud

    return NodeUpdateReconciler(client=client, cloud_factory=factory)


def _instance(status, affinity):
    return PVMInstance(id="machine-1", status=status, storage_pool_affinity=affinity)


@pytest.mark.parametrize("status", ["ACTIVE", "SHUTOFF"])
def test_affinity_turned_off_for_ready_instance(status):
    cloud = _Cloud(instance=_instance(status, True))
    calls = []
    _reconciler(_Client({"n1": PROVIDER_ID}), cloud, calls).reconcile("n1")
    assert cloud.updated == ["machine-1"]
    assert calls == [("svc-instance", "dal12", False)]


def test_instance_not_ready_is_left_alone():
    cloud = _Cloud(instance=_instance("BUILD", True))
    _reconciler(_Client({"n1": PROVIDER_ID}), cloud).reconcile("n1")
    assert cloud.updated == []


def test_instance_without_affinity_is_left_alone():
    cloud = _Cloud(instance=_instance("ACTIVE", False))
    _reconciler(_Client({"n1": PROVIDER_ID}), cloud).reconcile("n1")
    assert cloud.updated == []


def test_missing_node_does_nothing():
    calls = []
    cloud = _Cloud(instance=_instance("ACTIVE", True))
    _reconciler(_Client({}), cloud, calls).reconcile("gone")
    assert calls == []
    assert cloud.updated == []


def test_empty_provider_id_does_nothing():
    calls = []
    _reconciler(_Client({"n1": ""}), _Cloud(), calls).reconcile("n1")
    assert calls == []


def test_client_error_raises():
    with pytest.raises(ReconcileError, match="error getting node: boom"):
        _reconciler(_Client(error=RuntimeError("boom")), _Cloud()).reconcile("n1")


def test_bad_provider_id_raises():
    with pytest.raises(ReconcileError, match="failed to tokenize the providerID"):
        _reconciler(_Client({"n1": "not-a-provider-id"}), _Cloud()).reconcile("n1")


def test_scope_creation_failure_raises():
    def factory(service_instance_id, zone, debug):
        raise ConnectionError("unreachable")

    reconciler = NodeUpdateReconciler(client=_Client({"n1": PROVIDER_ID}), cloud_factory=factory)
    with pytest.raises(ReconcileError, match="failed to create nodeUpdateScope"):
        reconciler.reconcile("n1")


def test_details_failure_is_not_an_error():
    cloud = _Cloud(details_error=ResourceNotFoundError())
    _reconciler(_Client({"n1": PROVIDER_ID}), cloud).reconcile("n1")
    assert cloud.updated == []


def test_update_failure_raises():
    cloud = _Cloud(instance=_instance("ACTIVE", True), update_error=RuntimeError("denied"))
    with pytest.raises(ReconcileError, match="failed to reconcile VSI for IBMPowerVSMachine /n1"):
        _reconciler(_Client({"n1": PROVIDER_ID}), cloud).reconcile("n1")