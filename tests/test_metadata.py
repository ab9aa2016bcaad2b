from types import SimpleNamespace

import pytest

from powervs_csi.metadata import (
    Metadata,
    MetadataError,
    MetadataService,
    get_instance_info_from_provider_id,
    kubernetes_api_instance_info,
    new_metadata_service,
    tokenize_provider_id,
)

VALID_ID = "ibmpowervs://us-south/dal12/svc-instance/machine-1"


class _Clientset:
    def __init__(self, nodes):
        self.nodes = nodes

    def get_node(self, name):
        if name not in self.nodes:
            raise KeyError(name)
        return SimpleNamespace(provider_id=self.nodes[name])


def test_tokenize_valid_provider_id():
    metadata = tokenize_provider_id(VALID_ID)
    assert metadata == Metadata(
        region="us-south",
        zone="dal12",
        cloud_instance_id="svc-instance",
        pvm_instance_id="machine-1",
    )
    assert isinstance(metadata, MetadataService)


@pytest.mark.parametrize(
    "provider_id",
    ["", "ibmpowervs://us-south/dal12/svc", "ibmpowervs://a/b/c/d/e"],
)
def test_tokenize_invalid_length(provider_id):
    with pytest.raises(MetadataError, match="invalid length"):
        tokenize_provider_id(provider_id)


@pytest.mark.parametrize(
    "provider_id, reason",
    [
        ("ibmpowervs:///dal12/svc/m", "region can't be empty"),
        ("ibmpowervs://us-south//svc/m", "zone can't be empty"),
        ("ibmpowervs://us-south/dal12//m", "service_instance_id can't be empty"),
        ("ibmpowervs://us-south/dal12/svc/", "powervs_machine_id can't be empty"),
    ],
)
def test_tokenize_empty_parts(provider_id, reason):
    with pytest.raises(MetadataError, match=reason):
        tokenize_provider_id(provider_id)


def test_error_names_expected_format():
    with pytest.raises(MetadataError) as info:
        tokenize_provider_id("bogus")
    assert "ibmpowervs://<region>/<zone>/<service_instance_id>/<powervs_machine_id>" in str(info.value)
    assert "bogus" in str(info.value)


def test_instance_info_from_node():
    clientset = _Clientset({"n1": VALID_ID})
    assert get_instance_info_from_provider_id(clientset, "n1") == tokenize_provider_id(VALID_ID)


def test_instance_info_missing_node():
    with pytest.raises(MetadataError, match="error getting Node n2"):
        get_instance_info_from_provider_id(_Clientset({}), "n2")


def test_instance_info_empty_provider_id():
    with pytest.raises(MetadataError, match="ProviderID is empty for the node: n1"):
        get_instance_info_from_provider_id(_Clientset({"n1": ""}), "n1")


def test_kubernetes_api_instance_info_uses_env(monkeypatch):
    monkeypatch.setenv("CSI_NODE_NAME", "n1")
    metadata = kubernetes_api_instance_info(_Clientset({"n1": VALID_ID}))
    assert metadata.pvm_instance_id == "machine-1"


def test_kubernetes_api_instance_info_without_env(monkeypatch):
    monkeypatch.delenv("CSI_NODE_NAME", raising=False)
    with pytest.raises(MetadataError, match="CSI_NODE_NAME env var not set"):
        kubernetes_api_instance_info(_Clientset({"n1": VALID_ID}))


def test_new_metadata_service_passes_kubeconfig(monkeypatch):
    monkeypatch.setenv("CSI_NODE_NAME", "n1")
    seen = []

    def factory(kubeconfig):
        seen.append(kubeconfig)
        return _Clientset({"n1": VALID_ID})

    service = new_metadata_service(factory, "/tmp/kubeconfig")
    assert seen == ["/tmp/kubeconfig"]
    assert service.zone == "dal12"


def test_new_metadata_service_client_failure():
    def factory(kubeconfig):
        raise OSError("no config")

    with pytest.raises(MetadataError, match="kubernetes api"):
        new_metadata_service(factory, "")