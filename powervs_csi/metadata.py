"""Instance metadata derived from a Kubernetes node's provider ID."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

PROVIDER_ID_VALID_LENGTH = 6
NODE_NAME_ENV = "CSI_NODE_NAME"

_ERR_FORMAT = (
    "invalid ProviderID format - {provider_id}, expected format - "
    "ibmpowervs://<region>/<zone>/<service_instance_id>/<powervs_machine_id>, err: {reason}"
)


class MetadataError(ValueError):
    """Instance metadata could not be obtained or parsed."""


@runtime_checkable
class MetadataService(Protocol):
    """Information about the instance the driver runs on."""

    region: str
    zone: str
    cloud_instance_id: str
    pvm_instance_id: str


@dataclass(frozen=True)
class Metadata:
    """Region, zone, service instance and machine of a PowerVS instance."""

    region: str
    zone: str
    cloud_instance_id: str
    pvm_instance_id: str


def tokenize_provider_id(provider_id: str) -> Metadata:
    """Parse ibmpowervs://<region>/<zone>/<service_instance_id>/<powervs_machine_id>."""
    parts = provider_id.split("/")

    def fail(reason: str) -> MetadataError:
        return MetadataError(_ERR_FORMAT.format(provider_id=provider_id, reason=reason))

    if len(parts) != PROVIDER_ID_VALID_LENGTH:
        raise fail("invalid length")
    for value, what in zip(
        parts[2:],
        ("region", "zone", "service_instance_id", "powervs_machine_id"),
    ):
        if value == "":
            raise fail(f"{what} can't be empty")
    return Metadata(
        region=parts[2],
        zone=parts[3],
        cloud_instance_id=parts[4],
        pvm_instance_id=parts[5],
    )


def get_instance_info_from_provider_id(clientset: Any, node_name: str) -> Metadata:
    """Read the node through ``clientset.get_node(name)`` and parse its provider ID."""
    try:
        node = clientset.get_node(node_name)
    except Exception as err:
        raise MetadataError(f"error getting Node {node_name}: {err}") from err

    provider_id = node.provider_id
    if not provider_id:
        raise MetadataError(f"ProviderID is empty for the node: {node_name}")
    logger.info("Node Name: %s, Provider ID: %s", node_name, provider_id)
    return tokenize_provider_id(provider_id)


def kubernetes_api_instance_info(clientset: Any) -> Metadata:
    """Return metadata for the node named by the CSI_NODE_NAME variable."""
    node_name = os.environ.get(NODE_NAME_ENV, "")
    if not node_name:
        raise MetadataError(f"{NODE_NAME_ENV} env var not set")
    return get_instance_info_from_provider_id(clientset, node_name)


def new_metadata_service(
    k8s_api_client: Callable[[str], Any], kubeconfig: str
) -> MetadataService:
    """Build a client from kubeconfig and fetch this instance's metadata."""
    logger.info("retrieving instance data from kubernetes api")
    try:
        clientset = k8s_api_client(kubeconfig)
    except Exception as err:
        logger.warning("error creating kubernetes api client: %s", err)
        raise MetadataError(
            "error getting instance data from ec2 metadata or kubernetes api"
        ) from err
    logger.info("kubernetes api is available")
    return kubernetes_api_instance_info(clientset)