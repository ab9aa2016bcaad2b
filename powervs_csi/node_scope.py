"""Scope for updating a single PowerVS instance backing a node."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from powervs_csi.cloud import Cloud

logger = logging.getLogger(__name__)

POWERVS_INSTANCE_STATE_SHUTOFF = "SHUTOFF"
POWERVS_INSTANCE_STATE_ACTIVE = "ACTIVE"
STORAGE_POOL_AFFINITY = False

CloudFactory = Callable[[str, str, bool], Cloud]


@dataclass(frozen=True)
class NodeUpdateScopeParams:
    """Identifies the instance to update."""

    service_instance_id: str = ""
    instance_id: str = ""
    zone: str = ""


@dataclass
class NodeUpdateScope:
    """A cloud connection bound to one instance."""

    cloud: Cloud
    service_instance_id: str
    instance_id: str
    zone: str


def new_node_update_scope(
    params: NodeUpdateScopeParams, cloud_factory: CloudFactory
) -> NodeUpdateScope:
    """Validate params and open a cloud connection with cloud_factory(service, zone, debug)."""
    if not params.service_instance_id:
        raise ValueError("ServiceInstanceId is required when creating a NodeUpdateScope")
    if not params.instance_id:
        raise ValueError("InstanceId is required when creating a NodeUpdateScope")
    if not params.zone:
        raise ValueError("zone is required when creating a NodeUpdateScope")

    try:
        cloud = cloud_factory(params.service_instance_id, params.zone, False)
    except Exception as err:
        logger.error("Failed to get powervs cloud: %s", err)
        raise

    return NodeUpdateScope(
        cloud=cloud,
        service_instance_id=params.service_instance_id,
        instance_id=params.instance_id,
        zone=params.zone,
    )