"""Reconciler that turns off storage pool affinity on node instances."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from powervs_csi.metadata import MetadataError, tokenize_provider_id
from powervs_csi.node_scope import (
    POWERVS_INSTANCE_STATE_ACTIVE,
    POWERVS_INSTANCE_STATE_SHUTOFF,
    STORAGE_POOL_AFFINITY,
    CloudFactory,
    NodeUpdateScopeParams,
    new_node_update_scope,
)

logger = logging.getLogger(__name__)


class ReconcileError(Exception):
    """Reconciliation failed and should be retried."""


class NodeNotFoundError(LookupError):
    """The node requested from the cluster does not exist."""


@dataclass
class NodeUpdateReconciler:
    """Reconciles nodes against their PowerVS instances.

    ``client.get_node(name)`` returns an object with ``provider_id`` (and
    optionally ``namespace``), raising NodeNotFoundError for a missing node.
    """

    client: Any
    cloud_factory: CloudFactory

    def reconcile(self, node_name: str) -> None:
        """Bring the named node's instance to the wanted storage pool affinity."""
        try:
            node = self.client.get_node(node_name)
        except NodeNotFoundError:
            logger.info("%s: Node not found - do nothing", node_name)
            return
        except Exception as err:
            raise ReconcileError(f"error getting node: {err}") from err

        provider_id = node.provider_id
        if not provider_id:
            return
        logger.info("PROVIDER-ID: %s", provider_id)

        try:
            metadata = tokenize_provider_id(provider_id)
        except MetadataError as err:
            raise ReconcileError(
                f"failed to tokenize the providerID and err: {err}"
            ) from err

        try:
            scope = new_node_update_scope(
                NodeUpdateScopeParams(
                    service_instance_id=metadata.cloud_instance_id,
                    instance_id=metadata.pvm_instance_id,
                    zone=metadata.zone,
                ),
                self.cloud_factory,
            )
        except Exception as err:
            raise ReconcileError(f"failed to create nodeUpdateScope: {err}") from err

        try:
            instance = scope.cloud.get_pvm_instance_details(scope.instance_id)
        except Exception as err:
            logger.info("Unable to fetch Instance Details %s", err)
            return

        if instance is None:
            return
        logger.info("StoragePoolAffinity: %s", instance.storage_pool_affinity)
        if not instance.storage_pool_affinity:
            return

        if instance.status not in (POWERVS_INSTANCE_STATE_SHUTOFF, POWERVS_INSTANCE_STATE_ACTIVE):
            logger.info("PowerVS instance - %s state not ACTIVE/SHUTOFF yet", instance.id)
            return

        if instance.storage_pool_affinity == STORAGE_POOL_AFFINITY:
            logger.info(
                "PowerVS instance - %s Storage pool affinity already %s",
                instance.id,
                STORAGE_POOL_AFFINITY,
            )
            return

        try:
            scope.cloud.update_storage_pool_affinity(scope.instance_id)
        except Exception as err:
            logger.info("unable to update instance StoragePoolAffinity %s", err)
            namespace = getattr(node, "namespace", "")
            raise ReconcileError(
                f"failed to reconcile VSI for IBMPowerVSMachine {namespace}/{node_name}: {err}"
            ) from err