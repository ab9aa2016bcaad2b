"""Volume and instance model for the PowerVS block storage cloud."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Optional

GIB = 1 << 30

VOLUME_TYPE_TIER1 = "tier1"
VOLUME_TYPE_TIER3 = "tier3"
VALID_VOLUME_TYPES = (VOLUME_TYPE_TIER1, VOLUME_TYPE_TIER3)

DEFAULT_VOLUME_SIZE = 10 * GIB
DEFAULT_VOLUME_TYPE = VOLUME_TYPE_TIER1


class ResourceNotFoundError(LookupError):
    """A cloud resource does not exist."""

    def __init__(self, message: str = "resource was not found") -> None:
        super().__init__(message)


class ResourceAlreadyExistsError(Exception):
    """A cloud resource exists already."""

    def __init__(self, message: str = "resource already exists") -> None:
        super().__init__(message)


@dataclass
class Disk:
    """A PowerVS volume."""

    volume_id: str = ""
    disk_type: str = ""
    wwn: str = ""
    name: str = ""
    shareable: bool = False
    capacity_gib: int = 0


@dataclass
class DiskOptions:
    """Parameters for creating a PowerVS volume."""

    shareable: bool = False
    capacity_bytes: int = 0
    volume_type: str = ""


@dataclass
class PVMInstance:
    """A PowerVS virtual machine instance."""

    id: str = ""
    disk_type: str = ""
    name: str = ""
    status: Optional[str] = None
    storage_pool_affinity: Optional[bool] = None


def resolve_volume_type(volume_type: str) -> str:
    """Return the volume type to create, applying the default for an empty one."""
    if volume_type in VALID_VOLUME_TYPES:
        return volume_type
    if volume_type == "":
        return DEFAULT_VOLUME_TYPE
    raise ValueError(f'invalid PowerVS VolumeType "{volume_type}"')


class Cloud(abc.ABC):
    """Operations the driver needs from the PowerVS cloud.

    Failures are raised; a missing resource raises ResourceNotFoundError.
    """

    @abc.abstractmethod
    def create_disk(self, volume_name: str, disk_options: DiskOptions) -> Disk:
        """Create a volume and wait until it is available."""

    @abc.abstractmethod
    def delete_disk(self, volume_id: str) -> bool:
        """Delete a volume; return True on success."""

    @abc.abstractmethod
    def attach_disk(self, volume_id: str, node_id: str) -> None:
        """Attach a volume to an instance and wait until it is in use."""

    @abc.abstractmethod
    def detach_disk(self, volume_id: str, node_id: str) -> None:
        """Detach a volume from an instance and wait until it is available."""

    @abc.abstractmethod
    def resize_disk(self, volume_id: str, req_size: int) -> int:
        """Resize a volume to at least req_size bytes; return the new size."""

    @abc.abstractmethod
    def wait_for_volume_state(self, volume_id: str, state: str) -> None:
        """Block until the volume reaches the given state."""

    @abc.abstractmethod
    def get_disk_by_name(self, name: str) -> Disk:
        """Look a volume up by its name."""

    @abc.abstractmethod
    def get_disk_by_id(self, volume_id: str) -> Disk:
        """Look a volume up by its identifier."""

    @abc.abstractmethod
    def get_pvm_instance_by_name(self, instance_name: str) -> PVMInstance:
        """Look an instance up by its server name."""

    @abc.abstractmethod
    def get_pvm_instance_by_id(self, instance_id: str) -> PVMInstance:
        """Look an instance up by its identifier."""

    @abc.abstractmethod
    def get_pvm_instance_details(self, instance_id: str) -> PVMInstance:
        """Return full instance details, including status and pool affinity."""

    @abc.abstractmethod
    def update_storage_pool_affinity(self, instance_id: str) -> None:
        """Set the instance's storage pool affinity to the driver's setting."""

    @abc.abstractmethod
    def is_attached(self, volume_id: str, node_id: str) -> bool:
        """Return whether the volume is attached to the instance."""