"""Discovery and removal of multipath block devices by WWN."""

from __future__ import annotations

import logging
import os
import re
import threading
import time
from dataclasses import dataclass

from powervs_csi.device_utils import find_string_submatch_map, get_mpath_name, get_uuid
from powervs_csi.multipath import (
    DMSETUP_COMMAND,
    MAJOR_MINOR_PATTERN,
    MultipathError,
    _run,
    cleanup_orphan_paths,
    get_paths_count,
    multipath_remove_dm_device,
    retry_cleanup_device,
)

logger = logging.getLogger(__name__)

SCSI_HOST_DIR = "/sys/class/scsi_host"
MAPPER_PREFIX = "/dev/mapper/"
DISCOVERY_ATTEMPTS = 11
RESCAN_WAIT_LIMIT = 60.0

_SCAN_LOCK = threading.Lock()
_MAJOR_MINOR_REGEXP = re.compile(MAJOR_MINOR_PATTERN)


class DeviceError(Exception):
    """A multipath device could not be found or created."""


def _wwn_from_uuid(uuid: str) -> str:
    # The WWID carries a one-character SCSI id type prefix before the WWN.
    return uuid.removeprefix("mpath-")[1:]


@dataclass
class Device:
    """A multipath device identified by its WWN."""

    wwn: str
    mapper: str = ""
    slaves: int = 0

    def populate(self, need_active_path: bool) -> None:
        """Find the multipath map for this WWN and record its mapper and path count."""
        ok, out = _run([DMSETUP_COMMAND, "ls", "--target", "multipath"])
        if not ok:
            raise DeviceError(f"failed to retrieve multipath devices: {out}")

        for match in _MAJOR_MINOR_REGEXP.finditer(out):
            result = find_string_submatch_map(match.group(0), _MAJOR_MINOR_REGEXP)
            dm_name = "dm-" + result["Minor"]
            try:
                uuid = get_uuid(dm_name)
            except OSError as err:
                logger.warning("%s", err)
                continue
            map_name = get_mpath_name(dm_name)
            device_wwn = _wwn_from_uuid(uuid)

            try:
                slaves = get_paths_count(map_name)
            except MultipathError as err:
                raise DeviceError(f"unable to count slaves for device {self.wwn}: {err}") from err

            if slaves == 0:
                logger.warning("cleaning mapper %s as no active disks present", map_name)
                try:
                    multipath_remove_dm_device(map_name)
                except MultipathError:
                    pass
            elif self.wwn.casefold() == device_wwn.casefold():
                self.mapper = MAPPER_PREFIX + map_name
                self.slaves = slaves
                break

    def delete_device(self) -> None:
        """Remove the multipath map and forget it."""
        try:
            retry_cleanup_device(self.mapper)
        except MultipathError as err:
            logger.warning("error while deleting multipath device %s: %s", self.mapper, err)
            raise
        self.mapper = ""
        self.slaves = 0

    def create_device(self) -> None:
        """Rescan SCSI hosts until the device for this WWN appears."""
        try:
            self._create_linux_device()
        except Exception:
            logger.error("unable to create device for wwn %s", self.wwn)
            raise
        if not self.mapper:
            raise DeviceError(f"unable to find the device for wwn {self.wwn}")

    def _create_linux_device(self) -> None:
        for _ in range(DISCOVERY_ATTEMPTS):
            scsi_host_rescan_with_lock()
            time.sleep(1)
            self.populate(True)
            if self.slaves > 0:
                return
            time.sleep(5)
        raise DeviceError(f"fc device not found for wwn {self.wwn}")


def scsi_host_rescan() -> None:
    """Ask every SCSI host to rescan all channels, targets and LUNs."""
    for name in sorted(os.listdir(SCSI_HOST_DIR)):
        scan_path = os.path.join(SCSI_HOST_DIR, name, "scan")
        try:
            with open(scan_path, "w", encoding="utf-8") as handle:
                handle.write("- - -")
        except OSError as err:
            raise DeviceError(f"scsi host rescan failed: {err}") from err


def scsi_host_rescan_with_lock() -> None:
    """Rescan SCSI hosts, letting concurrent callers share one running scan.

    A caller that finds a scan in progress waits for it (up to a minute)
    and does not scan again.
    """
    start = time.monotonic()
    scan = True
    while True:
        if _SCAN_LOCK.acquire(blocking=False):
            try:
                if scan:
                    cleanup_orphan_paths()
                    scsi_host_rescan()
            finally:
                _SCAN_LOCK.release()
            return
        if time.monotonic() - start > RESCAN_WAIT_LIMIT:
            return
        scan = False
        time.sleep(5)


def get_device_wwn(path_name: str) -> str:
    """Return the WWN of a dm device given as ``/dev/dm-N``, ``dm-N`` or a mapper path."""
    if path_name.startswith(MAPPER_PREFIX):
        path_name = os.path.realpath(path_name, strict=True)
    path_name = path_name.removeprefix("/dev/")
    return _wwn_from_uuid(get_uuid(path_name))