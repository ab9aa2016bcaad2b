"""Multipath and device-mapper maintenance through dmsetup and multipathd."""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess
import time

from powervs_csi.device_utils import delete_sd_device, find_string_submatch_map

logger = logging.getLogger(__name__)

MULTIPATHD = "multipathd"
DMSETUP_COMMAND = "dmsetup"
MAJOR_MINOR_PATTERN = r"(.*)\((?P<Major>\d+),\s+(?P<Minor>\d+)\)"
ORPHAN_PATHS_PATTERN = (
    r".*\s+(?P<host>\d+):(?P<channel>\d+):(?P<target>\d+):(?P<lun>\d+).*orphan"
)
DEVICE_DOES_NOT_EXIST = "No such device or address"
SCSI_DEVICE_DIR = "/sys/class/scsi_device"

SHOW_PATHS_FORMAT = ("show", "paths", "raw", "format", "%w %d %t %i %o %T %z %s %m")
ORPHAN_PATH_REGEXP = re.compile(ORPHAN_PATHS_PATTERN)

CLEANUP_MAX_TRIES = 10
CLEANUP_RETRY_DELAY = 5.0

_PATHS_COUNT_AWK = (
    "awk 'BEGIN{RS=\" \";active=0}/[0-9]+:[0-9]+/{dev=1}"
    "/A/{if (dev == 1) active++; dev=0} END{ print active }'"
)


class MultipathError(Exception):
    """A multipath or device-mapper command failed."""


def _run(args: list[str]) -> tuple[bool, str]:
    """Run a command; return whether it succeeded and its combined output."""
    try:
        completed = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as err:
        return False, str(err)
    return completed.returncode == 0, completed.stdout or ""


def get_paths_count(mapper: str) -> int:
    """Return the number of active paths of a multipath device."""
    status_cmd = (
        f"dmsetup status --target multipath {shlex.quote(mapper)} | {_PATHS_COUNT_AWK}"
    )
    ok, output = _run(["bash", "-c", status_cmd])
    out = output.removesuffix("\n")
    if not ok or is_dmsetup_status_error(out):
        raise MultipathError(f"error while running dmsetup status command: {out}")
    try:
        return int(out)
    except ValueError as err:
        raise MultipathError(f"unexpected dmsetup status output: {out}") from err


def is_dmsetup_status_error(msg: str) -> bool:
    """Return whether dmsetup status output signals a failure."""
    return msg == "" or "Command failed" in msg


def is_multipath_timeout_error(msg: str) -> bool:
    """Return whether multipathd output signals a timeout."""
    return "timeout" in msg or "receiving packet" in msg


def is_dmsetup_remove_error(msg: str) -> bool:
    """Return whether dmsetup remove output is neither empty, ok, nor a missing device."""
    return msg != "" and "ok" not in msg and DEVICE_DOES_NOT_EXIST not in msg


def multipath_disable_queuing(mapper: str) -> None:
    """Make the multipath device fail I/O when no path is left."""
    ok, out = _run([DMSETUP_COMMAND, "message", mapper, "0", "fail_if_no_path"])
    if not ok:
        raise MultipathError(out)
    if DEVICE_DOES_NOT_EXIST in out:
        raise MultipathError(f"cannot disable queuing: {out}")


def multipath_remove_dm_device(mapper: str) -> None:
    """Remove a multipath device map; the root map ``mpatha`` is left alone."""
    if mapper.endswith("mpatha"):
        logger.warning("skipping remove mpatha which is root")
        return

    try:
        multipath_disable_queuing(mapper)
    except MultipathError as err:
        logger.warning("failure while disabling queue for %s: %s", mapper, err)

    ok, out = _run([DMSETUP_COMMAND, "remove", "--force", mapper])
    if not ok:
        raise MultipathError(f"failed to remove multipath map for {mapper}, error: {out}")
    if is_dmsetup_remove_error(out):
        raise MultipathError(f"failed to remove device map for {mapper}, error: {out}")


def retry_cleanup_device(mapper: str) -> None:
    """Try to remove a device map several times, raising the last failure."""
    last_error: MultipathError | None = None
    for _ in range(CLEANUP_MAX_TRIES):
        try:
            multipath_remove_dm_device(mapper)
            return
        except MultipathError as err:
            last_error = err
        time.sleep(CLEANUP_RETRY_DELAY)
    assert last_error is not None
    raise last_error


def cleanup_orphan_paths() -> None:
    """Delete SCSI devices that multipathd reports as orphan (best effort)."""
    ok, out = _run([MULTIPATHD, *SHOW_PATHS_FORMAT])
    if not ok:
        logger.warning("failed to run multipathd %s, err: %s", list(SHOW_PATHS_FORMAT), out)
        return
    if is_multipath_timeout_error(out):
        logger.warning("failed to get multipathd %s, out %s", list(SHOW_PATHS_FORMAT), out)
        return

    for match in ORPHAN_PATH_REGEXP.finditer(out):
        result = find_string_submatch_map(match.group(0), ORPHAN_PATH_REGEXP)
        address = ":".join(result[key] for key in ("host", "channel", "target", "lun"))
        delete_path = os.path.join(SCSI_DEVICE_DIR, address, "device", "delete")
        try:
            delete_sd_device(delete_path)
        except OSError as err:
            logger.warning("error while deleting device: %s", err)