"""Helpers for reading device-mapper attributes from sysfs."""

from __future__ import annotations

import os
import re
from typing import Pattern, Union

SYS_BLOCK_DIR = "/sys/block"


def find_string_submatch_map(text: str, pattern: Union[str, Pattern[str]]) -> dict[str, str]:
    """Return the named groups of the first match of pattern in text, or {}."""
    regexp = re.compile(pattern) if isinstance(pattern, str) else pattern
    match = regexp.search(text)
    if match is None:
        return {}
    return {name: value or "" for name, value in match.groupdict().items()}


def read_first_line(path: str) -> str:
    """Return the first line of a file without its line ending."""
    with open(path, encoding="utf-8") as handle:
        line = handle.readline()
    line = line.rstrip("\n")
    if line.endswith("\r"):
        line = line[:-1]
    return line


def get_mpath_name(pathname: str) -> str:
    """Return the device-mapper name of a dm device such as ``dm-3``."""
    return read_first_line(os.path.join(SYS_BLOCK_DIR, pathname, "dm", "name"))


def get_uuid(pathname: str) -> str:
    """Return the device-mapper UUID of a dm device such as ``dm-3``."""
    return read_first_line(os.path.join(SYS_BLOCK_DIR, pathname, "dm", "uuid"))


def delete_sd_device(delete_path: str) -> None:
    """Delete a SCSI device by writing ``1`` to its sysfs delete file."""
    try:
        with open(delete_path, "w", encoding="utf-8") as handle:
            handle.write("1")
    except OSError as err:
        raise OSError(f"error writing to file {delete_path}: {err}") from err