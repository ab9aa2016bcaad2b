"""Command-line options of the CSI driver for every operating mode."""

from __future__ import annotations

import argparse
import enum
import json
import logging
import platform
import sys
from dataclasses import dataclass, field
from typing import NoReturn, Optional, Sequence

logger = logging.getLogger(__name__)

PROGRAM_NAME = "ibm-powervs-block-csi-driver"
DEFAULT_CSI_ENDPOINT = "unix://tmp/csi.sock"
DEFAULT_VOLUME_ATTACH_LIMIT = -1

DRIVER_VERSION = ""
GIT_COMMIT = ""
BUILD_DATE = ""

_TRUE_WORDS = {"1", "t", "true", "TRUE", "True", "T"}
_FALSE_WORDS = {"0", "f", "false", "FALSE", "False", "F"}


class UsageError(ValueError):
    """The command line could not be understood."""


class Mode(str, enum.Enum):
    """Which services the driver runs."""

    CONTROLLER = "controller"
    NODE = "node"
    ALL = "all"


class _FlagParser(argparse.ArgumentParser):
    """Argument parser that raises UsageError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def _parse_int(text: str) -> int:
    try:
        return int(text, 0)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"invalid integer value {text!r}") from err


def _add_flag(parser: argparse.ArgumentParser, name: str, **kwargs) -> None:
    """Register a flag usable as -name, -name=value, --name or --name=value."""
    parser.add_argument(f"-{name}", f"--{name}", dest=name.replace("-", "_"), **kwargs)


def _add_bool_flag(parser: argparse.ArgumentParser, name: str, help_text: str) -> None:
    _add_flag(
        parser,
        name,
        nargs="?",
        const=True,
        default=False,
        type=_parse_bool,
        help=help_text,
    )


@dataclass
class NodeOptions:
    """Settings for the node service."""

    volume_attach_limit: int = 0

    def add_flags(self, parser: argparse.ArgumentParser) -> None:
        """Register the node service flags on parser."""
        _add_flag(
            parser,
            "volume-attach-limit",
            type=_parse_int,
            default=DEFAULT_VOLUME_ATTACH_LIMIT,
            help=(
                "Value for the maximum number of volumes attachable per node. "
                "If specified, the limit applies to all nodes. If not specified, "
                "the value is approximated from the instance type."
            ),
        )


@dataclass
class ServerOptions:
    """Settings for the driver server."""

    endpoint: str = ""
    debug: bool = False
    kubeconfig: str = ""
    cloudconfig: str = ""

    def add_flags(self, parser: argparse.ArgumentParser) -> None:
        """Register the server flags on parser."""
        _add_flag(
            parser,
            "endpoint",
            default=DEFAULT_CSI_ENDPOINT,
            help="Endpoint for the CSI driver server",
        )
        _add_bool_flag(
            parser,
            "debug",
            "Debug option PowerVS client(Prints API requests and replies)",
        )
        _add_flag(parser, "kubeconfig", default="", help="Kubeconfig of the cluster")
        _add_flag(
            parser,
            "cloud-config",
            default="",
            help=(
                "The path to the cloud provider configuration file. "
                "Empty string for no configuration file."
            ),
        )


@dataclass
class Options:
    """The combined options for all operating modes."""

    driver_mode: Mode = Mode.ALL
    server_options: ServerOptions = field(default_factory=ServerOptions)
    node_options: NodeOptions = field(default_factory=NodeOptions)


def _version_json() -> str:
    info = {
        "driverVersion": DRIVER_VERSION,
        "gitCommit": GIT_COMMIT,
        "buildDate": BUILD_DATE,
        "pythonVersion": platform.python_version(),
        "compiler": platform.python_implementation(),
        "platform": f"{sys.platform}/{platform.machine()}",
    }
    return json.dumps(info, indent=2)


def _add_logging_flags(parser: argparse.ArgumentParser) -> None:
    _add_flag(parser, "v", type=_parse_int, default=0, help="number for the log level verbosity")


def get_options(argv: Optional[Sequence[str]] = None) -> Options:
    """Parse the command line (without the program name) into Options.

    The first argument may name a mode: controller, node or all. With
    ``-version`` the version information is printed and SystemExit(0) raised.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    parser = _FlagParser(prog=PROGRAM_NAME, allow_abbrev=False)
    _add_bool_flag(parser, "version", "Print the version and exit.")

    mode = Mode.ALL
    server_options = ServerOptions()
    node_options = NodeOptions()
    server_options.add_flags(parser)
    _add_logging_flags(parser)

    node_flags = False
    if args:
        command = args[0]
        if command == Mode.CONTROLLER.value:
            args = args[1:]
            mode = Mode.CONTROLLER
        elif command == Mode.NODE.value:
            node_options.add_flags(parser)
            node_flags = True
            args = args[1:]
            mode = Mode.NODE
        elif command == Mode.ALL.value:
            node_options.add_flags(parser)
            node_flags = True
            args = args[1:]
        elif command.startswith("-"):
            node_options.add_flags(parser)
            node_flags = True
        else:
            message = (
                f"unknown command: {command}: expected "
                f'"{Mode.CONTROLLER.value}", "{Mode.NODE.value}" or "{Mode.ALL.value}"'
            )
            logger.error(message)
            raise UsageError(message)

    namespace = parser.parse_args(args)

    if namespace.version:
        print(_version_json())
        raise SystemExit(0)

    if namespace.v > 0:
        logging.getLogger().setLevel(logging.DEBUG)

    server_options.endpoint = namespace.endpoint
    server_options.debug = namespace.debug
    server_options.kubeconfig = namespace.kubeconfig
    server_options.cloudconfig = namespace.cloud_config
    if node_flags:
        node_options.volume_attach_limit = namespace.volume_attach_limit

    return Options(
        driver_mode=mode,
        server_options=server_options,
        node_options=node_options,
    )