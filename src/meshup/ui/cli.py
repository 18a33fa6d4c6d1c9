# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Final

from dotenv import load_dotenv

from meshup import __version__
from meshup.app import upgrade_control_plane
from meshup.config import ConfigurationError, configure_logging
from meshup.domain.errors import UpgradeError
from meshup.domain.flags import FlagKind
from meshup.domain.options import FLAG_SPECS

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

OK_STATUS: Final[str] = "√"
FAIL_STATUS: Final[str] = "×"
OK_MESSAGE: Final[str] = (
    "You're on your way to upgrading the mesh!\n"
    "Visit this URL for further instructions: https://meshup.io/upgrade/#nextsteps"
)
FAIL_MESSAGE: Final[str] = (
    "For troubleshooting help, visit: https://meshup.io/upgrade/#troubleshooting"
)


def _flag_dest(name: str) -> str:
    return "flag_" + name.replace("-", "_")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="meshup",
        description="Manage a meshup service-mesh control plane",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upgrade = subparsers.add_parser(
        "upgrade",
        help="Output Kubernetes configs to upgrade an existing control plane",
        description=(
            "Output Kubernetes configs to upgrade an existing control plane. "
            "Flag defaults come from the running control plane: values recorded by a "
            "previous install or upgrade win over the defaults shown below, and flags "
            "passed now win over both."
        ),
    )
    # Not recorded into the install record.
    upgrade.add_argument(
        "--from-manifests",
        type=str,
        help="Read config from a rendered install YAML (or '-' for stdin) rather than the cluster",
    )
    upgrade.add_argument("--kubeconfig", type=str, help="Path to the kubeconfig file")
    upgrade.add_argument("--context", type=str, help="Name of the kubeconfig context to use")
    upgrade.add_argument(
        "--namespace",
        type=str,
        help="Namespace of the control plane (defaults to $MESHUP_NAMESPACE or 'meshup')",
    )
    upgrade.add_argument("--verbose", action="store_true", help="Turn on debug logging")

    recordable = upgrade.add_argument_group("recorded flags")
    for spec in FLAG_SPECS:
        default = spec.default or "<unset>"
        options: dict[str, object] = {
            "dest": _flag_dest(spec.name),
            "default": None,
            "help": f"{spec.help} (default: {default})",
        }
        if spec.kind is FlagKind.BOOL:
            options.update(nargs="?", const="true", metavar="BOOL")
        else:
            options.update(type=str, metavar=spec.kind.upper())
        recordable.add_argument(f"--{spec.name}", **options)  # type: ignore[arg-type]

    return parser.parse_args(list(argv))


def _explicit_flags(args: argparse.Namespace) -> dict[str, str]:
    explicit: dict[str, str] = {}
    for spec in FLAG_SPECS:
        value = getattr(args, _flag_dest(spec.name))
        if value is not None:
            explicit[spec.name] = value
    return explicit


def _fail(message: str) -> None:
    print(f"{FAIL_STATUS} {message}\n{FAIL_MESSAGE}", file=sys.stderr)
    sys.exit(1)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    signal(SIGINT, sigint_handler)
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.WARNING)

    try:
        output = upgrade_control_plane(
            explicit_flags=_explicit_flags(parsed_args),
            namespace=parsed_args.namespace,
            from_manifests=parsed_args.from_manifests,
            kubeconfig=parsed_args.kubeconfig,
            kube_context=parsed_args.context,
        )
    except ConfigurationError as exc:
        log.debug("Configuration error", exc_info=True)
        _fail(f"Failed to get kubernetes config: {exc}")
        return
    except UpgradeError as exc:
        log.debug("Upgrade failed", exc_info=True)
        _fail(f"Failed to build upgrade configuration: {exc}")
        return

    sys.stdout.write(output.manifest)
    sys.stdout.flush()
    print(f"\n{OK_STATUS} {OK_MESSAGE}", file=sys.stderr)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully; an interrupted upgrade rendered nothing."""
    print("\nClosed by user (Ctrl+C)", file=sys.stderr)
    sys.exit(1)


if __name__ == "__main__":
    main()
