from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Final

from dotenv import load_dotenv

from rowbind.app import build_registry
from rowbind.common import configure_logging
from rowbind.config import ConfigurationError, import_reference, read_env_str

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from rowbind.domain.registry import TypeRegistry

LOG_LEVEL_ENV_VAR: Final[str] = "ROWBIND_LOG_LEVEL"

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect property bindings of registered types")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help=f"Logging level (defaults to ${LOG_LEVEL_ENV_VAR} or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    describe = subparsers.add_parser("describe", help="Show the properties discovered for types")
    describe.add_argument(
        "--config",
        type=Path,
        required=True,
        help="TOML file with [[registrations]] tables",
    )
    describe.add_argument(
        "types",
        nargs="+",
        help="Types to describe, as package.module:Name",
    )

    check = subparsers.add_parser("check", help="Discover every registered type")
    check.add_argument(
        "--config",
        type=Path,
        required=True,
        help="TOML file with [[registrations]] tables",
    )
    return parser.parse_args(list(argv))


def _type_label(tp: object) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def _describe(registry: TypeRegistry, reference: str) -> bool:
    binding = registry.resolve(import_reference(reference))
    if binding is None:
        log.warning("%s: no binding registered", reference)
        return False
    log.info(
        "%s: %s binding via %s",
        reference,
        binding.variant,
        binding.implementation.__qualname__,
    )
    for accessor in binding:
        log.info(
            "  %s: %s%s",
            accessor.name,
            _type_label(accessor.type),
            " (presence tracked)" if accessor.tracks_presence else "",
        )
    return True


def _check(registry: TypeRegistry) -> bool:
    for registered in registry.registered_types():
        binding = registry.resolve(registered)
        if binding is None:
            log.warning("%s: no binding registered", registered.__qualname__)
            return False
        log.info("%s: %d properties", registered.__qualname__, len(binding))
    return True


def main(argv: Sequence[str] | None = None) -> None:
    """Command line entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        configure_logging(level=parsed_args.log_level or read_env_str(LOG_LEVEL_ENV_VAR, "INFO"))
    except ConfigurationError:
        log.exception("Invalid logging configuration")
        sys.exit(2)

    try:
        registry = build_registry(registrations_path=parsed_args.config)
    except ConfigurationError:
        log.exception("Invalid registrations")
        sys.exit(2)

    try:
        if parsed_args.command == "describe":
            results = [_describe(registry, reference) for reference in parsed_args.types]
            ok = all(results)
        elif parsed_args.command == "check":
            ok = _check(registry)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError:
        log.exception("Binding discovery failed")
        sys.exit(1)

    if not ok:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
