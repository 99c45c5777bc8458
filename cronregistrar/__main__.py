"""
Command line entry point: load namespaces from a config file, install them and run the scheduler.

.. code-block:: bash

    python -m cronregistrar config.yaml
    python -m cronregistrar config.yaml --once
    python -m cronregistrar config.yaml --uninstall
"""

import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import List, Optional

from cronregistrar import __version__
from cronregistrar.configtools import CronConfig, load_yaml
from cronregistrar.configtools.elements import _ConsoleLoggingConfig, _default_logging
from cronregistrar.exceptions import InvalidConfigError
from cronregistrar.runtime import ThreadedSchedulerRuntime
from cronregistrar.tenants import TenantRegistry

_logger = logging.getLogger("cronregistrar")


def _create_argparser() -> ArgumentParser:
    argparser = ArgumentParser(
        prog="cronregistrar",
        description="Register namespaced cron schedules and jobs from a config file, and run them.",
    )
    argparser.add_argument("-v", "--version", action="version", version=f"cronregistrar v{__version__}")
    argparser.add_argument("config", type=Path, help="Path to the YAML config file")
    argparser.add_argument(
        "--uninstall",
        action="store_true",
        help="Cancel and unbind the configured jobs instead of installing them, then exit.",
    )
    argparser.add_argument(
        "--once",
        action="store_true",
        help="Install, run whatever is due right now, and exit instead of running until interrupted.",
    )
    argparser.add_argument(
        "-l",
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str,
        required=False,
        default=None,
        help="Override the console log level from the config file.",
    )
    return argparser


def main(argv: Optional[List[str]] = None) -> int:
    args = _create_argparser().parse_args(argv)

    try:
        with open(args.config) as infile:
            config = load_yaml(infile, CronConfig)
    except (OSError, InvalidConfigError) as e:
        _default_logging().setup_logging()
        _logger.critical(f"Could not load config file {args.config}: {e!s}")
        return 1

    if args.log_level:
        if config.logger.console:
            config.logger.console.level = args.log_level.upper()
        else:
            config.logger.console = _ConsoleLoggingConfig(level=args.log_level.upper())
    config.logger.setup_logging()

    flag_store = config.flag_store.create_flag_store()
    runtime = ThreadedSchedulerRuntime(idle_interval=config.idle_interval.seconds)
    tenants = TenantRegistry(runtime, flag_store, debug=config.debug_enabled())

    with flag_store:
        for namespace in config.namespaces:
            result = namespace.apply(tenants, uninstall=args.uninstall)
            _logger.info(
                f"{'Uninstalled' if args.uninstall else 'Installed'} {namespace.identity}: {'ok' if result else 'no-op'}"
            )

        if args.uninstall:
            return 0

        if args.once:
            fired = runtime.run_due()
            _logger.info(f"Fired {fired} due occurrences")
            return 0

        runtime.cancellation_token.cancel_on_interrupt()
        _logger.info(f"Running {len(runtime.pending())} pending occurrences across {len(tenants)} namespaces")
        runtime.run()
        runtime.stop()

    return 0


if __name__ == "__main__":
    sys.exit(main())
