#!/usr/bin/env python3
"""Run the EFS CSI driver E2E suite.

Resolves the configuration from flags and the environment, then runs the
suite through pytest, writing a JUnit report per worker when a report
directory is given.

Usage:
    # Run against the current kubeconfig context
    ./run_e2e.py --cluster-name my-cluster --file-system-id fs-0123456789abcdef0

    # Custom driver pod selectors and JUnit output
    ./run_e2e.py --efs-driver-label-selectors app=efs-csi-node,tier=storage \\
        --report-dir _artifacts --worker-index 2

Extra pytest arguments can be passed after ``--``.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from efs_e2e.bootstrap import PytestEngine, RunIdentity, SuiteBootstrapper
from efs_e2e.config import RawConfiguration, add_config_flags, assemble_config
from efs_e2e.environment import export_kubeconfig
from efs_e2e.errors import ConfigurationError, SetupError
from efs_e2e.logging_config import configure_logging

logger = logging.getLogger("efs_e2e.run")

BUNDLED_TESTS = Path(__file__).parent / "tests"

# sysexits.h codes, outside the range pytest uses (0-5)
EXIT_CONFIG_ERROR = 78  # EX_CONFIG
EXIT_SETUP_ERROR = 73  # EX_CANTCREAT


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the EFS CSI driver E2E suite")
    add_config_flags(parser.add_argument)
    parser.add_argument(
        "--report-dir",
        default=os.environ.get("E2E_REPORT_DIR", ""),
        help="directory for JUnit reports (default: $E2E_REPORT_DIR, no report if empty)",
    )
    parser.add_argument(
        "--report-prefix",
        default=os.environ.get("E2E_REPORT_PREFIX", ""),
        help="prefix for JUnit report file names",
    )
    parser.add_argument(
        "--worker-index",
        type=int,
        default=os.environ.get("E2E_WORKER_INDEX", "1"),
        help="index of this parallel worker, used in report file names (default: 1)",
    )
    parser.add_argument(
        "--run-id",
        default=None,
        help="identifier of this run (default: random)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="debug logging",
    )
    parser.add_argument(
        "specs",
        nargs="*",
        help="test files or directories to run (default: the tests next to this script)",
    )
    return parser


def bundled_specs() -> list[str]:
    """The tests next to this script, or nothing when they are not there."""
    if BUNDLED_TESTS.is_dir() and (BUNDLED_TESTS.parent / "conftest.py").is_file():
        return [str(BUNDLED_TESTS)]
    return []


def main(argv: list[str] | None = None, engine=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    pytest_args: list[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, pytest_args = argv[:split], argv[split + 1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    specs = args.specs or bundled_specs()
    if not specs:
        parser.error(f"no test paths given and {BUNDLED_TESTS} does not exist")

    configure_logging(verbose=args.verbose)

    try:
        config = assemble_config(RawConfiguration.from_namespace(args))
    except ConfigurationError as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR

    if export_kubeconfig(config.kubeconfig):
        logger.debug("KUBECONFIG set to %s", config.kubeconfig)

    identity = RunIdentity(worker_index=args.worker_index)
    if args.run_id:
        identity = RunIdentity(run_id=args.run_id, worker_index=args.worker_index)

    bootstrapper = SuiteBootstrapper(
        engine or PytestEngine(pytest_args),
        report_dir=args.report_dir,
        report_prefix=args.report_prefix,
        identity=identity,
    )
    bootstrapper.configure(config)

    try:
        return bootstrapper.run(specs)
    except SetupError as e:
        logger.error("%s", e, exc_info=e.__cause__ is not None)
        return EXIT_SETUP_ERROR


if __name__ == "__main__":
    sys.exit(main())
