"""
Command-line entry point: run the startup batch jobs and exit with the
mapped exit code.

Usage:
    batch-launch --jobs myapp.jobs:catalog [--registry myapp.jobs:registry]
                 [--config batch.yaml] [--database-url sqlite:///batch.db]
                 [--job-name a,b] [--log-level INFO] [key=value ...]

``--jobs`` and ``--registry`` name a ``module:attribute`` that resolves to a
``JobCatalog``, an iterable of jobs, or a zero-argument callable returning
either.
"""

from __future__ import annotations

import argparse
import dataclasses
import importlib
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.exc import ArgumentError

from batch_config.loader import load_batch_properties
from batch_config.schema import BatchProperties
from batch_kernel.db.engine import create_engine_from_url
from batch_kernel.exceptions import BatchConfigurationError, BatchLaunchError
from batch_kernel.logging_config import configure_logging, get_logger

from batch_launch.catalog import JobCatalog
from batch_launch.exit_codes import JOB_FAILED
from batch_launch.orchestrator import BatchOrchestrator

logger = get_logger("launch.cli")

DEFAULT_DATABASE_URL = "sqlite:///:memory:"


def load_object(reference: str, key: str = "jobs") -> Any:
    """Import ``module:attribute`` (attribute may be dotted).

    Raises:
        BatchConfigurationError: If the reference is malformed or missing.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise BatchConfigurationError(
            key, reference, "expected the form module:attribute",
        )
    try:
        target: Any = importlib.import_module(module_name)
        for part in attribute.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError) as exc:
        raise BatchConfigurationError(key, reference, str(exc)) from exc
    return target


def load_catalog(reference: str, key: str = "jobs") -> JobCatalog:
    """Resolve ``reference`` to a JobCatalog."""
    target = load_object(reference, key)
    if callable(target) and not isinstance(target, JobCatalog):
        target = target()
    if isinstance(target, JobCatalog):
        return target
    return JobCatalog(target)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="batch-launch",
        description="Run the configured batch jobs once and exit with their status.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Job parameters use the form key=value[,type[,identifying]],\n"
            "e.g. run.date=2024-01-31,date  or  region=EU,str,false"
        ),
    )
    parser.add_argument(
        "--jobs", required=True,
        help="module:attribute of the explicitly registered jobs",
    )
    parser.add_argument(
        "--registry", default=None,
        help="module:attribute of the secondary job registry",
    )
    parser.add_argument(
        "--config", default=None,
        help="YAML file holding a batch: block",
    )
    parser.add_argument(
        "--database-url", default=DEFAULT_DATABASE_URL,
        help=f"application database URL (default: {DEFAULT_DATABASE_URL})",
    )
    parser.add_argument(
        "--job-name", default=None,
        help="comma-separated job names (overrides batch.job.name)",
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    parser.add_argument(
        "parameters", nargs="*", metavar="key=value",
        help="job parameters",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level))

    engine = None
    try:
        properties = (
            load_batch_properties(Path(args.config)) if args.config else BatchProperties()
        )
        if args.job_name is not None:
            properties = dataclasses.replace(
                properties,
                job=dataclasses.replace(properties.job, name=args.job_name),
            )
        catalog = load_catalog(args.jobs)
        registry = load_catalog(args.registry, "registry") if args.registry else None
        engine = create_engine_from_url(args.database_url)
        orchestrator = BatchOrchestrator.from_properties(
            properties, engine, catalog, registry=registry,
        )
    except (BatchLaunchError, OSError, yaml.YAMLError, ArgumentError) as exc:
        logger.error("batch_launch_setup_failed", extra={"error": str(exc)})
        if engine is not None:
            engine.dispose()
        return JOB_FAILED

    try:
        return orchestrator.run(args.parameters)
    finally:
        orchestrator.shutdown()
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
