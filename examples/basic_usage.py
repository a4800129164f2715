#!/usr/bin/env python3
"""Programmatic dependency check example.

This demonstrates using the provisioning components directly:

* load settings from the environment or `.env`
* build a run context
* run only the Homebrew dependency steps and print each outcome

Pass `--refresh` to reinstall the dependencies even when they are present.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from prisma_installer.provisioning.config import InstallerSettings
from prisma_installer.provisioning.context import RunContext
from prisma_installer.provisioning.logging import configure_logging
from prisma_installer.provisioning.plan import dependency_steps
from prisma_installer.provisioning.workflow.runner import ProvisioningOrchestrator


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Install PRISMA's Homebrew dependencies.")
    parser.add_argument("--refresh", action="store_true", help="Reinstall even if present")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = InstallerSettings()
    configure_logging(settings.log_level)

    context = RunContext.from_settings(settings, refresh=args.refresh)
    report = ProvisioningOrchestrator(dependency_steps()).run(context)

    for result in report.results:
        print(f"{result.step}: {result.outcome.value} {result.message}".rstrip())
    if report.failed is not None and report.failed.hint:
        print(report.failed.hint)
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
