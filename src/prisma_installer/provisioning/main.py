"""CLI entrypoint for the PRISMA installer.

Usage: prisma-install [--refresh]
"""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from prisma_installer.provisioning.config import InstallerSettings
from prisma_installer.provisioning.context import RunContext
from prisma_installer.provisioning.environment import active_path
from prisma_installer.provisioning.logging import configure_logging
from prisma_installer.provisioning.plan import PROJECT_DIR, build_plan
from prisma_installer.provisioning.workflow.runner import ProvisioningOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prisma-install",
        description="Install the z88dk toolchain and the PRISMA framework on macOS",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help=(
            "Reinstall dependencies and move existing z88dk/ and prisma/ directories "
            "to *_old before fetching them again"
        ),
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = InstallerSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment or .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    context = RunContext.from_settings(settings, refresh=args.refresh)
    logger.debug("Active PATH", extra={"search_path": active_path()})
    if context.refresh:
        logger.info("Refresh mode: dependencies are reinstalled and z88dk/prisma are re-fetched")

    logger.info(
        "Starting PRISMA installation",
        extra={
            "install_root": str(context.install_root),
            "project_root": str(context.project_root),
            "package_prefix": str(context.package_prefix.root),
        },
    )

    try:
        steps = build_plan(
            context,
            toolchain_repository=settings.toolchain_repository,
            prisma_repository=settings.prisma_repository,
        )
        report = ProvisioningOrchestrator(steps).run(context)
    except Exception:
        logger.exception("Installation crashed")
        return 1

    failed = report.failed
    if failed is not None:
        print(f"Installation failed at step '{failed.step}': {failed.message}", file=sys.stderr)
        if failed.hint:
            print(failed.hint, file=sys.stderr)
        return report.exit_code

    print("PRISMA installation completed successfully.")
    print(f"To try it: cd {context.project_root / PROJECT_DIR} && make help")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
