"""Per-run context shared by every step."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from prisma_installer.provisioning.config import InstallerSettings
from prisma_installer.provisioning.environment import PackagePrefix
from prisma_installer.provisioning.errors import ProfileWriteError
from prisma_installer.provisioning.process import CommandRunner, run_command


@dataclass(frozen=True, slots=True)
class ProfileResource:
    """Handle on the shell profile that receives environment variables.

    A missing file reads as empty; appending creates it. Bytes that are not
    UTF-8 are replaced on read so the marker check never fails on encoding.
    """

    path: Path

    def read(self) -> str:
        if not self.path.exists():
            return ""
        try:
            return self.path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ProfileWriteError(f"Cannot read shell profile {self.path}: {e}") from e

    def contains(self, marker: str) -> bool:
        return marker in self.read()

    def append(self, lines: Sequence[str]) -> None:
        try:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write("".join(f"{line}\n" for line in lines))
        except OSError as e:
            raise ProfileWriteError(f"Cannot write shell profile {self.path}: {e}") from e


@dataclass(frozen=True, slots=True)
class RunContext:
    """Everything a step may look at. Built once per run, never mutated.

    ``search_path`` overrides PATH for executable probes (None means the
    process PATH). ``default_timeout`` applies to every external command of a
    step that does not set its own.
    """

    refresh: bool
    install_root: Path
    project_root: Path
    profile: ProfileResource
    package_prefix: PackagePrefix
    package_manager: str = "brew"
    runner: CommandRunner = run_command
    search_path: str | None = None
    default_timeout: float | None = None

    @classmethod
    def from_settings(cls, settings: InstallerSettings, *, refresh: bool) -> RunContext:
        return cls(
            refresh=refresh,
            install_root=settings.install_root.expanduser(),
            project_root=settings.project_root.expanduser(),
            profile=ProfileResource(settings.profile_file),
            package_prefix=settings.resolved_package_prefix,
            package_manager=settings.package_manager,
            default_timeout=settings.step_timeout_seconds,
        )
