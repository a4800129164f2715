"""Environment inspection: architecture, Homebrew prefix and presence probes."""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from prisma_installer.provisioning.context import RunContext

ARM64_PREFIX = Path("/opt/homebrew")
INTEL_PREFIX = Path("/usr/local")


@dataclass(frozen=True, slots=True)
class PackagePrefix:
    """Root of the package manager's install tree."""

    root: Path

    @property
    def include(self) -> Path:
        return self.root / "include"

    @property
    def lib(self) -> Path:
        return self.root / "lib"


def detect_architecture() -> str:
    return platform.machine()


def default_package_prefix(machine: str | None = None) -> PackagePrefix:
    """Homebrew lives under /opt/homebrew on Apple Silicon and /usr/local on Intel."""

    arch = machine if machine is not None else detect_architecture()
    return PackagePrefix(root=ARM64_PREFIX if arch == "arm64" else INTEL_PREFIX)


def active_path() -> str:
    return os.environ.get("PATH", "")


class Probe(Protocol):
    """Answers "is this capability already installed?"."""

    def describe(self, context: RunContext) -> str: ...

    def present(self, context: RunContext) -> bool: ...


@dataclass(frozen=True, slots=True)
class ExecutableProbe(Probe):
    """Present when ``executable`` resolves on the context's search path."""

    executable: str

    def describe(self, context: RunContext) -> str:
        return f"executable '{self.executable}'"

    def present(self, context: RunContext) -> bool:
        return shutil.which(self.executable, path=context.search_path) is not None


@dataclass(frozen=True, slots=True)
class HeaderProbe(Probe):
    """Present when a header exists under the package prefix include directory."""

    header: str

    def path(self, context: RunContext) -> Path:
        return context.package_prefix.include / self.header

    def describe(self, context: RunContext) -> str:
        return str(self.path(context))

    def present(self, context: RunContext) -> bool:
        return self.path(context).is_file()
