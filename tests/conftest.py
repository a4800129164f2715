"""Test configuration and fixtures."""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from prisma_installer.provisioning.context import ProfileResource, RunContext
from prisma_installer.provisioning.environment import PackagePrefix
from prisma_installer.provisioning.plan import BOOST_HEADER, PNG_HEADER
from prisma_installer.provisioning.process import CommandError


@dataclass
class RecordedCall:
    args: tuple[str, ...]
    cwd: Path | None
    extra_env: dict[str, str]
    timeout: float | None


@dataclass
class FakeRunner:
    """Stand-in for `run_command` that simulates each collaborator's effect.

    - `<pm> install <pkg>` creates an executable in `bin_dir` or the package header
    - `git clone ... <dest>` and `unzip ... -d <dest>` create the destination
    - `./build.sh` creates `bin/zcc` in its working directory
    """

    bin_dir: Path
    prefix: PackagePrefix
    calls: list[RecordedCall] = field(default_factory=list)
    failures: dict[tuple[str, ...], tuple[int, str]] = field(default_factory=dict)
    inert: set[tuple[str, ...]] = field(default_factory=set)

    def fail(self, *prefix: str, returncode: int = 1, stderr: str = "") -> None:
        self.failures[prefix] = (returncode, stderr)

    def make_inert(self, *prefix: str) -> None:
        """Succeed for matching commands without simulating their effect."""
        self.inert.add(prefix)

    def commands(self) -> list[tuple[str, ...]]:
        return [c.args for c in self.calls]

    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        extra_env: Mapping[str, str] | None = None,
        capture_output: bool = False,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        cmd = tuple(args)
        self.calls.append(RecordedCall(cmd, cwd, dict(extra_env or {}), timeout))

        for prefix, (returncode, stderr) in self.failures.items():
            if cmd[: len(prefix)] == prefix:
                raise CommandError(cmd, returncode, "", stderr)

        if not any(cmd[: len(prefix)] == prefix for prefix in self.inert):
            self._simulate(cmd, cwd)
        return subprocess.CompletedProcess(list(cmd), 0, "", "")

    def _simulate(self, cmd: tuple[str, ...], cwd: Path | None) -> None:
        if cmd[1:2] == ("install",):
            self._install(cmd[2])
        elif cmd[:2] == ("git", "clone"):
            dest = Path(cmd[-1])
            dest.mkdir(parents=True)
            (dest / "README.md").write_text(cmd[-2] + "\n", encoding="utf-8")
        elif cmd[0] == "unzip":
            dest = Path(cmd[cmd.index("-d") + 1])
            dest.mkdir(parents=True, exist_ok=True)
            (dest / "from-archive.txt").write_text("x\n", encoding="utf-8")
        elif cmd[0] == "./build.sh":
            assert cwd is not None
            (cwd / "bin").mkdir(exist_ok=True)
            (cwd / "bin" / "zcc").write_text("", encoding="utf-8")

    def _install(self, package: str) -> None:
        headers = {"libpng": PNG_HEADER, "boost": BOOST_HEADER}
        if package in headers:
            header = self.prefix.include / headers[package]
            header.parent.mkdir(parents=True, exist_ok=True)
            header.write_text("", encoding="utf-8")
            return
        make_executable(self.bin_dir / package)


def make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def prefix(tmp_path: Path) -> PackagePrefix:
    return PackagePrefix(root=tmp_path / "homebrew")


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def runner(bin_dir: Path, prefix: PackagePrefix) -> FakeRunner:
    return FakeRunner(bin_dir=bin_dir, prefix=prefix)


@pytest.fixture
def make_context(
    home: Path,
    project_root: Path,
    prefix: PackagePrefix,
    bin_dir: Path,
    runner: FakeRunner,
) -> Callable[..., RunContext]:
    """Build a RunContext rooted in tmp_path with the fake runner wired in."""

    def _make(*, refresh: bool = False, default_timeout: float | None = None) -> RunContext:
        return RunContext(
            refresh=refresh,
            install_root=home,
            project_root=project_root,
            profile=ProfileResource(home / ".zshrc"),
            package_prefix=prefix,
            runner=runner,
            search_path=str(bin_dir),
            default_timeout=default_timeout,
        )

    return _make


@pytest.fixture
def context(make_context: Callable[..., RunContext]) -> RunContext:
    return make_context()
