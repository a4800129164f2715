from __future__ import annotations

import logging
import stat
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar, Protocol

from prisma_installer.provisioning.context import RunContext
from prisma_installer.provisioning.environment import HeaderProbe, PackagePrefix, Probe
from prisma_installer.provisioning.errors import (
    AuthFetchError,
    BuildError,
    DependencyInstallError,
    FetchError,
)
from prisma_installer.provisioning.process import CommandError

from .state_machine import ResourceState, displace, observe, transition

logger = logging.getLogger(__name__)

PROFILE_MARKER = "Z88DK"

_AUTH_FAILURE_SIGNATURES = (
    "permission denied (publickey)",
    "authentication failed",
    "could not read username",
    "could not read from remote repository",
    "host key verification failed",
)


class StepKind(str, Enum):
    INSTALL = "install"
    VERIFY = "verify"
    FETCH = "fetch"
    BUILD = "build"
    DIRECTORY = "directory"
    PROFILE = "profile"
    FIXUP = "fixup"


class Step(Protocol):
    """An idempotent unit of provisioning work.

    ``is_satisfied`` must not have side effects. ``apply`` raises a
    ``ProvisioningError`` subclass on failure. ``displace`` runs before
    ``apply`` when a refresh forces a step whose precondition already holds.
    """

    kind: ClassVar[StepKind]

    @property
    def name(self) -> str: ...

    @property
    def timeout(self) -> float | None: ...

    def is_satisfied(self, context: RunContext) -> bool: ...

    def apply(self, context: RunContext) -> None: ...

    def displace(self, context: RunContext) -> None: ...


def effective_timeout(step: Step, context: RunContext) -> float | None:
    return step.timeout if step.timeout is not None else context.default_timeout


@dataclass(frozen=True, slots=True)
class InstallPackage:
    """Install a package with the system package manager if its probe fails.

    ``link`` runs '<manager> link <package>' afterwards. Linking is
    best-effort: a failure is logged and the step still succeeds.
    """

    package: str
    probe: Probe
    link: bool = False
    timeout: float | None = None

    kind: ClassVar[StepKind] = StepKind.INSTALL

    @property
    def name(self) -> str:
        return f"install-{self.package}"

    def is_satisfied(self, context: RunContext) -> bool:
        return self.probe.present(context)

    def apply(self, context: RunContext) -> None:
        timeout = effective_timeout(self, context)
        try:
            context.runner([context.package_manager, "install", self.package], timeout=timeout)
        except CommandError as e:
            raise DependencyInstallError(
                f"Failed to install {self.package}: {e}",
                hint=f"Try running '{context.package_manager} install {self.package}' manually.",
            ) from e

        if self.link:
            try:
                context.runner([context.package_manager, "link", self.package], timeout=timeout)
            except CommandError as e:
                logger.warning(
                    "Package link failed; continuing",
                    extra={"package": self.package, "error": str(e)},
                )

    def displace(self, context: RunContext) -> None:
        return None


@dataclass(frozen=True, slots=True)
class VerifyHeader:
    """Fail the run unless a header is present under the package prefix."""

    probe: HeaderProbe
    package: str
    timeout: float | None = None

    kind: ClassVar[StepKind] = StepKind.VERIFY

    @property
    def name(self) -> str:
        return f"verify-{self.package}"

    def is_satisfied(self, context: RunContext) -> bool:
        return self.probe.present(context)

    def apply(self, context: RunContext) -> None:
        if not self.probe.present(context):
            raise DependencyInstallError(
                f"{self.probe.header} not found in {context.package_prefix.include}",
                hint=f"Try reinstalling with: {context.package_manager} reinstall {self.package}",
            )

    def displace(self, context: RunContext) -> None:
        return None


def is_auth_failure(stderr: str | None) -> bool:
    text = (stderr or "").lower()
    return any(signature in text for signature in _AUTH_FAILURE_SIGNATURES)


@dataclass(frozen=True, slots=True)
class FetchRepository:
    """Make ``target`` exist by extracting ``archive`` or cloning ``url``.

    The archive wins when it is configured and present on disk. Under refresh
    an existing target is displaced to ``<target>_old`` first.
    """

    name: str
    target: Path
    url: str
    recursive: bool = False
    archive: Path | None = None
    timeout: float | None = None

    kind: ClassVar[StepKind] = StepKind.FETCH

    def is_satisfied(self, context: RunContext) -> bool:
        return self.target.is_dir()

    def displace(self, context: RunContext) -> None:
        displace(self.target)

    def apply(self, context: RunContext) -> None:
        current = observe(self.target)
        timeout = effective_timeout(self, context)
        try:
            self.target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FetchError(f"Cannot create {self.target.parent}: {e}") from e

        if self.archive is not None and self.archive.is_file():
            self._extract(context, self.archive, timeout)
        else:
            self._clone(context, timeout)

        if not self.target.is_dir():
            raise FetchError(f"{self.target} was not created by {self.name}")
        transition(current=current, to=ResourceState.PRESENT)

    def _extract(self, context: RunContext, archive: Path, timeout: float | None) -> None:
        logger.info(
            "Extracting archive", extra={"archive": str(archive), "target": str(self.target)}
        )
        try:
            context.runner(
                ["unzip", "-q", str(archive), "-d", str(self.target)],
                cwd=self.target.parent,
                timeout=timeout,
            )
        except CommandError as e:
            raise FetchError(f"Failed to extract {archive}: {e}") from e

    def _clone(self, context: RunContext, timeout: float | None) -> None:
        args = ["git", "clone"]
        if self.recursive:
            args.append("--recursive")
        args.extend([self.url, str(self.target)])

        logger.info("Cloning repository", extra={"url": self.url, "target": str(self.target)})
        try:
            context.runner(args, cwd=self.target.parent, capture_output=True, timeout=timeout)
        except CommandError as e:
            if is_auth_failure(e.stderr):
                raise AuthFetchError(f"Failed to clone {self.url}: credentials rejected") from e
            raise FetchError(
                f"Failed to clone {self.url}: {e}",
                hint="Check your network connection and repository permissions.",
            ) from e


@dataclass(frozen=True, slots=True)
class RunBuild:
    """Run a build command in ``workdir`` unless ``creates`` already exists.

    With ``stamp`` the step writes ``creates`` itself after a successful build,
    for builds that leave no single artifact to probe.
    """

    name: str
    workdir: Path
    command: tuple[str, ...]
    creates: Path
    env: Mapping[str, str] = field(default_factory=dict)
    stamp: bool = False
    timeout: float | None = None

    kind: ClassVar[StepKind] = StepKind.BUILD

    def is_satisfied(self, context: RunContext) -> bool:
        return self.creates.exists()

    def apply(self, context: RunContext) -> None:
        if not self.workdir.is_dir():
            raise BuildError(f"Build directory {self.workdir} does not exist")

        script = self.workdir / self.command[0]
        if self.command[0].startswith("./") and script.is_file():
            try:
                script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except OSError as e:
                raise BuildError(f"Cannot make {script} executable: {e}") from e

        try:
            context.runner(
                list(self.command),
                cwd=self.workdir,
                extra_env=dict(self.env),
                timeout=effective_timeout(self, context),
            )
        except CommandError as e:
            raise BuildError(
                f"Build '{' '.join(self.command)}' failed in {self.workdir}: {e}",
                hint=f"Check the build logs (for example config.log) in {self.workdir}.",
            ) from e

        if self.stamp:
            try:
                self.creates.parent.mkdir(parents=True, exist_ok=True)
                self.creates.write_text(datetime.now(tz=UTC).isoformat() + "\n", encoding="utf-8")
            except OSError as e:
                raise BuildError(f"Cannot write build stamp {self.creates}: {e}") from e

    def displace(self, context: RunContext) -> None:
        return None


@dataclass(frozen=True, slots=True)
class EnsureDirectory:
    name: str
    path: Path
    timeout: float | None = None

    kind: ClassVar[StepKind] = StepKind.DIRECTORY

    def is_satisfied(self, context: RunContext) -> bool:
        return self.path.is_dir()

    def apply(self, context: RunContext) -> None:
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BuildError(f"Cannot create directory {self.path}: {e}") from e

    def displace(self, context: RunContext) -> None:
        return None


def render_profile_block(prefix: PackagePrefix) -> list[str]:
    """Lines appended to the shell profile, blank separator first."""

    return [
        "",
        "# z88dk and PRISMA Framework variables",
        "export Z88DK=$HOME/z88dk",
        "export Z88DK_PATH=$HOME/z88dk",
        "export PATH=$Z88DK/bin:$PATH",
        "export Z80_OZFILES=$Z88DK/lib",
        "export ZCCCFG=$Z88DK/lib/config",
        f"export BOOST_ROOT={prefix.root}",
        f'export CFLAGS="-I{prefix.include} $CFLAGS"',
        f'export CXXFLAGS="-I{prefix.include} $CXXFLAGS"',
        f'export LDFLAGS="-L{prefix.lib} $LDFLAGS"',
    ]


@dataclass(frozen=True, slots=True)
class InjectProfile:
    """Append the z88dk environment block to the shell profile at most once."""

    name: str = "configure-profile"
    marker: str = PROFILE_MARKER
    timeout: float | None = None

    kind: ClassVar[StepKind] = StepKind.PROFILE

    def is_satisfied(self, context: RunContext) -> bool:
        return context.profile.contains(self.marker)

    def apply(self, context: RunContext) -> None:
        # Refresh still reaches here with the block in place; never append twice.
        if context.profile.contains(self.marker):
            logger.info("Profile already configured", extra={"profile": str(context.profile.path)})
            return

        context.profile.append(render_profile_block(context.package_prefix))
        logger.info(
            "Profile configured; open a new shell or source it to pick up the variables",
            extra={"profile": str(context.profile.path)},
        )

    def displace(self, context: RunContext) -> None:
        return None


@dataclass(frozen=True, slots=True)
class RenameExecutable:
    """Best-effort rename of a misnamed executable.

    Satisfied when ``source`` is absent. A failed rename is logged and does
    not abort the run.
    """

    name: str
    source: Path
    destination: Path
    timeout: float | None = None

    kind: ClassVar[StepKind] = StepKind.FIXUP

    def is_satisfied(self, context: RunContext) -> bool:
        return not self.source.exists()

    def apply(self, context: RunContext) -> None:
        if not self.source.exists():
            return
        try:
            self.source.replace(self.destination)
        except OSError as e:
            logger.warning(
                "Executable rename failed; continuing",
                extra={"source": str(self.source), "error": str(e)},
            )

    def displace(self, context: RunContext) -> None:
        return None
