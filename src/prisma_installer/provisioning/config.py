"""Configuration for the installer.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Only `--refresh` is a command-line flag; everything else lives here so the CLI
surface stays a single switch.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prisma_installer.provisioning.environment import PackagePrefix, default_package_prefix


class InstallerSettings(BaseSettings):
    """Settings for one installer run.

    Environment variables:
    - LOG_LEVEL                    (optional)
    - PRISMA_INSTALL_ROOT          (optional, defaults to the home directory)
    - PRISMA_PROJECT_ROOT          (optional, defaults to the current directory)
    - PRISMA_PROFILE               (optional, defaults to <install root>/.zshrc)
    - PRISMA_PACKAGE_MANAGER       (optional)
    - PRISMA_PACKAGE_PREFIX        (optional, detected from the CPU architecture)
    - PRISMA_TOOLCHAIN_REPOSITORY  (optional)
    - PRISMA_REPOSITORY            (optional)
    - PRISMA_STEP_TIMEOUT_SECONDS  (optional, no timeout by default)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `InstallerSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    install_root: Path = Field(
        default_factory=Path.home,
        validation_alias="PRISMA_INSTALL_ROOT",
        description="Directory where the z88dk toolchain is cloned and built",
    )
    project_root: Path = Field(
        default_factory=Path.cwd,
        validation_alias="PRISMA_PROJECT_ROOT",
        description="Directory where PRISMA is fetched (and prisma.zip is looked up)",
    )
    profile_path: Path | None = Field(
        default=None,
        validation_alias="PRISMA_PROFILE",
        description="Shell profile that receives the z88dk environment variables",
    )

    package_manager: str = Field(
        default="brew",
        validation_alias="PRISMA_PACKAGE_MANAGER",
        description="Package manager executable invoked as '<manager> install <package>'",
    )
    package_prefix: Path | None = Field(
        default=None,
        validation_alias="PRISMA_PACKAGE_PREFIX",
        description="Package manager prefix; /opt/homebrew on arm64, /usr/local otherwise",
    )

    toolchain_repository: str = Field(
        default="https://github.com/metsuke/z88dk-metsuos.git",
        validation_alias="PRISMA_TOOLCHAIN_REPOSITORY",
        description="Git URL of the z88dk fork to build",
    )
    prisma_repository: str = Field(
        default="git@github.com:metsuke/prisma-metsuos.git",
        validation_alias="PRISMA_REPOSITORY",
        description="Git URL of the PRISMA framework (SSH by default)",
    )

    step_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        validation_alias="PRISMA_STEP_TIMEOUT_SECONDS",
        description="Timeout applied to each external command (unset means wait forever)",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @property
    def profile_file(self) -> Path:
        """Profile path; zsh is the default shell on macOS."""

        if self.profile_path is not None:
            return self.profile_path.expanduser()
        return self.install_root.expanduser() / ".zshrc"

    @property
    def resolved_package_prefix(self) -> PackagePrefix:
        if self.package_prefix is not None:
            return PackagePrefix(root=self.package_prefix.expanduser())
        return default_package_prefix()
