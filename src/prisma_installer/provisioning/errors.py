"""Installer exceptions.

Every error is terminal for the run. ``hint`` carries the remediation text
shown to the user after the failure message.
"""

from __future__ import annotations

AUTH_REMEDIATION = "\n".join(
    [
        "Use a personal access token (PAT) or configure SSH:",
        "  1. Create a PAT at https://github.com/settings/tokens (with 'repo' scope).",
        "  2. Use the PAT as the password when cloning.",
        "  3. Or configure SSH: ssh-keygen -t rsa -b 4096, then add the public key to GitHub.",
    ]
)


class ProvisioningError(Exception):
    """Base class for failures that abort a provisioning run."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class DependencyInstallError(ProvisioningError):
    """Raised when the package manager fails or a dependency is still missing."""


class FetchError(ProvisioningError):
    """Raised when a download, extraction or clone fails."""


class AuthFetchError(FetchError):
    """Raised when a clone fails because the remote rejected our credentials."""

    def __init__(self, message: str, *, hint: str | None = AUTH_REMEDIATION) -> None:
        super().__init__(message, hint=hint)


class BuildError(ProvisioningError):
    """Raised when an external build invocation fails."""


class DisplaceError(ProvisioningError):
    """Raised when a stale backup cannot be deleted or the live copy cannot be renamed."""


class ProfileWriteError(ProvisioningError):
    """Raised when the shell profile cannot be written."""
