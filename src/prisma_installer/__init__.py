"""PRISMA installer.

Bootstraps the z88dk Z80 cross-compiler and the PRISMA game framework on
macOS with an idempotent, ordered list of provisioning steps:
- configuration loaded from the environment or `.env`
- structured logging
- a single `--refresh` CLI switch
"""

__version__ = "0.1.0"

from prisma_installer.provisioning.config import InstallerSettings

__all__ = ["__version__", "InstallerSettings"]
