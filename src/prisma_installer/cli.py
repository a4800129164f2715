"""Console-script entrypoint.

The CLI is implemented in `prisma_installer.provisioning.main`.
"""

from __future__ import annotations

from prisma_installer.provisioning.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
