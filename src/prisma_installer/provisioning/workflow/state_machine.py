"""Lifecycle of a fetched resource directory.

    ABSENT --fetch--> PRESENT
    PRESENT --(no refresh)--> PRESENT
    PRESENT --refresh--> DISPLACED --fetch--> PRESENT

Displacement deletes a stale ``<name>_old`` left by an earlier refresh, then
renames the live directory to ``<name>_old``. At most one backup exists per
resource.
"""

from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path

from prisma_installer.provisioning.errors import DisplaceError

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = "_old"


class ResourceState(str, Enum):
    ABSENT = "absent"
    PRESENT = "present"
    DISPLACED = "displaced"


ALLOWED_TRANSITIONS: dict[ResourceState, set[ResourceState]] = {
    ResourceState.ABSENT: {ResourceState.PRESENT},
    ResourceState.PRESENT: {ResourceState.PRESENT, ResourceState.DISPLACED},
    ResourceState.DISPLACED: {ResourceState.PRESENT},
}


class IllegalTransitionError(ValueError):
    pass


def transition(*, current: ResourceState, to: ResourceState) -> ResourceState:
    allowed = ALLOWED_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to


def observe(target: Path) -> ResourceState:
    return ResourceState.PRESENT if target.exists() else ResourceState.ABSENT


def backup_path(target: Path) -> Path:
    return target.with_name(f"{target.name}{BACKUP_SUFFIX}")


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def displace(target: Path) -> Path:
    """Move ``target`` aside to its backup name and return the backup path."""

    transition(current=observe(target), to=ResourceState.DISPLACED)
    backup = backup_path(target)

    if backup.exists() or backup.is_symlink():
        logger.warning("Removing stale backup", extra={"backup": str(backup)})
        try:
            _remove(backup)
        except OSError as e:
            raise DisplaceError(f"Failed to remove {backup}: {e}") from e

    logger.info("Renaming for refresh", extra={"source": str(target), "backup": str(backup)})
    try:
        target.rename(backup)
    except OSError as e:
        raise DisplaceError(f"Failed to rename {target} to {backup}: {e}") from e

    return backup
