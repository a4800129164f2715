"""Run the installer's external collaborators.

Package manager, git, unzip and the build tools are opaque commands: the only
contract is the exit status. Everything goes through :func:`run_command` so a
step never builds a shell string and tests can swap in a fake runner.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

TIMEOUT_RETURNCODE = 124
NOT_EXECUTABLE_RETURNCODE = 126
NOT_FOUND_RETURNCODE = 127


class CommandError(RuntimeError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str | None = None,
        stderr: str | None = None,
    ) -> None:
        detail = (stderr or "").strip() or "<none>"
        super().__init__(
            f"Command '{' '.join(command)}' exited with status {returncode}. stderr: {detail}"
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class CommandRunner(Protocol):
    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        extra_env: Mapping[str, str] | None = None,
        capture_output: bool = False,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]: ...


def _resolve_executable(head: str, search_path: str | None) -> str | None:
    # Path-like heads ("./build.sh", "/usr/bin/make") are resolved by the OS against cwd.
    if os.sep in head or (os.altsep and os.altsep in head):
        return head
    return shutil.which(head, path=search_path)


def _as_text(value: str | bytes | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.decode(errors="ignore")


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    extra_env: Mapping[str, str] | None = None,
    capture_output: bool = False,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute *args* without a shell and raise :class:`CommandError` on failure.

    ``extra_env`` is layered on top of the current process environment. A
    timeout is reported as return code 124 and a missing executable as 127,
    mirroring what a shell would report.
    """

    if not args:
        raise ValueError("run_command requires at least one argument")

    env = {**os.environ, **extra_env} if extra_env else None
    head, *rest = args
    executable = _resolve_executable(head, (env or os.environ).get("PATH"))
    if executable is None:
        raise CommandError(args, NOT_FOUND_RETURNCODE, None, f"{head}: command not found")

    try:
        completed = subprocess.run(
            [executable, *rest],
            cwd=str(cwd) if cwd is not None else None,
            env=env,
            check=False,
            capture_output=capture_output,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        stderr = _as_text(exc.stderr)
        message = f"Command timed out after {timeout:.1f}s"
        raise CommandError(
            args,
            TIMEOUT_RETURNCODE,
            _as_text(exc.stdout),
            f"{stderr}\n{message}" if stderr else message,
        ) from exc
    except PermissionError as exc:
        raise CommandError(args, NOT_EXECUTABLE_RETURNCODE, None, str(exc)) from exc
    except OSError as exc:
        raise CommandError(args, NOT_FOUND_RETURNCODE, None, str(exc)) from exc

    if completed.returncode != 0:
        raise CommandError(args, completed.returncode, completed.stdout, completed.stderr)

    return completed


__all__ = ["CommandError", "CommandRunner", "run_command"]
