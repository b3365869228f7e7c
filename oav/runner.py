"""Subprocess execution with per-task log capture.

:class:`ProcessRunner` runs one external tool to completion and records its
combined output in a log file:

- **Quiet path** -- stdout and stderr of the child are handed the log file
  directly, nothing is read into memory.
- **Verbose path** -- both pipes are drained concurrently in fixed-size
  chunks; every chunk is appended to the log under a lock and mirrored to
  the matching console stream as it arrives.

A non-zero exit status is an ordinary result (``False``).  Only I/O problems
(the log cannot be opened, the executable cannot be spawned) raise.
"""

from __future__ import annotations

import asyncio
import io
import os
import shlex
import sys
from pathlib import Path
from typing import BinaryIO, Optional, TextIO

from oav.models import Task

CHUNK_SIZE = 8192


def write_log_header(log_path: Path, header: str) -> None:
    """Truncate *log_path* and write the reproducible invocation plus a blank line."""
    with open(log_path, "w", encoding="utf-8") as fh:
        fh.write(f"{header}\n\n")


class ProcessRunner:
    """Runs external commands, one at a time, into their log files.

    Parameters
    ----------
    verbose:
        Mirror child output live to *stdout* / *stderr* in addition to the log.
    stdout / stderr:
        Console destinations for verbose mirroring.  Default to the
        process's own streams, looked up at run time.
    cwd:
        Working directory for the child process.
    env:
        Extra environment variables merged on top of ``os.environ``.
    """

    def __init__(
        self,
        verbose: bool = False,
        *,
        stdout: Optional[BinaryIO] = None,
        stderr: Optional[BinaryIO] = None,
        cwd: Optional[str | Path] = None,
        env: Optional[dict[str, str]] = None,
    ) -> None:
        self.verbose = verbose
        self._stdout = stdout
        self._stderr = stderr
        self.cwd = Path(cwd) if cwd else None
        self.env = env

    # -- Public API ----------------------------------------------------------

    async def run_task(self, task: Task) -> bool:
        """Run *task* and report whether its command exited with status 0."""
        return await self.run(task.command, task.log_path, header=task.header())

    async def run(
        self,
        command: list[str],
        log_path: str | Path,
        *,
        header: Optional[str] = None,
    ) -> bool:
        """Run *command*, capturing its output in *log_path*.

        The log is recreated with *header* (default: the shell-quoted command)
        before the child starts.

        Raises:
            OSError: If the log file cannot be written or the command cannot
                be started.
        """
        log_path = Path(log_path)
        write_log_header(log_path, header or f"$ {shlex.join(command)}")

        if self.verbose:
            returncode = await self._run_mirrored(command, log_path)
        else:
            returncode = await self._run_to_file(command, log_path)
        return returncode == 0

    # -- Execution paths -----------------------------------------------------

    async def _run_to_file(self, command: list[str], log_path: Path) -> int:
        with open(log_path, "ab") as log:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=log,
                stderr=log,
                cwd=str(self.cwd) if self.cwd else None,
                env=self._merged_env(),
            )
            return await process.wait()

    async def _run_mirrored(self, command: list[str], log_path: Path) -> int:
        with open(log_path, "ab") as log:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.cwd) if self.cwd else None,
                env=self._merged_env(),
            )
            assert process.stdout is not None  # guaranteed by PIPE
            assert process.stderr is not None

            lock = asyncio.Lock()
            try:
                await asyncio.gather(
                    _forward(process.stdout, log, lock, self._stdout or sys.stdout),
                    _forward(process.stderr, log, lock, self._stderr or sys.stderr),
                )
            except BaseException:
                if process.returncode is None:
                    process.kill()
                await process.wait()
                raise

            # Both streams are drained, so the log is complete.
            return await process.wait()

    def _merged_env(self) -> Optional[dict[str, str]]:
        if not self.env:
            return None
        return {**os.environ, **self.env}


async def _forward(
    reader: asyncio.StreamReader,
    log: BinaryIO,
    lock: asyncio.Lock,
    mirror: BinaryIO | TextIO,
) -> None:
    """Copy *reader* into *log* and *mirror* chunk by chunk until EOF."""
    while True:
        chunk = await reader.read(CHUNK_SIZE)
        if not chunk:
            break
        async with lock:
            log.write(chunk)
            log.flush()
        _write_console(mirror, chunk)


def _write_console(stream: BinaryIO | TextIO, chunk: bytes) -> None:
    if isinstance(stream, io.TextIOBase):
        buffer = getattr(stream, "buffer", None)
        if buffer is not None:
            # Raw bytes go under the text layer; flush it first to keep order.
            stream.flush()
            buffer.write(chunk)
            buffer.flush()
        else:
            stream.write(chunk.decode("utf-8", errors="replace"))
            stream.flush()
        return
    stream.write(chunk)
    stream.flush()
