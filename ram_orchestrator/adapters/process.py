"""Asyncio subprocess handle with line-by-line output streaming."""

from __future__ import annotations

import asyncio
import logging
import os
from collections import deque
from typing import Awaitable, Callable, Mapping, Sequence

logger = logging.getLogger(__name__)

_STDERR_TAIL_LINES = 50
_READ_CHUNK_BYTES = 64 * 1024
_MAX_PENDING_BYTES = 1024 * 1024
_MAX_LOGGED_LINE_CHARS = 4096

SpawnCallable = Callable[[Sequence[str], str, Mapping[str, str] | None], Awaitable["SubprocessHandle"]]


class SubprocessHandle:
    """Running child process whose output is streamed to the log as it arrives.

    Standard error lines are also kept as a bounded tail so a failing exit can
    carry them as the error payload.
    """

    def __init__(self, process: asyncio.subprocess.Process, log_prefix: str):
        self._process = process
        self._log_prefix = log_prefix
        self._stderr_tail: deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
        self._killed = False
        self._readers = [
            asyncio.create_task(self._handle_pipe_lines(process.stdout, is_stderr=False)),
            asyncio.create_task(self._handle_pipe_lines(process.stderr, is_stderr=True)),
        ]

    @classmethod
    async def handle_spawn(
        cls,
        command: Sequence[str],
        log_prefix: str,
        env: Mapping[str, str] | None = None,
    ) -> SubprocessHandle:
        """Spawn one child process with piped output.

        Args:
            command: Executable followed by its arguments.
            log_prefix: Prefix for every streamed output line.
            env: Extra environment variables layered over the current environment.

        Returns:
            SubprocessHandle: Handle for the running process.

        Raises:
            OSError: Raised when the executable cannot be started.
        """

        child_env = dict(os.environ)
        if env:
            child_env.update(env)
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=child_env,
        )
        logger.debug("%s spawned pid=%s command=%s", log_prefix, process.pid, command[0])
        return cls(process=process, log_prefix=log_prefix)

    @property
    def killed(self) -> bool:
        return self._killed

    @property
    def stderr_text(self) -> str:
        return "\n".join(self._stderr_tail)

    def kill(self) -> None:
        """Kill the child process; a process that already exited is left alone."""

        self._killed = True
        if self._process.returncode is not None:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            logger.debug("%s process already exited before kill", self._log_prefix)

    async def handle_wait(self) -> int:
        """Wait for process exit and for all buffered output to be logged.

        Returns:
            int: Process exit code.
        """

        return_code = await self._process.wait()
        await asyncio.gather(*self._readers)
        return return_code

    async def _handle_pipe_lines(self, stream: asyncio.StreamReader | None, is_stderr: bool) -> None:
        if stream is None:
            return
        pending = b""
        while True:
            chunk = await stream.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            pending += chunk
            *complete_lines, pending = pending.split(b"\n")
            for raw_line in complete_lines:
                self._handle_output_line(raw_line, is_stderr)
            if len(pending) > _MAX_PENDING_BYTES:
                self._handle_output_line(pending, is_stderr)
                pending = b""
        if pending:
            self._handle_output_line(pending, is_stderr)

    def _handle_output_line(self, raw_line: bytes, is_stderr: bool) -> None:
        line = raw_line.decode("utf-8", errors="replace").rstrip()
        if not line:
            return
        if len(line) > _MAX_LOGGED_LINE_CHARS:
            line = f"{line[:_MAX_LOGGED_LINE_CHARS]}... ({len(line)} chars)"
        if is_stderr:
            self._stderr_tail.append(line)
            logger.warning("%s[ERROR] %s", self._log_prefix, line)
        else:
            logger.info("%s %s", self._log_prefix, line)
