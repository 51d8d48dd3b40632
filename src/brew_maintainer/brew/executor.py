"""
brew/executor.py — Brew Process Supervisor

Runs BrewCommands as child processes under two contracts:

  execute(cmd)                          → stdout text, for short phases
                                          (update, outdated, cleanup)
  execute_with_timeout(cmd, seconds)    → None, for per-package upgrades

The supervised contract spawns brew with both output pipes owned by the
supervisor and starts four tasks that all feed one asyncio.Queue:

  stdout watcher     — InputRequested on the first prompt-looking line
  stderr watcher     — same, over stderr
  completion watcher — Completed(returncode) or Completed(error)
  alarm              — Timeout once the duration elapses

The first event off the queue decides the result. On every exit path the
child is killed (a no-op once it has exited), all four tasks are awaited
and the pipe transport is closed before the call returns, so nothing
outlives it.

Completion is taken from the moment the child is reaped, not from
Process.wait(): wait() only resolves once both pipes have also closed,
which never happens while something brew started (a relaunched app, a
git or gpg daemon) still holds them.

The child only ever sees the environment carried by the command; nothing
is inherited from this process beyond what envs() chose to forward.
"""

from __future__ import annotations

import asyncio
import os
import signal
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

from brew_maintainer.brew.command import BrewCommand
from brew_maintainer.brew.prompts import is_interactive_prompt
from brew_maintainer.exceptions import (
    BrewError,
    CommandTimeoutError,
    ExecutionFailedError,
    InputRequestedError,
)
from brew_maintainer.observability.logger import get_logger

log = get_logger(__name__)

DEFAULT_BREW_BINARY = "brew"

# Variables forwarded from this process to brew. Nothing else is inherited.
INHERITED_ENV_VARS: tuple[str, ...] = ("HOME", "PATH")

# Longest line a watcher buffers before it gives up on that line
_STREAM_LIMIT = 1024 * 1024

# How long output watchers get to reach EOF after the child is gone
_DRAIN_GRACE_SECONDS = 2.0

# POSIX: the child leads its own process group so a kill also reaches the
# git/curl processes brew starts, which would otherwise hold the pipes open
_HAS_PROCESS_GROUPS = hasattr(os, "killpg") and hasattr(signal, "SIGKILL")


# ─────────────────────────────────────────────────────────────────────────────
# Executor interface
# ─────────────────────────────────────────────────────────────────────────────

class CommandExecutor(ABC):
    """What the maintainer needs from anything that can run brew."""

    @abstractmethod
    async def execute(self, cmd: BrewCommand) -> str:
        """Run cmd to completion and return its stdout. Raises BrewError."""

    @abstractmethod
    async def execute_with_timeout(self, cmd: BrewCommand, timeout_seconds: float) -> None:
        """Run cmd under prompt detection and a wall-clock limit. Raises BrewError."""

    @abstractmethod
    def envs(self) -> dict[str, str]:
        """Environment every command should carry."""


# ─────────────────────────────────────────────────────────────────────────────
# Supervised-call events
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class InputRequested:
    stream: str
    line: str


@dataclass(frozen=True)
class TimedOut:
    timeout_seconds: float


@dataclass(frozen=True)
class Completed:
    returncode: Optional[int] = None
    error: Optional[BaseException] = None


ProcessEvent = Union[InputRequested, TimedOut, Completed]


class _ExitWatchingProtocol(asyncio.subprocess.SubprocessStreamProtocol):
    """Stream protocol whose `exited` future resolves as soon as the child is reaped."""

    def __init__(self, limit: int, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(limit=limit, loop=loop)
        self.exited: asyncio.Future[None] = loop.create_future()

    def process_exited(self) -> None:
        super().process_exited()
        if not self.exited.done():
            self.exited.set_result(None)


# ─────────────────────────────────────────────────────────────────────────────
# Real executor
# ─────────────────────────────────────────────────────────────────────────────

class BrewExecutor(CommandExecutor):
    """
    Runs commands against the real brew binary.

    Args:
        binary: Executable to run. A bare name is resolved against the PATH
                carried by the command's env, not this process's PATH.
    """

    def __init__(self, binary: str = DEFAULT_BREW_BINARY) -> None:
        self._binary = binary

    @property
    def binary(self) -> str:
        return self._binary

    def envs(self) -> dict[str, str]:
        return {
            name: os.environ[name]
            for name in INHERITED_ENV_VARS
            if name in os.environ
        }

    # ── Blocking contract ─────────────────────────────────────────────────────

    async def execute(self, cmd: BrewCommand) -> str:
        args = _checked_args(cmd)
        log.info("brew.exec.start", command=str(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                self._binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=cmd.to_env(),
            )
        except OSError as exc:
            log.error("brew.exec.spawn_failed", command=str(cmd), error=str(exc))
            raise ExecutionFailedError(str(exc)) from exc

        stdout_bytes, stderr_bytes = await proc.communicate()

        if proc.returncode != 0:
            stderr = stderr_bytes.decode("utf-8", errors="replace")
            log.warning(
                "brew.exec.failed",
                command=str(cmd),
                exit_code=proc.returncode,
                stderr=stderr[-2000:],
            )
            raise ExecutionFailedError(stderr)

        try:
            stdout = stdout_bytes.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExecutionFailedError(str(exc)) from exc

        log.debug("brew.exec.done", command=str(cmd), stdout_bytes=len(stdout_bytes))
        return stdout

    # ── Supervised contract ───────────────────────────────────────────────────

    async def execute_with_timeout(self, cmd: BrewCommand, timeout_seconds: float) -> None:
        timeout_seconds = max(0.0, float(timeout_seconds))
        args = _checked_args(cmd)
        log.info("brew.exec.start", command=str(cmd), timeout_seconds=timeout_seconds)

        # ── Spawning ──────────────────────────────────────────────────────────
        # Same as asyncio.create_subprocess_exec, but keeping hold of the
        # protocol to learn when the child exits and of the transport to
        # release the pipes afterwards
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.subprocess_exec(
                lambda: _ExitWatchingProtocol(_STREAM_LIMIT, loop),
                self._binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=cmd.to_env(),
                start_new_session=_HAS_PROCESS_GROUPS,
            )
        except OSError as exc:
            log.error("brew.exec.spawn_failed", command=str(cmd), error=str(exc))
            raise ExecutionFailedError(str(exc)) from exc

        proc = asyncio.subprocess.Process(transport, protocol, loop)
        pid = proc.pid
        log.info("brew.exec.spawned", command=str(cmd), pid=pid)

        if proc.stdout is None or proc.stderr is None:
            _kill(proc)
            transport.close()
            raise ExecutionFailedError(f"output pipes of '{cmd}' were not opened")

        # ── Running ───────────────────────────────────────────────────────────
        events: asyncio.Queue[ProcessEvent] = asyncio.Queue()
        watchers = [
            asyncio.create_task(_watch_output(proc.stdout, "stdout", events)),
            asyncio.create_task(_watch_output(proc.stderr, "stderr", events)),
            asyncio.create_task(_watch_completion(proc, protocol.exited, events)),
        ]
        alarm = asyncio.create_task(_alarm(timeout_seconds, events))

        t_start = time.monotonic()
        succeeded = False
        try:
            event = await _next_event(events, watchers, alarm)
            _raise_for_event(event, cmd, pid)
            succeeded = True
            log.info(
                "brew.exec.done",
                command=str(cmd),
                pid=pid,
                duration_ms=round((time.monotonic() - t_start) * 1000, 1),
            )
        finally:
            # ── Terminating ───────────────────────────────────────────────────
            _kill(proc, whole_group=not succeeded)
            alarm.cancel()
            await _drain([*watchers, alarm])
            # A descendant may still hold the write ends; drop our read ends
            transport.close()
            log.debug("brew.exec.reaped", pid=pid, returncode=proc.returncode)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _checked_args(cmd: BrewCommand) -> list[str]:
    args = cmd.to_args()
    if any(not a for a in args):
        raise ExecutionFailedError(f"refusing to run '{cmd}': empty argument")
    return args


async def _watch_output(
    stream: asyncio.StreamReader,
    name: str,
    events: asyncio.Queue[ProcessEvent],
) -> None:
    """Read lines until EOF; report the first prompt-looking line and stop."""
    while True:
        try:
            raw = await stream.readline()
        except ValueError:
            # Line longer than the stream limit; the overrun is discarded
            continue
        if not raw:
            return
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        log.debug("brew.output", stream=name, line=line)
        if is_interactive_prompt(line):
            events.put_nowait(InputRequested(stream=name, line=line))
            return


async def _watch_completion(
    proc: asyncio.subprocess.Process,
    exited: asyncio.Future[None],
    events: asyncio.Queue[ProcessEvent],
) -> None:
    """Report the exit status once the child is reaped, open pipes or not."""
    try:
        await exited
    except Exception as exc:
        events.put_nowait(Completed(error=exc))
        return
    events.put_nowait(Completed(returncode=proc.returncode))


async def _alarm(timeout_seconds: float, events: asyncio.Queue[ProcessEvent]) -> None:
    await asyncio.sleep(timeout_seconds)
    events.put_nowait(TimedOut(timeout_seconds))


async def _next_event(
    events: asyncio.Queue[ProcessEvent],
    watchers: list[asyncio.Task],
    alarm: asyncio.Task,
) -> Optional[ProcessEvent]:
    """
    Wait for the first event. Returns None if every producer finished
    without enqueuing anything, which only happens if one of them crashed.
    """
    getter = asyncio.ensure_future(events.get())
    producers = {*watchers, alarm}
    try:
        while True:
            pending_producers = {t for t in producers if not t.done()}
            done, _ = await asyncio.wait(
                {getter, *pending_producers},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if getter in done:
                return getter.result()
            if not events.empty():
                continue
            if all(t.done() for t in producers):
                return None
    finally:
        if not getter.done():
            getter.cancel()


def _raise_for_event(event: Optional[ProcessEvent], cmd: BrewCommand, pid: int) -> None:
    """Map the winning event to the call's outcome. Returns only on success."""
    error: Optional[BrewError] = None

    if event is None:
        error = ExecutionFailedError("event channel closed")
    elif isinstance(event, InputRequested):
        log.warning(
            "brew.exec.input_requested",
            command=str(cmd),
            pid=pid,
            stream=event.stream,
            line=event.line,
        )
        error = InputRequestedError(event.line)
    elif isinstance(event, TimedOut):
        log.warning(
            "brew.exec.timeout",
            command=str(cmd),
            pid=pid,
            timeout_seconds=event.timeout_seconds,
        )
        error = CommandTimeoutError(event.timeout_seconds)
    elif event.error is not None:
        error = ExecutionFailedError(str(event.error))
    elif event.returncode != 0:
        error = ExecutionFailedError(f"Process exited with code: {event.returncode}")

    if error is not None:
        if not isinstance(error, (InputRequestedError, CommandTimeoutError)):
            log.warning("brew.exec.failed", command=str(cmd), pid=pid, error=str(error))
        raise error


def _kill(proc: asyncio.subprocess.Process, whole_group: bool = True) -> None:
    """
    SIGKILL the child (TerminateProcess on Windows), and with whole_group
    everything else in its process group. Safe to call repeatedly: once the
    child has been reaped and its group is empty there is nothing to signal.
    """
    if whole_group and _HAS_PROCESS_GROUPS:
        try:
            # The group id is the child's pid; it cannot be recycled while
            # any member of the group is still alive
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass


async def _drain(tasks: list[asyncio.Task]) -> None:
    """
    Await every supervised-call task. Any still blocked on a pipe after the
    grace period is cancelled, then awaited, so none outlives the call.
    """
    _, pending = await asyncio.wait(tasks, timeout=_DRAIN_GRACE_SECONDS)
    for task in pending:
        task.cancel()
    if pending:
        log.debug("brew.exec.drain_cancelled", tasks=len(pending))
    await asyncio.gather(*tasks, return_exceptions=True)
