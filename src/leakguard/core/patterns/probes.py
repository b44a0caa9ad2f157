"""
Catastrophic-backtracking probes.

Python's ``re`` engine cannot be interrupted once a match starts, and it
holds the GIL while matching, so a runaway probe can only be stopped by
killing the process running it. Probes therefore run in a child process;
the child measures each probe itself and the parent enforces the
wall-clock timeout, terminating and replacing the child when it expires.
"""

import logging
import multiprocessing
import os
import re
import threading
import time
from multiprocessing.connection import Connection

from .models import BacktrackingResult

logger = logging.getLogger(__name__)

# Long runs followed by a terminator the pattern cannot consume, plus a
# newline-terminated run that defeats ``.``-based nesting anchored by ``$``.
PROBE_INPUTS: tuple[str, ...] = (
    "a" * 100 + "X",
    "a" * 50 + "b" * 50 + "X",
    "1" * 100 + "X",
    "x" * 30 + "y" * 30 + "z" * 30 + "X",
    "a" * 29 + "X",
    "abcdefghijklmnopqrstuvwxyzX",
    "a" * 30 + "\nX",
)

START_METHOD_ENV_VAR = "LEAKGUARD_PROBE_START_METHOD"

_STARTUP_TIMEOUT_S = 30.0


class ProbeError(Exception):
    """Raised when the probe process fails for reasons other than a timeout."""
    pass


def _probe_worker(conn: Connection) -> None:
    """Child loop: compile each job's pattern and time every probe."""
    while True:
        try:
            job = conn.recv()
        except EOFError:
            break
        if job is None:
            break

        pattern, flags, probes = job
        try:
            compiled = re.compile(pattern, flags)
        except re.error as e:
            conn.send(("error", str(e)))
            continue

        conn.send(("ready", None))
        for probe in probes:
            start = time.perf_counter()
            compiled.search(probe)
            conn.send(("probe", (time.perf_counter() - start) * 1000.0))
        conn.send(("done", None))
    conn.close()


def get_probe_mp_context():
    """
    Select the multiprocessing context for the probe process.

    ``LEAKGUARD_PROBE_START_METHOD`` overrides the choice. Otherwise the
    platform default is used, except that ``fork`` is avoided while other
    threads are alive: forkserver is preferred, then spawn.
    """
    override = os.environ.get(START_METHOD_ENV_VAR)
    if override:
        return multiprocessing.get_context(override)

    default_method = (
        multiprocessing.get_start_method(allow_none=True)
        or multiprocessing.get_all_start_methods()[0]
    )
    if os.name == "nt" or default_method != "fork":
        return multiprocessing.get_context(default_method)

    if threading.active_count() > 1:
        for method in ("forkserver", "spawn"):
            try:
                return multiprocessing.get_context(method)
            except ValueError:
                continue

    return multiprocessing.get_context("fork")


class ProbeRunner:
    """
    Runs probe batteries in a reusable child process.

    The child is started lazily and replaced after any timeout, so a batch
    of patterns pays the process start-up cost once in the common case.
    Use as a context manager to guarantee the child is stopped.
    """

    def __init__(
        self,
        timeout_ms: float = 1000,
        slow_threshold_ms: float = 100,
        probes: tuple[str, ...] = PROBE_INPUTS,
    ):
        self._timeout_s = timeout_ms / 1000.0
        self._timeout_ms = timeout_ms
        self._slow_threshold_ms = slow_threshold_ms
        self._probes = tuple(probes)
        self._process = None
        self._conn: Connection | None = None

    def __enter__(self) -> "ProbeRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def probes(self) -> tuple[str, ...]:
        return self._probes

    def _ensure_started(self) -> Connection:
        if self._process is not None and self._process.is_alive() and self._conn is not None:
            return self._conn

        self._stop(kill=True)
        ctx = get_probe_mp_context()
        parent_conn, child_conn = ctx.Pipe()
        process = ctx.Process(target=_probe_worker, args=(child_conn,), daemon=True)
        process.start()
        child_conn.close()
        self._process = process
        self._conn = parent_conn
        logger.debug(
            f"Started probe process pid={process.pid} method={ctx.get_start_method()}"
        )
        return parent_conn

    def _recv(self, timeout_s: float) -> tuple[str, object] | None:
        """Receive one message; None on timeout. Raises ProbeError if the child died."""
        conn = self._conn
        if conn is None:
            raise ProbeError("Probe process is not running")
        try:
            if not conn.poll(timeout_s):
                return None
            return conn.recv()
        except (EOFError, OSError) as e:
            self._stop(kill=True)
            raise ProbeError(f"Probe process exited unexpectedly: {e}") from e

    def run(self, pattern: str, flags: int) -> BacktrackingResult:
        """
        Run the probe battery against one pattern.

        Args:
            pattern: Regular expression source (already known to compile)
            flags: Compilation flags

        Returns:
            BacktrackingResult for the first triggering probe, or a clean result

        Raises:
            ProbeError: If the child process could not run the battery
        """
        conn = self._ensure_started()
        try:
            conn.send((pattern, flags, list(self._probes)))
        except (OSError, ValueError) as e:
            self._stop(kill=True)
            raise ProbeError(f"Could not send job to probe process: {e}") from e

        message = self._recv(_STARTUP_TIMEOUT_S)
        if message is None:
            self._stop(kill=True)
            raise ProbeError("Probe process did not respond")
        kind, payload = message
        if kind == "error":
            raise ProbeError(f"Probe process could not compile pattern: {payload}")

        slowest = 0.0
        for probe in self._probes:
            message = self._recv(self._timeout_s)
            if message is None:
                logger.debug(f"Probe timed out after {self._timeout_ms}ms for pattern {pattern!r}")
                self._stop(kill=True)
                return BacktrackingResult(
                    has_backtracking=True,
                    execution_time_ms=float(self._timeout_ms),
                    timed_out=True,
                    test_input=probe,
                )

            elapsed_ms = float(message[1])
            if elapsed_ms > self._slow_threshold_ms:
                # Remaining probes may run away too; replace the child
                self._stop(kill=True)
                return BacktrackingResult(
                    has_backtracking=True,
                    execution_time_ms=round(elapsed_ms, 2),
                    timed_out=False,
                    test_input=probe,
                )
            slowest = max(slowest, elapsed_ms)

        if self._recv(self._timeout_s) is None:
            self._stop(kill=True)

        return BacktrackingResult(
            has_backtracking=False,
            execution_time_ms=round(slowest, 2),
            timed_out=False,
        )

    def _stop(self, kill: bool) -> None:
        process, conn = self._process, self._conn
        self._process = None
        self._conn = None

        if conn is not None:
            if not kill:
                try:
                    conn.send(None)
                except (OSError, ValueError):
                    kill = True
            conn.close()

        if process is None:
            return
        if kill and process.is_alive():
            process.terminate()
        process.join(timeout=5)
        if process.is_alive():
            process.kill()
            process.join(timeout=5)

    def close(self) -> None:
        """Stop the child process if one is running."""
        self._stop(kill=False)
