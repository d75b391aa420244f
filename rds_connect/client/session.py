"""Context manager for an ephemeral client container with guaranteed teardown."""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import sys
import time
from types import FrameType

from ..exceptions import MissingDependency
from .engines import ConnectionPlan

logger = logging.getLogger(__name__)

CONTAINER_RUNTIME = "docker"

# Signals that tear the session down; SIGINT already raises KeyboardInterrupt.
_TEARDOWN_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


class SessionTerminated(BaseException):
    """Raised inside the session when a teardown signal arrives."""

    def __init__(self, signum: int):
        super().__init__(signal.Signals(signum).name)
        self.signum = signum


def require_runtime(runtime: str = CONTAINER_RUNTIME) -> str:
    path = shutil.which(runtime)
    if path is None:
        raise MissingDependency(f"'{runtime}' is required but not found")
    return path


def container_name(prefix: str = "dbclient") -> str:
    """Name unique across concurrent invocations: process id plus nanosecond timestamp."""
    return f"{prefix}-{os.getpid()}-{time.time_ns()}"


class ClientSession:
    """Runs one database client in a throwaway container.

    Usage:
        with ClientSession(plan, password) as session:
            returncode = session.run(["psql", url])
        # The container is removed on every exit path, including SIGINT/SIGTERM/SIGHUP.
    """

    def __init__(self, plan: ConnectionPlan, password: str, runtime: str = CONTAINER_RUNTIME):
        self.plan = plan
        self.name = container_name()
        self._password = password
        self._runtime = runtime
        self._previous_handlers: dict[int, object] = {}

    def __enter__(self) -> ClientSession:
        for signum in _TEARDOWN_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
        logger.debug("Client session %s opened", self.name, extra={"container": self.name})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            self._remove_container()
        finally:
            for signum, handler in self._previous_handlers.items():
                signal.signal(signum, handler)
            self._previous_handlers.clear()
        return False

    def command(self, client_args: list[str], interactive_tty: bool | None = None) -> list[str]:
        """The full ``docker run`` argument list. The password is passed by name only."""
        if interactive_tty is None:
            interactive_tty = sys.stdin.isatty()
        return [
            self._runtime, "run", "--rm",
            "-it" if interactive_tty else "-i",
            "--name", self.name,
            "-e", self.plan.password_env,
            self.plan.client_image,
            *client_args,
        ]

    def run(self, client_args: list[str]) -> int:
        """Run the client attached to this process's terminal and return its exit status."""
        env = {**os.environ, self.plan.password_env: self._password}
        completed = subprocess.run(self.command(client_args), env=env, check=False)
        return completed.returncode

    def _remove_container(self) -> None:
        """Best-effort removal; ``--rm`` usually got there first."""
        try:
            subprocess.run(
                [self._runtime, "rm", "-f", self.name],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError:
            logger.debug("Could not remove container %s", self.name, exc_info=True)

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.debug("Received %s, tearing down %s", signal.Signals(signum).name, self.name)
        raise SessionTerminated(signum)
