from __future__ import annotations

import shutil
import socket
import subprocess
import time

from pydantic import BaseModel, Field

from .errors import SpawnError
from .models import Server

DEFAULT_PROGRAM = "ssh"


class CommandSpec(BaseModel):
    """Program and argument vector for an outbound SSH session."""

    program: str = DEFAULT_PROGRAM
    args: list[str] = Field(default_factory=list)

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return " ".join(self.argv)


def build_command(server: Server, program: str = DEFAULT_PROGRAM) -> CommandSpec:
    """Build the ssh invocation for a server. The port is always explicit."""
    return CommandSpec(program=program, args=["-p", str(server.port), server.destination()])


def launch(spec: CommandSpec) -> int:
    """Run the command attached to the current terminal and return its exit code."""
    executable = shutil.which(spec.program)
    if executable is None:
        raise SpawnError(spec.program)

    try:
        rc = subprocess.call([executable, *spec.args])  # noqa: S603
    except KeyboardInterrupt:
        return 130
    except OSError as e:
        raise SpawnError(spec.program, e) from e

    # Killed by signal N: report it the way a shell would.
    if rc < 0:
        return 128 - rc
    return rc


def check_server_availability(server: Server, timeout: float = 3.0) -> tuple[bool, str, float]:
    """
    Check if server is reachable on its SSH port.
    Returns (is_available, message, response_time_ms).
    """
    start_time = time.perf_counter()

    try:
        with socket.create_connection((server.host, server.port), timeout=timeout):
            pass
        elapsed = (time.perf_counter() - start_time) * 1000
        return True, "reachable", elapsed
    except socket.gaierror:
        elapsed = (time.perf_counter() - start_time) * 1000
        return False, "DNS error", elapsed
    except TimeoutError:
        elapsed = (time.perf_counter() - start_time) * 1000
        return False, "timeout", elapsed
    except ConnectionRefusedError:
        elapsed = (time.perf_counter() - start_time) * 1000
        return False, "port closed", elapsed
    except OSError as e:
        elapsed = (time.perf_counter() - start_time) * 1000
        return False, f"error: {e}", elapsed
