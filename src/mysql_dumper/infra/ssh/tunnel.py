"""SSH local port-forward management.

Each operation that needs to reach a MySQL server through an SSH jump host
creates its own tunnel, uses the forwarded loopback endpoint, and closes
the tunnel before returning. Nothing is shared between operations: the
``TunnelHandle`` owns its subprocess and that subprocess's pipes.
"""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum

from loguru import logger

from mysql_dumper.core.errors import (
    ConfigError,
    DependencyMissing,
    ResourceError,
    TunnelEstablishFailed,
)
from mysql_dumper.core.models import Endpoint, ServerProfile
from mysql_dumper.infra.ssh.ports import LOOPBACK, allocate_local_port, is_port_listening
from mysql_dumper.runtime.config import TunnelConfig
from mysql_dumper.utils.console_like import ConsoleLike

SSH_BINARY = "ssh"
SSHPASS_BINARY = "sshpass"


class TunnelState(StrEnum):
    UNSTARTED = "unstarted"
    STARTING = "starting"
    ESTABLISHED = "established"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class TunnelHandle:
    """A running SSH forward bound to ``host:port`` on this machine.

    The handle owns ``process`` and its stdout/stderr pipes; ``close``
    releases all of them.
    """

    host: str
    port: int
    process: subprocess.Popen[str]
    state: TunnelState = TunnelState.STARTING
    grace_interval: float = field(default=0.1, repr=False)
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(host=self.host, port=self.port)

    def is_alive(self) -> bool:
        return self.process.poll() is None

    def read_stderr(self) -> str:
        """Collect whatever the exited process wrote to stderr."""
        try:
            _, stderr = self.process.communicate(timeout=self.grace_interval or None)
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            logger.debug(f"Could not read tunnel stderr: {exc}")
            return ""
        return (stderr or "").strip()

    def close(self) -> None:
        """Stop the forward. Safe to call any number of times; never raises.

        Sends SIGTERM to the tunnel's process group, waits ``grace_interval``
        seconds and escalates to SIGKILL if the process is still running.
        """
        if self._released:
            return

        previous = self.state
        self.state = TunnelState.CLOSING
        try:
            if self.process.poll() is None:
                self._signal_group(signal.SIGTERM, self.process.terminate)
                try:
                    self.process.wait(timeout=self.grace_interval)
                except subprocess.TimeoutExpired:
                    logger.debug(
                        f"Tunnel on port {self.port} ignored SIGTERM, sending SIGKILL"
                    )
                    self._signal_group(signal.SIGKILL, self.process.kill)
                    self.process.wait()
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug(f"Error while stopping tunnel on port {self.port}: {exc}")
        finally:
            self._release_pipes()
            self._released = True
            # FAILED stays terminal; every other path ends CLOSED.
            self.state = (
                TunnelState.FAILED if previous is TunnelState.FAILED else TunnelState.CLOSED
            )
            logger.debug(f"Tunnel on port {self.port} closed")

    def _signal_group(self, sig: signal.Signals, fallback: Callable[[], None]) -> None:
        # The tunnel leads its own session, so sshpass and ssh share its group.
        try:
            os.killpg(self.process.pid, sig)
        except (ProcessLookupError, PermissionError) as exc:
            logger.debug(f"Could not signal process group {self.process.pid}: {exc}")
            fallback()

    def _release_pipes(self) -> None:
        for stream in (self.process.stdin, self.process.stdout, self.process.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as exc:
                logger.debug(f"Error closing tunnel pipe: {exc}")


class SshTunnelManager:
    """Creates and tears down SSH local port-forwards for server profiles.

    Example:
        >>> manager = SshTunnelManager(config.tunnel)
        >>> with manager.tunnel_for(profile) as endpoint:
        ...     # endpoint is None for direct profiles
        ...     host, port = (endpoint.host, endpoint.port) if endpoint else (profile.host, profile.port)
    """

    def __init__(
        self,
        config: TunnelConfig | None = None,
        *,
        console: ConsoleLike | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self.config = config or TunnelConfig()
        self._console = console
        self._which = which

    def build_command(self, profile: ServerProfile, local_port: int) -> list[str]:
        """Build the ssh argv forwarding ``local_port`` to the profile's MySQL port.

        Password authentication is wrapped in ``sshpass -e``; the password
        itself travels in the ``SSHPASS`` environment variable.

        Raises:
            ConfigError: If the profile has no SSH configuration
        """
        ssh = profile.ssh
        if ssh is None:
            raise ConfigError(
                f"Server '{profile.name}' does not have an SSH tunnel configured."
            )

        remote_host = f"[{profile.host}]" if ":" in profile.host else profile.host
        cmd = [
            SSH_BINARY,
            "-N",
            "-L",
            f"{LOOPBACK}:{local_port}:{remote_host}:{profile.port}",
            "-p",
            str(ssh.port),
        ]

        key_path = ssh.expanded_key_path
        if key_path:
            cmd += ["-i", key_path]

        cmd += [
            "-o",
            "ExitOnForwardFailure=yes",
            "-o",
            f"ServerAliveInterval={self.config.server_alive_interval}",
            "-o",
            f"ServerAliveCountMax={self.config.server_alive_count_max}",
        ]
        cmd += self._host_key_options()
        cmd.append(f"{ssh.username}@{ssh.host}")

        if not key_path:
            cmd = [SSHPASS_BINARY, "-e", *cmd]
        return cmd

    def _host_key_options(self) -> list[str]:
        if not self.config.strict_host_key_checking:
            return [
                "-o",
                "StrictHostKeyChecking=no",
                "-o",
                "UserKnownHostsFile=/dev/null",
            ]

        options = ["-o", "StrictHostKeyChecking=yes"]
        if self.config.known_hosts_file:
            options += ["-o", f"UserKnownHostsFile={self.config.known_hosts_file}"]
        return options

    def _environment(self, profile: ServerProfile) -> dict[str, str] | None:
        ssh = profile.ssh
        if ssh is None or ssh.key_path or not ssh.password:
            return None
        return {**os.environ, "SSHPASS": ssh.password}

    def _check_dependencies(self, profile: ServerProfile) -> None:
        if not self._which(SSH_BINARY):
            raise DependencyMissing(SSH_BINARY, "Please ensure OpenSSH is installed.")
        if profile.ssh and not profile.ssh.key_path and not self._which(SSHPASS_BINARY):
            raise DependencyMissing(
                SSHPASS_BINARY,
                "SSH password authentication needs sshpass. "
                "Install it or configure an SSH key path for this server.",
            )

    def create_tunnel(self, profile: ServerProfile) -> TunnelHandle:
        """Start an SSH forward for ``profile`` and wait until it accepts connections.

        Returns:
            An established TunnelHandle bound to 127.0.0.1

        Raises:
            ConfigError: If the profile has no SSH configuration
            DependencyMissing: If ssh (or sshpass for password auth) is not on PATH
            ResourceError: If no local port is available or ssh cannot be spawned
            TunnelEstablishFailed: If ssh exits or the forward never becomes ready
        """
        if profile.ssh is None:
            raise ConfigError(
                f"Server '{profile.name}' does not have an SSH tunnel configured."
            )
        self._check_dependencies(profile)

        local_port = allocate_local_port()
        cmd = self.build_command(profile, local_port)
        ssh = profile.ssh

        logger.debug(
            f"Starting SSH tunnel {LOOPBACK}:{local_port} -> "
            f"{ssh.username}@{ssh.host}:{ssh.port} -> {profile.address}"
        )
        if self._console:
            self._console.print(
                f"[dim]Starting SSH tunnel: localhost:{local_port} -> "
                f"{ssh.host} -> {profile.address}[/dim]"
            )

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=self._environment(profile),
                start_new_session=True,
            )
        except OSError as exc:
            raise ResourceError(f"Failed to start SSH tunnel process: {exc}") from exc

        handle = TunnelHandle(
            host=LOOPBACK,
            port=local_port,
            process=process,
            grace_interval=self.config.grace_interval,
        )
        try:
            self._wait_until_ready(handle)
        except BaseException:
            # Includes KeyboardInterrupt while polling
            handle.close()
            raise

        if self._console:
            self._console.print(
                f"[dim]SSH tunnel active: localhost:{local_port} -> {profile.address}[/dim]"
            )
        return handle

    def _wait_until_ready(self, handle: TunnelHandle) -> None:
        """Poll until the forward accepts connections, ssh exits, or time runs out."""
        timeout = self.config.settle_timeout
        interval = self.config.poll_interval
        deadline = time.monotonic() + timeout

        while True:
            if not handle.is_alive():
                stderr = handle.read_stderr()
                handle.state = TunnelState.FAILED
                handle.close()
                logger.debug(f"SSH tunnel exited during startup: {stderr}")
                raise TunnelEstablishFailed(stderr)

            if is_port_listening(handle.host, handle.port, timeout=interval):
                handle.state = TunnelState.ESTABLISHED
                logger.debug(f"SSH tunnel established on port {handle.port}")
                return

            if time.monotonic() >= deadline:
                handle.state = TunnelState.FAILED
                handle.close()
                raise TunnelEstablishFailed(
                    "",
                    reason=(
                        f"SSH tunnel did not accept connections on "
                        f"{handle.host}:{handle.port} within {timeout:g}s"
                    ),
                )

            time.sleep(interval)

    def close_tunnel(self, handle: TunnelHandle) -> None:
        """Close ``handle``. Idempotent and never raises."""
        handle.close()
        if self._console:
            self._console.print("[dim]SSH tunnel stopped[/dim]")

    @contextmanager
    def tunnel_for(self, profile: ServerProfile) -> Iterator[Endpoint | None]:
        """Context manager yielding the endpoint to connect to.

        Yields None for profiles without SSH configuration; otherwise the
        forwarded loopback endpoint, closed when the block exits.
        """
        if not profile.has_ssh_tunnel:
            yield None
            return

        handle = self.create_tunnel(profile)
        try:
            yield handle.endpoint
        finally:
            self.close_tunnel(handle)
