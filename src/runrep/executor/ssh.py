"""SSH executor implementation using paramiko."""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, TypeVar

import paramiko

from runrep.errors import (
    DomainError,
    PermissionDenied,
    ResourceNotFound,
    TransportError,
)
from runrep.executor.classifier import classify
from runrep.types import Command

logger = logging.getLogger(__name__)

T = TypeVar("T")

# paramiko surfaces transport trouble as any of these
TRANSPORT_ERRORS = (paramiko.SSHException, paramiko.SFTPError, OSError, EOFError)


class RemoteReader:
    """Binary reader over an open SFTP file. Read failures become TransportError."""

    def __init__(self, remote_file: paramiko.SFTPFile, path: str):
        self._file = remote_file
        self.path = path

    def read(self, size: int | None = None) -> bytes:
        try:
            return self._file.read(size)
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"Connection failed while reading `{self.path}`", e) from e

    def readable(self) -> bool:
        return True


@dataclass
class SSHConfig:
    """SSH target for one call. Fields may differ from call to call."""

    host: str
    user: str
    port: int = 22
    password: str | None = field(default=None, repr=False)
    key_path: str | None = None
    key_passphrase: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class ConnectionIdentity:
    """Fields that decide whether an open connection can be reused."""

    host: str
    port: int
    username: str
    password: str = field(repr=False)
    private_key_path: str
    private_key_passphrase: str = field(repr=False)

    @classmethod
    def from_config(cls, config: SSHConfig) -> "ConnectionIdentity":
        return cls(
            host=config.host or "",
            port=config.port,
            username=config.user or "",
            password=config.password or "",
            private_key_path=config.key_path or "",
            private_key_passphrase=config.key_passphrase or "",
        )


@dataclass
class ExecutorSettings:
    """Timeouts and host key handling. All durations in seconds."""

    connect_timeout: float = 30.0
    data_timeout: float = 300.0
    # runrep writes the output file asynchronously after its stderr closes
    settle_interval: float = 3.0
    known_hosts: str | None = None
    strict_host_key_checking: bool = False
    prefetch: bool = True


class ConnectionCache:
    """Single-entry connection cache keyed by ConnectionIdentity."""

    def __init__(self):
        self.identity: ConnectionIdentity | None = None
        self.client: paramiko.SSHClient | None = None

    def get(self, identity: ConnectionIdentity) -> paramiko.SSHClient | None:
        """Return the cached client if it was opened for an equal identity."""
        if self.client is not None and self.identity == identity:
            return self.client
        return None

    def put(self, identity: ConnectionIdentity, client: paramiko.SSHClient) -> None:
        self.identity = identity
        self.client = client

    def clear(self) -> paramiko.SSHClient | None:
        """Forget the cached entry. Returns the evicted client, if any."""
        client = self.client
        self.identity = None
        self.client = None
        return client


ClientFactory = Callable[[ConnectionIdentity, ExecutorSettings], paramiko.SSHClient]


def connect_client(identity: ConnectionIdentity, settings: ExecutorSettings) -> paramiko.SSHClient:
    """Establish SSH connection."""
    client = paramiko.SSHClient()
    if settings.known_hosts:
        client.load_host_keys(os.path.expanduser(settings.known_hosts))
    if settings.strict_host_key_checking:
        client.set_missing_host_key_policy(paramiko.RejectPolicy())
    else:
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    connect_kwargs = {
        "hostname": identity.host,
        "port": identity.port,
        "username": identity.username,
        "timeout": settings.connect_timeout,
        "banner_timeout": settings.connect_timeout,
        "auth_timeout": settings.connect_timeout,
    }

    if identity.private_key_path:
        connect_kwargs["key_filename"] = os.path.expanduser(identity.private_key_path)
        if identity.private_key_passphrase:
            connect_kwargs["passphrase"] = identity.private_key_passphrase
    elif identity.password:
        connect_kwargs["password"] = identity.password
    else:
        # Use SSH agent
        connect_kwargs["allow_agent"] = True

    client.connect(**connect_kwargs)
    return client


class SSHCommandExecutor:
    """Runs runrep scripts over SSH and retrieves their output over SFTP.

    Keeps one connection open across calls and reconnects only when the
    target's connection identity changes. Not safe for concurrent use;
    give each logical session its own executor.
    """

    protocol_name = "ssh"

    def __init__(
        self,
        settings: ExecutorSettings | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self.settings = settings or ExecutorSettings()
        self._client_factory = client_factory or connect_client
        self._cache = ConnectionCache()
        self._closed = False

    def __enter__(self) -> "SSHCommandExecutor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Connection management

    def _get_client(self, target: SSHConfig) -> paramiko.SSHClient:
        """Reuse the open client for an equal identity, otherwise reconnect."""
        if self._closed:
            raise TransportError("Executor is closed.")

        identity = ConnectionIdentity.from_config(target)
        client = self._cache.get(identity)
        if client is not None:
            return client

        stale = self._cache.clear()
        if stale is not None:
            logger.debug(f"Target changed to {identity.username}@{identity.host}:{identity.port}, reconnecting")
            self._disconnect(stale)

        logger.debug(f"Connecting to {identity.username}@{identity.host}:{identity.port}")
        try:
            client = self._client_factory(identity, self.settings)
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"Cannot connect to {identity.host}:{identity.port}", e) from e

        self._cache.put(identity, client)
        return client

    def _ensure_connected(self, target: SSHConfig) -> paramiko.SSHClient:
        client = self._get_client(target)
        transport = client.get_transport()
        if transport is None or not transport.is_active():
            # drop the dead client so the next call dials again
            self._disconnect(self._cache.clear())
            logger.error("SSH client is not connected. Cannot execute command.")
            raise TransportError("SSH client is not connected. Cannot execute command.")
        return client

    def _disconnect(self, client: paramiko.SSHClient | None) -> None:
        if client is None:
            return
        try:
            client.close()
        except Exception as e:
            logger.warning(f"Failed to close SSH client: {e}")

    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close SSH connection. Further calls raise TransportError."""
        if self._closed:
            return
        self._disconnect(self._cache.clear())
        self._closed = True

    # Command execution

    def execute(self, command: Command, target: SSHConfig) -> None:
        """Run a runrep script and scan its stderr for failures.

        Raises DomainError on the first stderr line that looks like an error.
        Otherwise waits `settle_interval` so the output file can materialise.
        """
        client = self._ensure_connected(target)
        logger.debug(f"Executing on {target.host}:\n{command.redacted_text}")

        try:
            stdin, stdout, stderr = client.exec_command(
                command.text, timeout=self.settings.data_timeout
            )
        except TRANSPORT_ERRORS as e:
            raise TransportError("Failed to open a command channel", e) from e

        channel = stdout.channel
        try:
            stdin.close()
            self._scan_stderr(stderr, channel, command)
        except TRANSPORT_ERRORS as e:
            raise TransportError("Connection failed while running command", e) from e
        finally:
            channel.close()

        if self.settings.settle_interval > 0:
            time.sleep(self.settings.settle_interval)

    def _scan_stderr(self, stderr, channel: paramiko.Channel, command: Command) -> None:
        for raw_line in stderr:
            if isinstance(raw_line, bytes):
                raw_line = raw_line.decode("utf-8", errors="replace")
            line = raw_line.rstrip("\r\n")

            keyword = classify(line)
            if keyword is not None:
                logger.warning(f"runrep reported '{keyword}': {line}")
                raise DomainError("Failed to run command in runrep", line, command.redacted_text)

            if channel.exit_status_ready():
                break

    # File transfer

    def _open_sftp(self, client: paramiko.SSHClient) -> paramiko.SFTPClient:
        try:
            sftp = client.open_sftp()
            channel = sftp.get_channel()
            if channel is not None:
                channel.settimeout(self.settings.data_timeout)
        except TRANSPORT_ERRORS as e:
            raise TransportError("Could not open an SFTP session", e) from e
        return sftp

    def _sftp_call(self, path: str, action: str, func: Callable[..., T], *args) -> T:
        """Call an SFTP operation, mapping status errors to domain errors."""
        try:
            return func(*args)
        except FileNotFoundError as e:
            raise ResourceNotFound(f"Could not find the file `{path}` to {action} on the server.", path) from e
        except PermissionError as e:
            raise PermissionDenied(
                f"Insufficient permissions to {action} the file `{path}` on the server.", path
            ) from e
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"Could not {action} the file `{path}` on the server.", e) from e

    def fetch(self, command: Command, target: SSHConfig, consumer: Callable[[BinaryIO], T]) -> T:
        """Open the command's output file and pass the read-ahead stream to `consumer`.

        Call only after `execute` has returned. Returns whatever `consumer` returns.
        Remote read failures raise TransportError; errors raised by the consumer
        itself (a full local disk, say) propagate unchanged.
        """
        client = self._ensure_connected(target)
        path = command.output_resource

        sftp = self._open_sftp(client)
        try:
            remote_file = self._sftp_call(path, "open", sftp.open, path, "rb")
            try:
                if self.settings.prefetch:
                    self._sftp_call(path, "prefetch", remote_file.prefetch)
                return consumer(RemoteReader(remote_file, path))
            finally:
                remote_file.close()
        finally:
            sftp.close()

    def delete(self, command: Command, target: SSHConfig) -> None:
        """Remove the command's output file. A file that is already gone is fine."""
        client = self._ensure_connected(target)
        path = command.output_resource

        sftp = self._open_sftp(client)
        try:
            self._sftp_call(path, "remove", sftp.remove, path)
        except ResourceNotFound:
            logger.debug(f"Remote file {path} already removed")
        finally:
            sftp.close()
