# --- Standard library imports ---
import socket

# --- Third-party imports ---
import paramiko

# --- Project imports ---
from .logger import get_logger
from .models import SshCredentials
from .errors import RemoteConnectionError, RemoteExecutionError


logger = get_logger("remote")


class RemoteSession:
    """
    One authenticated SSH session.

    Use as a context manager so the underlying transport is closed on every
    exit path, including failed commands.
    """

    def __init__(self, client: paramiko.SSHClient, host: str):
        self.client = client
        self.host = host

    def __enter__(self) -> "RemoteSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()
        logger.debug(f"SSH session to {self.host} closed")

    def exec(self, command: str, timeout: float = 5.0) -> int:
        """
        Run one command and return its exit status.

        Waits at most `timeout` seconds for the exit status. A host that is
        suspending may drop the channel before reporting one; that surfaces as
        RemoteExecutionError like any other execution failure.

        Raises:
            RemoteExecutionError: the command could not be started or no exit
                status arrived in time.
        """
        try:
            _, stdout, stderr = self.client.exec_command(command, timeout=timeout)
            channel = stdout.channel

            if not channel.status_event.wait(timeout):
                raise RemoteExecutionError(
                    f"No exit status from {self.host} within {timeout}s"
                )

            exit_status = channel.recv_exit_status()
            if exit_status != 0:
                err = stderr.read().decode(errors="replace").strip()
                if err:
                    logger.warning(f"Command stderr [{self.host}]: {err}")

            return exit_status

        except (paramiko.SSHException, socket.timeout, OSError) as e:
            raise RemoteExecutionError(
                f"Command failed on {self.host} ({e.__class__.__name__}: {e})"
            ) from e


class RemoteCommandClient:
    """
    Thin paramiko wrapper: connect, run a single command, disconnect.

    Host keys are accepted on first use; targets live on the local LAN and
    are addressed by IP.
    """

    def __init__(self, connect_timeout: float = 5.0):
        self.connect_timeout = connect_timeout

    def connect(
        self,
        host: str,
        credentials: SshCredentials,
        timeout: float | None = None,
    ) -> RemoteSession:
        """
        Open an authenticated session.

        Raises:
            RemoteConnectionError: network, handshake or authentication failure.
        """
        timeout = self.connect_timeout if timeout is None else timeout

        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        kwargs = {
            "hostname": host,
            "port": credentials.port,
            "username": credentials.username,
            "timeout": timeout,
            "banner_timeout": timeout,
            "auth_timeout": timeout,
            "look_for_keys": False,
            "allow_agent": False,
        }
        if credentials.key_path:
            kwargs["key_filename"] = credentials.key_path
        else:
            kwargs["password"] = credentials.password

        try:
            client.connect(**kwargs)
        except (paramiko.SSHException, socket.timeout, OSError) as e:
            client.close()
            raise RemoteConnectionError(
                f"SSH connection to {host}:{credentials.port} failed "
                f"({e.__class__.__name__}: {e})"
            ) from e

        logger.debug(f"SSH session to {host} established")
        return RemoteSession(client, host)

    def run(
        self,
        host: str,
        credentials: SshCredentials,
        command: str,
        timeout: float = 5.0,
    ) -> int:
        """Connect, execute `command`, close. Returns the exit status."""
        with self.connect(host, credentials) as session:
            return session.exec(command, timeout=timeout)
