class ConfigurationError(ValueError):
    """Required configuration is missing or invalid. Fatal at startup."""


class RemoteCommandError(RuntimeError):
    """Base class for remote shell failures."""


class RemoteConnectionError(RemoteCommandError):
    """The authenticated session could not be established."""


class RemoteExecutionError(RemoteCommandError):
    """The session was established but the command could not be run."""
