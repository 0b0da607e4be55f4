"""Fatal error types raised while transforming a Python source file."""

from typing import Optional


class TranscryptBridgeError(Exception):
    """Base class for errors that stop the current transformation."""


class ConfigurationError(TranscryptBridgeError):
    """Raised when the plugin configuration cannot be turned into a safe invocation."""


class ToolchainMissingError(ConfigurationError):
    """Raised when the Python runtime is present but Transcrypt is not installed."""

    def __init__(self, runtime_command: str) -> None:
        self.runtime_command = runtime_command
        super().__init__(
            f"Transcrypt does not appear to be installed for '{runtime_command}'.\n"
            f"Install it into the same environment, e.g. '{runtime_command} -m pip install transcrypt',\n"
            "or point the 'command' setting at a Python that has it."
        )


class VersionMismatchError(ConfigurationError):
    """Raised when the runtime and Transcrypt major.minor versions differ."""

    def __init__(self, runtime_version, toolchain_version) -> None:
        self.runtime_version = runtime_version
        self.toolchain_version = toolchain_version
        super().__init__(
            f"Python version {runtime_version} does not match Transcrypt version {toolchain_version}.\n"
            "Transcrypt must be run by the Python release it was built for.\n"
            "Declare 'transcryptVersion' or set 'strictVersionMatch' to false to skip this check."
        )


class ToolchainExecutionError(TranscryptBridgeError):
    """Raised when the Transcrypt process fails; carries everything it printed."""

    def __init__(
        self,
        command_line: str,
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command_line = command_line
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if returncode is None:
            summary = f"Transcrypt could not be started: {command_line}"
        else:
            summary = f"Transcrypt exited with status {returncode}: {command_line}"
        details = stderr.strip() or stdout.strip()
        super().__init__(f"{summary}\n{details}" if details else summary)
