"""Stand-ins for the Python and Transcrypt child processes."""

import subprocess
from typing import Any, Callable, Dict, List, Optional, Union

TRANSCRYPT_BANNER = "Transcrypt (TM) Python to JavaScript Small Sane Subset Transpiler Version {version}\n"


class FakeProcesses:
    """
    Replacement for subprocess.run that answers from registered responses.

    A response is chosen by the first registered needle found in the
    space-joined command; commands with no response behave like a missing
    executable.
    """

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self._responses: List[Dict[str, Any]] = []

    def respond(
        self,
        needle: str,
        stdout: Union[str, bytes] = "",
        stderr: Union[str, bytes] = "",
        returncode: int = 0,
        action: Optional[Callable[[List[str], Dict[str, Any]], None]] = None,
    ) -> None:
        self._responses.append({
            "needle": needle,
            "stdout": stdout,
            "stderr": stderr,
            "returncode": returncode,
            "action": action,
        })

    def commands(self) -> List[str]:
        return [" ".join(call["args"]) for call in self.calls]

    def __call__(self, args, **kwargs):
        args = list(args)
        self.calls.append({"args": args, **kwargs})
        line = " ".join(args)
        for response in self._responses:
            if response["needle"] in line:
                break
        else:
            raise FileNotFoundError(2, "No such file or directory", args[0])

        if response["action"] is not None:
            response["action"](args, kwargs)
        stdout = _decode(response["stdout"], kwargs)
        stderr = _decode(response["stderr"], kwargs)
        if kwargs.get("check") and response["returncode"] != 0:
            raise subprocess.CalledProcessError(response["returncode"], args, output=stdout, stderr=stderr)
        return subprocess.CompletedProcess(args, response["returncode"], stdout=stdout, stderr=stderr)


def _decode(value: Union[str, bytes], kwargs: Dict[str, Any]) -> str:
    """Decode raw child output the way subprocess.run would with the given settings."""
    if isinstance(value, str):
        return value
    return value.decode(kwargs.get("encoding") or "utf-8", kwargs.get("errors") or "strict")


def install_toolchain(fake: FakeProcesses, transcrypt: str = "3.9.0", python: str = "3.9.7") -> None:
    """Answer version probes as an environment with both tools installed."""
    fake.respond("--help", stdout=TRANSCRYPT_BANNER.format(version=transcrypt))
    fake.respond("--version", stdout=f"Python {python}\n")


def install_runtime_only(fake: FakeProcesses, python: str = "3.9.7") -> None:
    """Answer version probes as an environment where Transcrypt is not installed."""
    fake.respond(
        "--help",
        stderr="/usr/bin/python: No module named transcrypt\n",
        returncode=1,
    )
    fake.respond("--version", stdout=f"Python {python}\n")
