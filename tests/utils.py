"""
Helpers for faking the output of manager commands.
"""

import subprocess


PATH = r"C:\nssm\nssm64.exe"
"""
Manager binary that tests pretend to have resolved.
"""


def completed(stdout: bytes = b"", stderr: bytes = b"",
              returncode: int = 0) -> "subprocess.CompletedProcess[bytes]":
    """
    Result of a command that ran, as returned by `nssmlib.plumbing.common.command`.
    """
    return subprocess.CompletedProcess([], returncode, stdout, stderr)


def failed(stderr: bytes = b"", stdout: bytes = b"",
           returncode: int = 1) -> subprocess.CalledProcessError:
    """
    Exception raised by a checked command exiting with an error.
    """
    return subprocess.CalledProcessError(returncode, [], stdout, stderr)


def utf16(text: str) -> bytes:
    """
    Encode output the way the manager writes it when redirected.
    """
    return text.encode("utf-16-le")
