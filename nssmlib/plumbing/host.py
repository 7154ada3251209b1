"""
Checks against the local host: administrative rights, and locating the right manager binary.
"""

import logging
import os
import re
import subprocess

from .common import command, decode_output
from .errors import InsufficientRightsError, ManagerNotFoundError


LOG = logging.getLogger(__name__)

DEFAULT_LOCATION = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "bin")
"""
Directory bundled with the package that holds the manager binaries.
"""

BINARIES = {"32": "nssm.exe", "64": "nssm64.exe"}
"""
Manager binary filename for each processor address width.
"""

_RIGHTS_PROBE = ["NET", "SESSION"]
_ARCH_PROBE = ["wmic", "CPU", "get", "AddressWidth"]
_NO_RIGHTS = "No rights to manage services."


async def check_rights() -> None:
    """
    Make sure the current session is allowed to manage services.

    Failure to run the probe at all, a non-zero exit, or anything printed to stderr is treated as
    insufficient rights.
    """
    try:
        proc = await command(_RIGHTS_PROBE, output=True, check=False)
    except OSError as ex:
        raise InsufficientRightsError(_NO_RIGHTS) from ex
    if proc.returncode or proc.stderr:
        raise InsufficientRightsError(_NO_RIGHTS)


async def get_arch() -> str:
    """
    Probe the processor's address width, either ``"32"`` or ``"64"``, defaulting to 32-bit.
    """
    try:
        proc = await command(_ARCH_PROBE, output=True)
    except (OSError, subprocess.CalledProcessError):
        LOG.debug("Architecture probe failed, assuming 32-bit", exc_info=True)
        return "32"
    match = re.search(r"(32|64)", decode_output(proc.stdout))
    if not match:
        LOG.debug("No address width in probe output %r, assuming 32-bit", proc.stdout)
        return "32"
    return match.group(1)


async def find_manager(location: str) -> str:
    """
    Resolve the manager binary for this host's architecture within the given directory.
    """
    if not location:
        raise ManagerNotFoundError("Undefined location")
    if not os.path.exists(location):
        raise ManagerNotFoundError("{} does not exist".format(location))
    arch = await get_arch()
    path = os.path.join(location, BINARIES[arch])
    if not os.path.exists(path):
        raise ManagerNotFoundError("{} does not exist".format(path))
    LOG.debug("Using %d-bit manager %r", int(arch), path)
    return path
