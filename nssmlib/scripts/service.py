"""
Scripts to install and control services.
"""

from typing import Optional

from .utils import confirm, DocOptArgs, entrypoint
from ..tasks.service import Nssm


@entrypoint
async def install(nssm: Nssm, name: str, executable: str, args: Optional[str]):
    """
    Install a new service running the given executable, and start it.

    Usage: {script} NAME EXECUTABLE [--] [ARGS]
    """
    print(await nssm.install(name, executable, args or ""))


@entrypoint
async def reinstall(opts: DocOptArgs, nssm: Nssm, name: str, executable: str,
                    args: Optional[str]):
    """
    Install a service, replacing any existing service of the same name.

    Usage: {script} [--yes] NAME EXECUTABLE [--] [ARGS]
    """
    if not opts["--yes"]:
        confirm("Replace any existing service {!r}?".format(name))
    print(await nssm.reinstall(name, executable, args or ""))


@entrypoint
async def start(nssm: Nssm, name: str):
    """
    Start a service, and check that it keeps running.

    Usage: {script} NAME
    """
    print(await nssm.start(name))


@entrypoint
async def stop(nssm: Nssm, name: str):
    """
    Stop a running service.

    Usage: {script} NAME
    """
    print(await nssm.stop(name))


@entrypoint
async def restart(nssm: Nssm, name: str):
    """
    Restart a service, and check that it keeps running.

    Usage: {script} NAME
    """
    print(await nssm.restart(name))


@entrypoint
async def remove(opts: DocOptArgs, nssm: Nssm, name: str):
    """
    Stop and remove a service.

    Usage: {script} [--yes] NAME
    """
    if not opts["--yes"]:
        confirm("Remove service {!r}?".format(name))
    print(await nssm.remove(name))


@entrypoint
async def status(nssm: Nssm, name: str):
    """
    Print the current status of a service.

    Usage: {script} NAME
    """
    current = await nssm.get_status(name)
    print(current.value if current else "unknown")
