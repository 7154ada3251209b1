"""
Verified lifecycle operations for services, composed from single manager commands.
"""

import asyncio
from functools import partial
import logging
import os
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..plumbing import host
from ..plumbing.common import Result, Step
from ..plumbing.errors import (ExecutableNotFoundError, NssmError, ServiceExistsError,
                               UnexpectedStatusError)
from ..plumbing.nssm import Action, Executor, ServiceStatus


LOG = logging.getLogger(__name__)

SETTLE_DELAY = 2.0
"""
Seconds to wait after the last command of an operation before checking the service's status.
"""

Actions = Sequence[Tuple[Action, Tuple[str, ...]]]


class Nssm:
    """
    Controller of services through one resolved manager binary.

    Use `Nssm.create` to check the host and locate the manager before accepting any operations:

        nssm = await Nssm.create()
        await nssm.install("svc", r"C:\\app\\app.exe", "--port 80")
        await nssm.restart("svc")

    Operations run their commands one at a time, and raise the first failure unchanged.  Those with
    an expected final state wait `settle` seconds afterwards and check the status once more, raising
    `UnexpectedStatusError` if the service didn't end up there.
    """

    def __init__(self, executor: Executor, settle: float = SETTLE_DELAY):
        self.executor = executor
        self.settle = settle

    def __repr__(self) -> str:
        return "<{}: {!r}>".format(self.__class__.__name__, self.executor.path)

    @classmethod
    async def create(cls, location: Optional[str] = None,
                     dbg: Optional[Callable[[str], None]] = None,
                     settle: float = SETTLE_DELAY) -> "Nssm":
        """
        Check for administrative rights, and resolve the manager binary within `location` (or the
        bundled binaries directory).
        """
        await host.check_rights()
        path = await host.find_manager(location or host.DEFAULT_LOCATION)
        return cls(Executor(path, dbg), settle)

    async def _verify(self, name: str) -> Result[Optional[ServiceStatus]]:
        LOG.debug("Waiting %ss for %r to settle", self.settle, name)
        await asyncio.sleep(self.settle)
        return await self.executor.run(Action.STATUS, name)

    async def _run(self, name: str, actions: Actions, expected: Optional[ServiceStatus] = None,
                   caller: Optional[Callable[..., Any]] = None) -> Result[Any]:
        steps: List[Step] = [partial(self.executor.run, action, name, *args)
                             for action, args in actions]
        if expected:
            steps.append(partial(self._verify, name))
        LOG.debug("Running %s on %r", "/".join(action.name for action, _ in actions), name)
        result = await Result.chain(steps, caller)
        if expected and result.value is not expected:
            raise UnexpectedStatusError(result.value, expected)
        return result

    async def start(self, name: str) -> Result[ServiceStatus]:
        return await self._run(name, [(Action.START, ())], ServiceStatus.running, Nssm.start)

    async def stop(self, name: str) -> Result[ServiceStatus]:
        return await self._run(name, [(Action.STOP, ())], ServiceStatus.stopped, Nssm.stop)

    async def restart(self, name: str) -> Result[ServiceStatus]:
        return await self._run(name, [(Action.RESTART, ())], ServiceStatus.running, Nssm.restart)

    async def remove(self, name: str) -> Result[Optional[ServiceStatus]]:
        """
        Stop and delete a service.  No final status is checked, as the service is gone.
        """
        return await self._run(name, [(Action.STOP, ()), (Action.REMOVE, ())], caller=Nssm.remove)

    async def install(self, name: str, executable: str, args: str = "",
                      reinstall: bool = False) -> Result[ServiceStatus]:
        """
        Register a new service running `executable` with the given argument string, and start it.

        If a service by that name already exists, either fail with `ServiceExistsError`, or with
        `reinstall` set, stop and remove it first.
        """
        if not os.path.exists(executable):
            raise ExecutableNotFoundError("{} don't exist".format(executable))
        try:
            await self.executor.execute(Action.STATUS, name)
        except NssmError as ex:
            # Any failure to query the service is taken to mean it doesn't exist yet.
            LOG.debug("No existing service %r: %s", name, ex)
            exists = False
        else:
            exists = True
        actions: List[Tuple[Action, Tuple[str, ...]]] = [(Action.INSTALL, (executable, args)),
                                                         (Action.START, ())]
        if exists:
            if not reinstall:
                raise ServiceExistsError("{} already exist !".format(name))
            LOG.info("Replacing existing service %r", name)
            actions[:0] = [(Action.STOP, ()), (Action.REMOVE, ())]
        return await self._run(name, actions, ServiceStatus.running,
                               Nssm.reinstall if reinstall else Nssm.install)

    async def reinstall(self, name: str, executable: str, args: str = "") -> Result[ServiceStatus]:
        """
        Install a service, replacing any existing one of the same name.
        """
        return await self.install(name, executable, args, True)

    async def get_status(self, name: str) -> Optional[ServiceStatus]:
        """
        Query the current status of a service, or `None` if the manager reported an unknown state.
        """
        return await self.executor.execute(Action.STATUS, name)
