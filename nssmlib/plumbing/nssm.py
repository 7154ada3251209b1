"""
Single commands issued to the service manager, and interpretation of their output.

The manager reports success or failure through a mix of exit status, printed status tokens (e.g.
``SERVICE_RUNNING``), and error messages ending in a numeric system error code.  Failures are
classified once into a `ManagerCode` or `StatusObserved` outcome, then mapped to a `ServiceStatus`
or a typed `NssmError`.
"""

from enum import Enum
import logging
import re
import subprocess
import sys
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple, Type, Union

from .common import command, decode_output, Result, State
from .errors import (InvalidServiceNameError, ManagerOutdatedError, ManagerSystemError,
                     ServiceAlreadyRunningError, ServiceExistsError, ServiceNotFoundError,
                     UnclassifiedError)


LOG = logging.getLogger(__name__)

CONFIRM = "confirm"
"""
Token the manager requires before it will remove a service.
"""


class Action(Enum):
    """
    Lifecycle commands understood by the manager, valued by their command verb.
    """

    INSTALL = "INSTALL"
    START = "START"
    STOP = "STOP"
    RESTART = "RESTART"
    REMOVE = "REMOVE"
    STATUS = "STATUS"


class ServiceStatus(Enum):
    """
    Closed set of states a service may be reported in.

    Output matching none of these is reported as `None` rather than a member.
    """

    pending = "pending"
    paused = "paused"
    running = "running"
    stopped = "stopped"


_TOKENS = {
    "SERVICE_CONTINUE_PENDING": ServiceStatus.pending,
    "SERVICE_START_PENDING": ServiceStatus.pending,
    "SERVICE_STOP_PENDING": ServiceStatus.pending,
    "SERVICE_PAUSE_PENDING": ServiceStatus.pending,
    "SERVICE_PAUSED": ServiceStatus.paused,
    "SERVICE_RUNNING": ServiceStatus.running,
    "SERVICE_STOPPED": ServiceStatus.stopped,
}

_TOKEN = re.compile(r"\bSERVICE_[A-Z_]+\b")

_CODE = re.compile(r"\d+", re.ASCII)

_CODES: Dict[int, Tuple[Type[ManagerSystemError], str]] = {
    2: (ManagerOutdatedError, "Old Nssm not found, please reinstall service"),
    1056: (ServiceAlreadyRunningError, "Service already running"),
    1060: (ServiceNotFoundError, "Service dosen't exist"),
    1073: (ServiceExistsError, "Service already exist"),
}

_STATES = {
    Action.INSTALL: State.created,
    Action.STATUS: State.unchanged,
}


class ManagerCode(NamedTuple):
    """
    Failure carrying a numeric system error code.
    """
    code: int
    text: str


class StatusObserved(NamedTuple):
    """
    Failure that actually reports a (possibly unknown) service status token.
    """
    token: str


Outcome = Union[ManagerCode, StatusObserved]


def find_token(text: str) -> Optional[str]:
    """
    Return the first raw status token (``SERVICE_*``) present in some output, if any.
    """
    match = _TOKEN.search(text)
    return match.group(0) if match else None


def parse_status(text: str) -> Optional[ServiceStatus]:
    """
    Collapse the first raw status token in some output to a `ServiceStatus`.
    """
    token = find_token(text)
    return _TOKENS.get(token) if token else None


def classify(message: str) -> Optional[Outcome]:
    """
    Inspect the last ``;``-separated segment of a failure message for an error code, or failing
    that a status token.  Returns `None` if neither is present.
    """
    last = message.split(";")[-1].strip()
    if _CODE.fullmatch(last):
        return ManagerCode(int(last), message)
    token = find_token(last)
    if token:
        return StatusObserved(token)
    return None


def system_message(code: int) -> Optional[str]:
    """
    Look up the operating system's description of a system error code, where available.
    """
    if sys.platform != "win32":
        return None
    # pywin32 only exists on Windows, so can't be imported at module level.
    import pywintypes
    import win32api
    try:
        message = win32api.FormatMessage(code)
    except pywintypes.error:
        LOG.debug("No system message for code %d", code, exc_info=True)
        return None
    return message.strip() or None


def error_for_code(code: int) -> ManagerSystemError:
    """
    Translate a system error code reported by the manager into a typed exception.
    """
    try:
        cls, message = _CODES[code]
    except KeyError:
        return ManagerSystemError(system_message(code) or "System Error : {}".format(code), code)
    return cls(message, code)


class Executor:
    """
    Runner of single manager commands, bound to one resolved manager binary.

    An optional `dbg` sink receives each command line before it runs, and its raw output after.
    """

    def __init__(self, path: str, dbg: Optional[Callable[[str], None]] = None):
        self._path = path
        self._dbg = dbg

    def __repr__(self) -> str:
        return "<{}: {!r}>".format(self.__class__.__name__, self._path)

    @property
    def path(self) -> str:
        return self._path

    def _trace(self, line: str) -> None:
        if self._dbg:
            self._dbg(line)

    def command_args(self, action: Action, name: str, *args: str) -> List[str]:
        """
        Build the argument list for a manager command.  Empty extra arguments are dropped.
        """
        argv = [self._path, action.value, name]
        argv.extend(arg for arg in args if arg)
        if action is Action.REMOVE:
            argv.append(CONFIRM)
        return argv

    def command_line(self, action: Action, name: str, *args: str) -> str:
        """
        Printable form of a manager command, as ``<path> <ACTION> "<name>" <args>``.
        """
        extra = self.command_args(action, name, *args)[3:]
        return " ".join(['{} {} "{}"'.format(self._path, action.value, name)] + extra)

    async def execute(self, action: Action, name: str, *args: str) -> Optional[ServiceStatus]:
        """
        Run a single command against a service, and return the status it reports (if any).

        Raises a `ManagerSystemError` subclass for a reported error code, or `UnclassifiedError`
        for any other failure that doesn't describe a known status.
        """
        if not name:
            raise InvalidServiceNameError("Service name must not be empty")
        line = self.command_line(action, name, *args)
        self._trace("CMD : {}".format(line))
        try:
            proc = await command(self.command_args(action, name, *args), output=True)
        except subprocess.CalledProcessError as ex:
            stdout = decode_output(ex.stdout)
            self._trace("STDOUT : {}".format(stdout))
            return self._failed("Command failed: {}\n{}".format(line, decode_output(ex.stderr).strip()))
        except OSError as ex:
            return self._failed("Command failed: {}\n{}".format(line, ex))
        stdout = decode_output(proc.stdout)
        self._trace("STDOUT : {}".format(stdout))
        return parse_status(stdout)

    def _failed(self, message: str) -> ServiceStatus:
        outcome = classify(message)
        if isinstance(outcome, ManagerCode):
            raise error_for_code(outcome.code)
        if isinstance(outcome, StatusObserved):
            status = _TOKENS.get(outcome.token)
            if status:
                LOG.debug("Failure reports status %s, treating as success", status.value)
                return status
        raise UnclassifiedError(message)

    async def run(self, action: Action, name: str, *args: str) -> Result[Optional[ServiceStatus]]:
        """
        Wrapper of `execute` recording the command as a `Result`.
        """
        status = await self.execute(action, name, *args)
        return Result(_STATES.get(action, State.success), status,
                      caller="{}:{}".format(__name__, action.name))
