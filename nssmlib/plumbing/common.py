"""
Shared helper methods and base classes.
"""

import asyncio
import codecs
from enum import Enum
import inspect
import logging
import subprocess
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar, Union


LOG = logging.getLogger(__name__)

T = TypeVar("T")

Step = Callable[[], Awaitable["Result[Any]"]]
"""
Zero-argument coroutine function producing a `Result`, as consumed by `Result.chain`.
"""


class Unset:
    """
    Constructor of generic default values for optional but nullable parameters.
    """

    def __repr__(self):
        return "UNSET"


UNSET = Unset()
"""
Global generic default value.
"""


class State(Enum):
    """
    Enumeration used by `Result` to declare whether the action happened.
    """

    unchanged = 0
    """
    No action required, e.g. a status query.
    """
    success = 1
    """
    The action was completed without issues.
    """
    created = 2
    """
    The action resulted in the creation of a new service.
    """

    def __bool__(self):
        return bool(self.value)


class Result(Generic[T]):
    """
    State and optional accompanying value from a unit of work.

    For a single manager command, just create a new result directly with the resulting `State` and
    the observed status if relevant:

        async def unit():
            status = await executor.execute(Action.START, "svc")
            return Result(State.success, status)

    For a task that combines multiple commands, see `Result.chain`.  The state of such a result is
    based on all of its parts -- if any changes were made, the outer result also reports a change.

    A result can be checked for truthiness, which is `False` if no changes were made.

    A result can also be converted to a string, which produces a tree-like summary of changes:

        nssmlib.tasks.service:Nssm.start: success <ServiceStatus.running: 'running'>
            nssmlib.plumbing.nssm:START: success None
            nssmlib.plumbing.nssm:STATUS: unchanged <ServiceStatus.running: 'running'>
    """

    @classmethod
    async def chain(cls, steps: Iterable[Step],
                    caller: Optional[Union[str, Callable[..., Any]]] = None) -> "Result[Any]":
        """
        Build a `Result` from multiple sub-tasks, awaiting each step strictly in order:

            result = await Result.chain([stop, remove], caller=Nssm.remove)

        Each step is only started once the previous one has completed.  Any exception raised by a
        step propagates unchanged, and the remaining steps are never awaited.

        The combined result's `parts` will be the collected step results, and its `value` will be
        that of the final step (or unset if there were no steps).
        """
        parts: List[Result[Any]] = []
        for step in steps:
            parts.append(await step())
        value = parts[-1]._value if parts else UNSET
        return cls(None, value, parts, caller)

    def __init__(self, state: Optional[State] = None, value: Union[T, Unset] = UNSET,
                 parts: Iterable["Result[Any]"] = (),
                 caller: Optional[Union[str, Callable[..., Any]]] = None):
        self._state = state
        self._value = value
        self.parts = tuple(parts)
        self.caller = "<unknown>"
        if isinstance(caller, str):
            self.caller = caller
            return
        # Inspection magic to log the calling method, e.g. `module.sub:Class.method`.
        name = None
        if not caller:
            frame = inspect.currentframe()
            try:
                name = frame.f_back.f_code.co_name
                caller = frame.f_back.f_globals[name]
            except (AttributeError, KeyError):
                pass
        if caller:
            self.caller = "{}:{}".format(caller.__module__, caller.__qualname__)
        elif name:
            self.caller = name

    @property
    def state(self) -> State:
        """
        Modification state of the unit of work.

        This may be set directly, computed from `parts`, or defaulted to `State.unchanged`.
        """
        if self._state:
            return self._state
        elif any(self.parts):
            if any(part.state is State.created for part in self.parts):
                return State.created
            else:
                return State.success
        else:
            return State.unchanged

    @state.setter
    def state(self, state: State) -> None:
        self._state = state

    @property
    def value(self) -> T:
        """
        Return value produced by the unit of work.

        Accessing this attribute will raise `ValueError` if no value has been set.
        """
        if isinstance(self._value, Unset):
            raise ValueError("No value set")
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self._value = value

    def __bool__(self) -> bool:
        return bool(self.state)

    def __repr__(self) -> str:
        params = [str(self.state)]
        if not isinstance(self._value, Unset):
            params.append(repr(self._value))
        if self.parts:
            params.append("<{} parts>".format(len(self.parts)))
        return "{}({})".format(self.__class__.__name__, ", ".join(params))

    def __str__(self) -> str:
        tree = "{}: {}".format(self.caller, self.state.name)
        if not isinstance(self._value, Unset):
            tree = "{} {!r}".format(tree, self._value)
        if self.parts:
            for result in self.parts:
                tree += "\n    {}".format(str(result).replace("\n", "\n    "))
        return tree


def decode_output(data: Optional[bytes]) -> str:
    """
    Decode captured command output.

    Windows tools write UTF-16-LE when their output is redirected, detected here by a byte-order mark
    or embedded null bytes.  Anything else is read as UTF-8.
    """
    data = data or b""
    if data.startswith(codecs.BOM_UTF16_LE):
        return data[len(codecs.BOM_UTF16_LE):].decode("utf-16-le", "replace")
    if b"\x00" in data:
        return data.decode("utf-16-le", "replace")
    return data.decode("utf-8", "replace")


async def command(args: List[str], output: bool = False,
                  check: bool = True) -> "subprocess.CompletedProcess[bytes]":
    """
    Create a subprocess to execute an external command, and wait for it to exit.

    With `output`, both stdout and stderr are captured.  With `check`, a non-zero exit status raises
    `subprocess.CalledProcessError` carrying any captured output.
    """
    LOG.debug("Exec: %r", args)
    pipe = asyncio.subprocess.PIPE if output else None
    proc = await asyncio.create_subprocess_exec(*args, stdin=asyncio.subprocess.DEVNULL,
                                                stdout=pipe, stderr=pipe)
    stdout, stderr = await proc.communicate()
    if check and proc.returncode:
        raise subprocess.CalledProcessError(proc.returncode, args, stdout, stderr)
    return subprocess.CompletedProcess(args, proc.returncode, stdout, stderr)
