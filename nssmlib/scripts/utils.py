"""
Helpers for converting coroutines into scripts, and filling in arguments with a controller.
"""

import asyncio
from functools import wraps
from inspect import cleandoc, signature
import logging
import os
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from docopt import docopt

from ..plumbing.errors import NssmError
from ..tasks.service import Nssm


DocOptArgs = Dict[str, Union[bool, str, List[str]]]


ENTRYPOINTS: List[str] = []


def _trace(line: str) -> None:
    print("\033[90m{}\033[0m".format(line), file=sys.stderr)


async def _call(fn: Callable[..., Awaitable[Any]], opts: DocOptArgs, location: Optional[str],
                verbose: bool) -> Any:
    extra: Dict[str, Any] = {}
    for param in signature(fn).parameters.values():
        name = param.name
        cls = param.annotation
        if cls is DocOptArgs:
            extra[name] = opts
        elif cls is Nssm:
            extra[name] = await Nssm.create(location, _trace if verbose else None)
        else:
            try:
                try:
                    extra[name] = opts[name.upper()]
                except KeyError:
                    extra[name] = opts["<{}>".format(name)]
            except KeyError:
                raise RuntimeError("Missing argument {!r}".format(name))
    return await fn(**extra)


def entrypoint(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Any]:
    """
    Decorator to make an entrypoint out of a coroutine function.

    This uses `docopt` to parse arguments according to the method docstring, and will be formatted
    with `{script}` set to the script name.  At minimum, it should contain `Usage: {script}`.

    Functions may optionally accept arguments, which are filled in by annotation:

    - `DocOptArgs` (a `dict` of input parameters parsed from the usage line)
    - `Nssm` (a controller, created using `--location` or the `NSSM_LOCATION` environment variable)

    Any other argument takes the input parameter matching the variable name (the name must be
    declared in the usage line, either in upper case or surrounded by arrow brackets, e.g. `NAME` or
    `<name>`).

    Service errors are printed and exit with status 1.  An example function:

        @entrypoint
        async def start(nssm: Nssm, name: str):
            \"""
            Start a service.

            Usage: {script} NAME
            \"""
    """
    label = "nssmlib-{}-{}".format(fn.__module__.rsplit(".", 1)[-1],
                                   fn.__qualname__).replace("_", "-")

    @wraps(fn)
    def wrap(opts: Optional[DocOptArgs] = None):
        script = "{} [--debug] [--verbose] [--location=PATH]".format(label)
        if opts is None:
            doc = cleandoc(fn.__doc__.format(script=script))
            opts = docopt(doc)
        if opts.pop("--debug", False):
            logging.basicConfig(level=logging.DEBUG)
        verbose = bool(opts.pop("--verbose", False))
        location = opts.pop("--location", None) or os.getenv("NSSM_LOCATION")
        try:
            return asyncio.run(_call(fn, opts, location, verbose))
        except NssmError as ex:
            error(str(ex), exit=1)
    wrap.__doc__ = wrap.__doc__.format(script=label)
    # Create a console script line for setup.
    target = "{}:{}".format(fn.__module__, fn.__qualname__)
    ENTRYPOINTS.append("{}={}".format(label, target))
    return wrap


def confirm(msg: str = "Are you sure?"):
    """
    Prompt for confirmation before destructive actions.
    """
    try:
        yn = input("\033[96m{} [yN]\033[0m ".format(msg))
    except (KeyboardInterrupt, EOFError):
        print()
        yn = "n"
    if yn.lower() not in ("y", "yes"):
        error("Aborted!", exit=1)


def error(msg: Optional[str] = None, *, exit: Optional[int] = None, colour: Optional[str] = None):
    """
    Print an error message and/or exit.
    """
    if msg:
        colour = colour or ("1" if exit else "3")
        print("\033[9{}m{}\033[0m".format(colour, msg), file=sys.stderr)
    if exit is not None:
        sys.exit(exit)
