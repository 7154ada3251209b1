import asyncio
import code
import logging

from nssmlib.plumbing.common import *
from nssmlib.plumbing.errors import *
from nssmlib.plumbing.nssm import Action, Executor, ServiceStatus
from nssmlib.tasks.service import Nssm


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    run = loop.run_until_complete
    code.interact(local=globals())
