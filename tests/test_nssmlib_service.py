import os.path
import tempfile
import unittest
from unittest.mock import AsyncMock, call, Mock, patch

from nssmlib.plumbing import host
from nssmlib.plumbing.common import State
from nssmlib.plumbing.errors import (ExecutableNotFoundError, InsufficientRightsError,
                                     ManagerNotFoundError, ManagerSystemError,
                                     ServiceAlreadyRunningError, ServiceExistsError,
                                     ServiceNotFoundError, UnexpectedStatusError)
from nssmlib.plumbing.nssm import Action, Executor, ServiceStatus
from nssmlib.tasks.service import Nssm, SETTLE_DELAY

from .utils import PATH


def not_found() -> ServiceNotFoundError:
    return ServiceNotFoundError("Service dosen't exist", 1060)


@patch("nssmlib.plumbing.host.find_manager", new_callable=AsyncMock, return_value=PATH)
@patch("nssmlib.plumbing.host.check_rights", new_callable=AsyncMock)
class TestCreate(unittest.IsolatedAsyncioTestCase):

    async def test_default_location(self, check_rights: AsyncMock, find_manager: AsyncMock):
        nssm = await Nssm.create()
        check_rights.assert_awaited_once_with()
        find_manager.assert_awaited_once_with(host.DEFAULT_LOCATION)
        self.assertEqual(nssm.executor.path, PATH)
        self.assertEqual(nssm.settle, SETTLE_DELAY)

    async def test_location(self, check_rights: AsyncMock, find_manager: AsyncMock):
        await Nssm.create(r"C:\tools\nssm")
        find_manager.assert_awaited_once_with(r"C:\tools\nssm")

    async def test_no_rights(self, check_rights: AsyncMock, find_manager: AsyncMock):
        check_rights.side_effect = InsufficientRightsError("No rights to manage services.")
        with self.assertRaises(InsufficientRightsError):
            await Nssm.create()
        find_manager.assert_not_awaited()

    async def test_no_manager(self, check_rights: AsyncMock, find_manager: AsyncMock):
        find_manager.side_effect = ManagerNotFoundError("wrong path does not exist")
        with self.assertRaises(ManagerNotFoundError):
            await Nssm.create("wrong path")

    @patch("nssmlib.plumbing.nssm.command", new_callable=AsyncMock)
    async def test_dbg(self, command: AsyncMock, check_rights: AsyncMock,
                       find_manager: AsyncMock):
        dbg = Mock()
        command.return_value.stdout = b"SERVICE_RUNNING"
        nssm = await Nssm.create(dbg=dbg)
        await nssm.get_status("svc")
        dbg.assert_any_call(r'CMD : C:\nssm\nssm64.exe STATUS "svc"')


class ControllerTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.executor = Executor(PATH)
        self.execute = self.executor.execute = AsyncMock()
        patcher = patch("nssmlib.tasks.service.asyncio.sleep", new_callable=AsyncMock)
        self.sleep = patcher.start()
        self.addCleanup(patcher.stop)
        self.nssm = Nssm(self.executor)

    def assertActions(self, *calls):
        self.assertEqual(self.execute.await_args_list, list(calls))


class TestControls(ControllerTestCase):

    async def test_start(self):
        self.execute.side_effect = [None, ServiceStatus.running]
        result = await self.nssm.start("svc")
        self.assertIs(result.value, ServiceStatus.running)
        self.assertEqual(result.state, State.success)
        self.assertActions(call(Action.START, "svc"), call(Action.STATUS, "svc"))
        self.sleep.assert_awaited_once_with(SETTLE_DELAY)

    async def test_start_result(self):
        self.execute.side_effect = [None, ServiceStatus.running]
        result = await self.nssm.start("svc")
        self.assertEqual(str(result).splitlines(), [
            "nssmlib.tasks.service:Nssm.start: success <ServiceStatus.running: 'running'>",
            "    nssmlib.plumbing.nssm:START: success None",
            "    nssmlib.plumbing.nssm:STATUS: unchanged <ServiceStatus.running: 'running'>",
        ])

    async def test_start_settle(self):
        self.nssm = Nssm(self.executor, settle=0.5)
        self.execute.side_effect = [None, ServiceStatus.running]
        await self.nssm.start("svc")
        self.sleep.assert_awaited_once_with(0.5)

    async def test_start_crashed(self):
        self.execute.side_effect = [ServiceStatus.pending, ServiceStatus.stopped]
        with self.assertRaises(UnexpectedStatusError) as ctx:
            await self.nssm.start("svc")
        self.assertEqual(str(ctx.exception), "Unexpected Status : stopped, expected running")
        self.assertIs(ctx.exception.observed, ServiceStatus.stopped)
        self.assertIs(ctx.exception.expected, ServiceStatus.running)

    async def test_start_unrecognized(self):
        self.execute.side_effect = [None, None]
        with self.assertRaises(UnexpectedStatusError) as ctx:
            await self.nssm.start("svc")
        self.assertEqual(str(ctx.exception),
                         "Unexpected Status : unrecognized, expected running")

    async def test_start_already_running(self):
        error = ServiceAlreadyRunningError("Service already running", 1056)
        self.execute.side_effect = [error]
        with self.assertRaises(ServiceAlreadyRunningError) as ctx:
            await self.nssm.start("svc")
        self.assertIs(ctx.exception, error)
        self.assertEqual(str(ctx.exception), "Service already running")
        self.assertActions(call(Action.START, "svc"))
        self.sleep.assert_not_awaited()

    async def test_start_missing(self):
        self.execute.side_effect = [not_found()]
        with self.assertRaises(ServiceNotFoundError):
            await self.nssm.start("foo")

    async def test_stop(self):
        self.execute.side_effect = [None, ServiceStatus.stopped]
        result = await self.nssm.stop("svc")
        self.assertIs(result.value, ServiceStatus.stopped)
        self.assertActions(call(Action.STOP, "svc"), call(Action.STATUS, "svc"))

    async def test_stop_still_running(self):
        self.execute.side_effect = [None, ServiceStatus.pending]
        with self.assertRaises(UnexpectedStatusError) as ctx:
            await self.nssm.stop("svc")
        self.assertEqual(str(ctx.exception), "Unexpected Status : pending, expected stopped")

    async def test_restart(self):
        self.execute.side_effect = [None, ServiceStatus.running]
        result = await self.nssm.restart("svc")
        self.assertIs(result.value, ServiceStatus.running)
        self.assertActions(call(Action.RESTART, "svc"), call(Action.STATUS, "svc"))

    async def test_remove(self):
        self.execute.side_effect = [ServiceStatus.stopped, None]
        result = await self.nssm.remove("svc")
        self.assertEqual(result.state, State.success)
        self.assertIsNone(result.value)
        self.assertActions(call(Action.STOP, "svc"), call(Action.REMOVE, "svc"))
        self.sleep.assert_not_awaited()

    async def test_remove_missing(self):
        error = not_found()
        self.execute.side_effect = [error, None]
        with self.assertRaises(ServiceNotFoundError) as ctx:
            await self.nssm.remove("foo")
        self.assertIs(ctx.exception, error)
        self.assertEqual(str(ctx.exception), "Service dosen't exist")
        self.assertActions(call(Action.STOP, "foo"))

    async def test_remove_fails(self):
        error = ManagerSystemError("Access is denied.", 5)
        self.execute.side_effect = [None, error]
        with self.assertRaises(ManagerSystemError) as ctx:
            await self.nssm.remove("svc")
        self.assertIs(ctx.exception, error)


class TestStatus(ControllerTestCase):

    async def test_status(self):
        self.execute.return_value = ServiceStatus.paused
        self.assertIs(await self.nssm.get_status("svc"), ServiceStatus.paused)
        self.assertActions(call(Action.STATUS, "svc"))
        self.sleep.assert_not_awaited()

    async def test_unrecognized(self):
        self.execute.return_value = None
        self.assertIsNone(await self.nssm.get_status("svc"))

    async def test_idempotent(self):
        self.execute.return_value = ServiceStatus.running
        first = await self.nssm.get_status("svc")
        second = await self.nssm.get_status("svc")
        self.assertIs(first, second)

    async def test_missing(self):
        self.execute.side_effect = not_found()
        with self.assertRaises(ServiceNotFoundError):
            await self.nssm.get_status("foo")


class TestInstall(ControllerTestCase):

    def setUp(self):
        super().setUp()
        tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(tempdir.cleanup)
        self.app = os.path.join(tempdir.name, "app.exe")
        with open(self.app, "w"):
            pass

    def install_calls(self, name: str = "svc"):
        return [call(Action.INSTALL, name, self.app, "--port 80"), call(Action.START, name),
                call(Action.STATUS, name)]

    async def test_new(self):
        self.execute.side_effect = [not_found(), None, None, ServiceStatus.running]
        result = await self.nssm.install("svc", self.app, "--port 80")
        self.assertIs(result.value, ServiceStatus.running)
        self.assertEqual(result.state, State.created)
        self.assertEqual(result.caller, "nssmlib.tasks.service:Nssm.install")
        self.assertActions(call(Action.STATUS, "svc"), *self.install_calls())
        self.sleep.assert_awaited_once_with(SETTLE_DELAY)

    async def test_new_status_error(self):
        # Any preflight failure counts as a missing service, not just "doesn't exist".
        self.execute.side_effect = [ManagerSystemError("Access is denied.", 5), None, None,
                                    ServiceStatus.running]
        await self.nssm.install("svc", self.app, "--port 80")
        self.assertActions(call(Action.STATUS, "svc"), *self.install_calls())

    async def test_existing(self):
        self.execute.side_effect = [ServiceStatus.running]
        with self.assertRaises(ServiceExistsError) as ctx:
            await self.nssm.install("svc", self.app, "--port 80")
        self.assertEqual(str(ctx.exception), "svc already exist !")
        self.assertActions(call(Action.STATUS, "svc"))
        self.sleep.assert_not_awaited()

    async def test_existing_unrecognized(self):
        self.execute.side_effect = [None]
        with self.assertRaises(ServiceExistsError):
            await self.nssm.install("svc", self.app, "--port 80")

    async def test_missing_executable(self):
        missing = os.path.join(os.path.dirname(self.app), "missing.exe")
        with self.assertRaises(ExecutableNotFoundError) as ctx:
            await self.nssm.install("svc", missing)
        self.assertEqual(str(ctx.exception), "{} don't exist".format(missing))
        self.execute.assert_not_awaited()

    async def test_install_fails(self):
        error = ServiceExistsError("Service already exist", 1073)
        self.execute.side_effect = [not_found(), error]
        with self.assertRaises(ServiceExistsError) as ctx:
            await self.nssm.install("svc", self.app, "--port 80")
        self.assertIs(ctx.exception, error)
        self.assertActions(call(Action.STATUS, "svc"), self.install_calls()[0])

    async def test_crashes(self):
        self.execute.side_effect = [not_found(), None, ServiceStatus.pending,
                                    ServiceStatus.stopped]
        with self.assertRaises(UnexpectedStatusError) as ctx:
            await self.nssm.install("svc", self.app, "--port 80")
        self.assertEqual(str(ctx.exception), "Unexpected Status : stopped, expected running")

    async def test_reinstall_existing(self):
        self.execute.side_effect = [ServiceStatus.running, ServiceStatus.stopped, None, None, None,
                                    ServiceStatus.running]
        result = await self.nssm.reinstall("svc", self.app, "--port 80")
        self.assertIs(result.value, ServiceStatus.running)
        self.assertEqual(result.caller, "nssmlib.tasks.service:Nssm.reinstall")
        self.assertActions(call(Action.STATUS, "svc"), call(Action.STOP, "svc"),
                           call(Action.REMOVE, "svc"), *self.install_calls())

    async def test_reinstall_new(self):
        self.execute.side_effect = [not_found(), None, None, ServiceStatus.running]
        await self.nssm.reinstall("svc", self.app, "--port 80")
        self.assertActions(call(Action.STATUS, "svc"), *self.install_calls())

    async def test_reinstall_short_circuit(self):
        error = ManagerSystemError("The service cannot accept control messages at this time.",
                                   1061)
        self.execute.side_effect = [ServiceStatus.running, None, error, None, None, None]
        with self.assertRaises(ManagerSystemError) as ctx:
            await self.nssm.install("svc", self.app, "--port 80", reinstall=True)
        self.assertIs(ctx.exception, error)
        self.assertActions(call(Action.STATUS, "svc"), call(Action.STOP, "svc"),
                           call(Action.REMOVE, "svc"))
        self.sleep.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
