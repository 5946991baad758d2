"""
Global pytest configuration and shared fixtures.
"""

import asyncio

import pytest


class FakeExecutor:
    """
    Stand-in for ShellExecutor.

    `pgrep` outcomes are consumed in order (the last one repeats); an
    outcome is either stdout text or an exception to raise.
    """

    def __init__(self, pgrep=None, kill="", launch=""):
        self.pgrep = list(pgrep or [])
        self.kill = kill
        self.launch = launch
        self.commands: list[str] = []

    async def run(self, command: str):
        from llmanager.service.shell import CommandResult

        self.commands.append(command)
        if command.startswith("pgrep"):
            outcome = self.pgrep.pop(0) if len(self.pgrep) > 1 else self.pgrep[0]
        elif command.startswith("kill"):
            outcome = self.kill
        else:
            outcome = self.launch
        if isinstance(outcome, BaseException):
            raise outcome
        return CommandResult(stdout=outcome, stderr="")

    def count(self, prefix: str) -> int:
        return sum(1 for c in self.commands if c.startswith(prefix))


def no_match(service="ollama"):
    """pgrep's 'nothing found' exit status."""
    from llmanager.exceptions import ExecutionError

    return ExecutionError(f"pgrep -x {service}", 1)


class FakeClient:
    """
    Stand-in for DaemonClient.

    Results may be lists or exceptions. Setting `gate` makes every fetch
    wait for the event before returning.
    """

    def __init__(self, installed=None, active=None):
        self.installed = installed if installed is not None else []
        self.active = active if active is not None else []
        self.installed_calls = 0
        self.active_calls = 0
        self.gate: asyncio.Event | None = None
        self.removed: list[str] = []
        self.generated: list[tuple[str, str | None]] = []
        self.version_result = "0.6.8"
        self.closed = False

    async def _resolve(self, value):
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(value, BaseException):
            raise value
        return list(value)

    async def list_installed(self):
        self.installed_calls += 1
        return await self._resolve(self.installed)

    async def list_active(self):
        self.active_calls += 1
        return await self._resolve(self.active)

    async def version(self):
        if isinstance(self.version_result, BaseException):
            raise self.version_result
        return self.version_result

    async def generate(self, model, keep_alive=None):
        from llmanager.api.schemas import GenerateResponse

        self.generated.append((model, keep_alive))
        return GenerateResponse(model=model, done=True)

    async def remove(self, name):
        self.removed.append(name)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fast_config():
    """Configuration with short grace intervals for tests."""
    from llmanager.config import ManagerConfig

    return ManagerConfig(
        service_name="ollama",
        start_grace=0.01,
        stop_grace=0.01,
        refresh_interval=15.0,
        api_url="http://daemon.test",
    )


@pytest.fixture
def state():
    from llmanager.sync.state import SyncState

    return SyncState()


@pytest.fixture
def fake_client():
    return FakeClient()


def installed_model(name, digest, size=4_700_000_000, **kwargs):
    from llmanager.api.schemas import InstalledModel

    return InstalledModel(
        name=name,
        model=name,
        digest=digest,
        size=size,
        modified_at=kwargs.pop("modified_at", "2025-04-20T10:00:00Z"),
        **kwargs,
    )


def active_model(name, digest, expires_at="2025-04-22T12:05:00Z", size=5_600_000_000, **kwargs):
    from llmanager.api.schemas import ActiveModel, ModelDetails

    return ActiveModel(
        name=name,
        model=name,
        digest=digest,
        size=size,
        expires_at=expires_at,
        details=kwargs.pop("details", ModelDetails(quantization_level="Q4_K_M")),
        **kwargs,
    )


async def drain(condition, attempts: int = 200):
    """Yields to the event loop until `condition()` holds."""
    for _ in range(attempts):
        if condition():
            return True
        await asyncio.sleep(0)
    return condition()


async def wait_until(condition, timeout: float = 2.0, step: float = 0.005):
    """Polls `condition()` for up to `timeout` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if condition():
            return True
        await asyncio.sleep(step)
    return condition()
