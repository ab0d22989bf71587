import asyncio
from pathlib import Path

import pytest

from contract_suite.artifacts.loader import UnitArtifact
from contract_suite.errors import ArtifactNotFoundError, DeployError
from contract_suite.runner.events import MethodsDone, MethodsStarted, NotificationChannel
from contract_suite.runner.method_runner import MethodResult, MethodStats
from contract_suite.transport.http_client import DeployedInstance

TEST_INTERFACE = [
    {"type": "function", "name": "testAdd"},
    {"type": "function", "name": "testSub"},
]


def make_artifact(name: str) -> UnitArtifact:
    return UnitArtifact(name=name, code=name, interface=list(TEST_INTERFACE))


class FakeClient:
    def __init__(self, version="0.5.0", connect_error=None, version_error=None, failing_deploys=()):
        self.version = version
        self.connect_error = connect_error
        self.version_error = version_error
        self.failing_deploys = set(failing_deploys)
        self.calls: list[tuple[str, object]] = []
        self.closed = False

    async def connect(self, endpoint):
        self.calls.append(("connect", endpoint))
        if self.connect_error:
            raise self.connect_error

    async def get_protocol_version(self):
        self.calls.append(("version", None))
        if self.version_error:
            raise self.version_error
        return self.version

    async def deploy(self, code, interface):
        self.calls.append(("deploy", code))
        if code in self.failing_deploys:
            raise DeployError(f"out of gas deploying {code}")
        return DeployedInstance(address=f"0x{code}", interface=interface)

    def close(self):
        self.closed = True


class FakeLoader:
    def __init__(self, artifacts=(), traces=None, interfaces=None):
        self.artifacts = {a.name: a for a in artifacts}
        self.traces = traces or {}
        self.interfaces = interfaces or {}

    def load(self, base_dir, unit_name):
        if unit_name not in self.artifacts:
            raise ArtifactNotFoundError(f"Artifact not found: {Path(base_dir) / unit_name}.binary")
        return self.artifacts[unit_name]

    def load_code(self, base_dir, unit_name):
        return self.load(base_dir, unit_name).code

    def load_interface(self, base_dir, unit_name):
        if unit_name in self.interfaces:
            return self.interfaces[unit_name]
        return self.load(base_dir, unit_name).interface

    def load_trace(self, base_dir, unit_name):
        if unit_name not in self.traces:
            raise ArtifactNotFoundError(f"Artifact not found: {unit_name}.ast")
        return self.traces[unit_name]


class FakeRunner:
    """Method runner whose behavior is picked per unit.

    ok          - started, then done with stats (all passing)
    failing     - started, then done with one failing method
    start-error - started with an error, nothing else
    run-error   - started, then done with an error
    raise       - started, then run() raises
    deferred    - run() returns, notifications arrive on later loop iterations
    counts      - started, then done with plain pass/fail counts as the result
    """

    def __init__(self, unit_name, instance, behavior="ok"):
        self.unit_name = unit_name
        self.instance = instance
        self.behavior = behavior
        self.channel = NotificationChannel()

    def _stats(self):
        return MethodStats(
            unit_name=self.unit_name,
            results=[
                MethodResult(name="testAdd", passed=True),
                MethodResult(name="testSub", passed=self.behavior != "failing", message=""),
            ],
        )

    def _started(self):
        self.channel.emit(MethodsStarted(error=None, methods=("testAdd", "testSub")))

    def _done(self):
        result = {"passed": 2, "failed": 0} if self.behavior == "counts" else self._stats()
        self.channel.emit(MethodsDone(error=None, unit_name=self.unit_name, result=result))

    async def run(self):
        if self.behavior == "start-error":
            self.channel.emit(MethodsStarted(error=RuntimeError("no test methods")))
            return
        if self.behavior == "deferred":
            loop = asyncio.get_running_loop()
            loop.call_soon(self._started)
            loop.call_soon(self._done)
            return
        self._started()
        if self.behavior == "run-error":
            self.channel.emit(MethodsDone(error=RuntimeError("transaction reverted"), unit_name=self.unit_name))
        elif self.behavior == "raise":
            raise RuntimeError("runner crashed")
        else:
            self._done()


class FakeRunnerFactory:
    def __init__(self, behaviors=None):
        self.behaviors = behaviors or {}
        self.created: list[str] = []

    def __call__(self, unit_name, instance):
        self.created.append(unit_name)
        return FakeRunner(unit_name, instance, self.behaviors.get(unit_name, "ok"))


class Recorder:
    def __init__(self):
        self.notifications = []

    def __call__(self, notification):
        self.notifications.append(notification)

    @property
    def kinds(self):
        return [n.kind.value for n in self.notifications]

    def for_unit(self, unit_name):
        return [
            n.kind.value for n in self.notifications
            if getattr(n, "unit_name", None) == unit_name
        ]

    def of_kind(self, kind):
        return [n for n in self.notifications if n.kind.value == kind]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def build_dir(tmp_path):
    """Compiler output directory with ArraysTest, CoinTest and Coin."""
    import json

    test_abi = [
        {"type": "constructor", "inputs": []},
        {"type": "function", "name": "testTransfer", "inputs": []},
        {"type": "function", "name": "testMint", "inputs": []},
    ]
    coin_abi = [
        {"type": "function", "name": "transfer"},
        {"type": "function", "name": "mint"},
        {"type": "function", "name": "burn"},
        {"type": "event", "name": "Transfer"},
    ]
    coin_ast = {
        "name": "SourceUnit",
        "children": [
            {"name": "MemberAccess", "attributes": {"member_name": "transfer"}},
            {"name": "FunctionCall", "children": [{"name": "Identifier", "attributes": {"value": "mint"}}]},
        ],
    }
    (tmp_path / "CoinTest.binary").write_text("6060604052\n", encoding="utf-8")
    (tmp_path / "CoinTest.abi").write_text(json.dumps(test_abi), encoding="utf-8")
    (tmp_path / "CoinTest.ast").write_text(json.dumps(coin_ast), encoding="utf-8")
    (tmp_path / "Coin.abi").write_text(json.dumps(coin_abi), encoding="utf-8")
    (tmp_path / "ArraysTest.binary").write_text("60606040", encoding="utf-8")
    (tmp_path / "ArraysTest.abi").write_text("{not json", encoding="utf-8")
    return tmp_path
