from typing import Any, Dict, List, Mapping, Optional

import pytest

from jobrunner.errors import ActionFailure, TransportDisconnected
from jobrunner.model import ActionResult
from jobrunner.notifier import MemoryNotifier
from jobrunner.plugins.actions.command import Command
from jobrunner.plugins.base import Action, Builder, BuildHost, Provisioner, Source, Transport
from jobrunner.registry import CapabilityKind, CapabilityRegistry
from jobrunner.runner import JobRunner
from jobrunner.settings import Settings


class FakeTransport(Transport):
    def __init__(self, harness, kind, host, user=None, password=None, key=None, log=None):
        super().__init__(host, user=user, password=password, key=key, log=log)
        self.harness = harness
        self.kind = kind
        self.env: Dict[str, str] = {}
        self._exit_code = 0
        self.closed = False
        harness.events.append(("open", kind))
        harness.opened.append(self)

    @property
    def exit_code(self) -> int:
        return self._exit_code

    def export_env(self, env: Mapping[str, Any]) -> None:
        self.env.update(env)

    def exec(self, command: str, path: Optional[str] = None) -> bool:
        self.harness.events.append(("exec", command, path))
        self.harness.commands.append(command)
        success = self.harness.exec_results.get(command, True)
        self._exit_code = 0 if success else 1
        if self.log is not None:
            self.log.write(f"$ {command}")
        return success

    def close(self) -> None:
        self.harness.events.append(("close", self.kind))
        self.closed = True
        if self.harness.close_error is not None:
            raise self.harness.close_error


class FakeBuilder(Builder):
    def __init__(self, harness, registry=None):
        super().__init__(registry)
        self.harness = harness
        harness.builders.append(self)

    def get(self, args):
        self.harness.events.append(("get", dict(args)))
        if self.harness.builder_error is not None:
            raise self.harness.builder_error
        if self.harness.builder_returns_none:
            return None
        return BuildHost(
            name="fake-1",
            host="10.0.0.5",
            username="build",
            password="hunter2",
            distro=self.harness.distro,
            release="1",
            workspace="/home/build",
            server="pool-a",
            supported_transports=list(self.harness.host_transports),
        )

    def release(self, transport, host):
        self.harness.events.append(("release", host.name))
        if self.harness.release_error is not None:
            raise self.harness.release_error


class FakeProvisioner(Provisioner):
    def __init__(self, harness):
        self.harness = harness

    def prepare(self, transport, host, env):
        self.harness.events.append(("prepare", host.name, dict(env)))
        if self.harness.provision_error is not None:
            raise self.harness.provision_error
        return self.harness.provision_result


class FakeSource(Source):
    def __init__(self, harness, kind):
        self.harness = harness
        self.kind = kind

    def checkout(self, transport, ctx, sources):
        self.harness.events.append(("checkout", self.kind, [s.get("url") for s in sources]))
        return self.harness.checkout_results.get(self.kind, True)


class FakeAction(Action):
    """
    Params: label, succeed (default True), rc, fail_with (raise ActionFailure
    from perform), fail_on_prepare (raise ActionFailure while binding).
    """

    def __init__(self, harness, label="step", succeed=True, rc=None, fail_with=None, fail_on_prepare=None):
        super().__init__(label=label, succeed=succeed, rc=rc, fail_with=fail_with, fail_on_prepare=fail_on_prepare)
        self.harness = harness
        self.label = label
        self.succeed = succeed
        self.rc = rc if rc is not None else (0 if succeed else 1)
        self.fail_with = fail_with
        self.fail_on_prepare = fail_on_prepare

    def prepare(self, transport, ctx):
        super().prepare(transport, ctx)
        if self.fail_on_prepare is not None:
            raise ActionFailure(self.fail_on_prepare, exit_code=self.rc)

    def perform(self, log):
        self.harness.events.append(("perform", self.label))
        self.harness.performed.append(self.label)
        if self.fail_with is not None:
            raise ActionFailure(self.fail_with, exit_code=self.rc)
        log.write(f"performed {self.label}")
        return ActionResult(self.succeed, self.rc)


class Harness:
    """A registry full of fake plugins that record everything done to them."""

    def __init__(self):
        self.registry = CapabilityRegistry()
        self.events: List[tuple] = []
        self.commands: List[str] = []
        self.performed: List[str] = []
        self.opened: List[FakeTransport] = []
        self.builders: List[FakeBuilder] = []

        self.host_transports = ["ssh"]
        self.distro = "fakeos"
        self.builder_error: Optional[Exception] = None
        self.builder_returns_none = False
        self.provision_result = True
        self.provision_error: Optional[Exception] = None
        self.checkout_results: Dict[str, bool] = {}
        self.exec_results: Dict[str, bool] = {}
        self.transport_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.release_error: Optional[Exception] = None

        r = self.registry
        r.register(CapabilityKind.BUILDER, "fake", lambda **kwargs: FakeBuilder(self, **kwargs))
        for kind in ("ssh", "local"):
            r.register(CapabilityKind.TRANSPORT, kind, self._transport_factory(kind))
        r.register(CapabilityKind.PROVISIONER, "fakeos", lambda: FakeProvisioner(self))
        for kind in ("git", "hg"):
            r.register(CapabilityKind.SOURCE, kind, self._source_factory(kind))
        r.register(CapabilityKind.ACTION, "fake", lambda **params: FakeAction(self, **params))
        r.register(CapabilityKind.ACTION, "command", Command)

        self.settings = Settings(builder="fake")

    def _transport_factory(self, kind):
        def factory(**kwargs):
            if self.transport_error is not None:
                raise self.transport_error
            return FakeTransport(self, kind, **kwargs)
        return factory

    def _source_factory(self, kind):
        return lambda: FakeSource(self, kind)

    def count(self, event: str) -> int:
        return sum(1 for e in self.events if e[0] == event)

    def runner(self, payload, notifier=None, job_id=42) -> JobRunner:
        return JobRunner(
            job_id,
            payload,
            notifier if notifier is not None else MemoryNotifier(),
            registry=self.registry,
            settings=self.settings,
        )


@pytest.fixture
def harness():
    return Harness()


@pytest.fixture
def notifier():
    return MemoryNotifier()


@pytest.fixture
def disconnected():
    return TransportDisconnected("connection closed by remote host")
