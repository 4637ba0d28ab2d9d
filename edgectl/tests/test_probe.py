import subprocess
from types import SimpleNamespace

from edgectl.errors import TransportError
from edgectl.modules import probe as probe_module
from edgectl.modules.probe import Prober, ProbeResult
from edgectl.modules.ssh import CommandResult
from edgectl.tests.fakes import FakeChannel


def _ping(monkeypatch, returncode):
    calls = []

    def run(cmd, **kwargs):
        calls.append(cmd)
        return SimpleNamespace(returncode=returncode, stdout="", stderr="")

    monkeypatch.setattr(probe_module.subprocess, "run", run)
    return calls


def test_ok(monkeypatch):
    calls = _ping(monkeypatch, 0)
    channel = FakeChannel(default=CommandResult(0, "SSH OK\n", ""))

    assert Prober(channel).probe("10.0.0.5") == ProbeResult.OK
    assert calls == [["ping", "-c", "3", "10.0.0.5"]]


def test_unreachable_skips_ssh(monkeypatch):
    _ping(monkeypatch, 1)
    channel = FakeChannel()

    assert Prober(channel).probe("10.0.0.5") == ProbeResult.UNREACHABLE
    assert channel.commands == []


def test_auth_failed(monkeypatch):
    _ping(monkeypatch, 0)

    class RejectingChannel:
        def execute(self, command, timeout=30, sudo=False):
            raise TransportError("Authentication rejected")

    assert Prober(RejectingChannel()).probe("10.0.0.5") == ProbeResult.AUTH_FAILED


def test_ping_timeout(monkeypatch):
    def run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(probe_module.subprocess, "run", run)

    assert not Prober(FakeChannel()).ping("10.0.0.5")
