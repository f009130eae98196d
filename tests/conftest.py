"""Shared fixtures: a scripted device and in-memory storage."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from device import AdbDevice, Device  # noqa: E402
from models import CommandResult  # noqa: E402
from storage import Storage  # noqa: E402


class ScriptedShell:
    """Answers shell commands from a table of prefix -> responses.

    A list of responses is consumed in order and its last entry repeats.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.commands: list[str] = []

    def __call__(self, command: str) -> CommandResult:
        self.commands.append(command)
        for prefix, response in self.responses.items():
            if command.startswith(prefix):
                if isinstance(response, list):
                    return response.pop(0) if len(response) > 1 else response[0]
                return response
        return CommandResult(exit_code=1, stdout="", stderr=f"unscripted: {command}")

    def count(self, prefix: str) -> int:
        return sum(1 for command in self.commands if command.startswith(prefix))


class FakeDevice(Device):
    def __init__(self, responses=None):
        self.shell = ScriptedShell(responses)

    def execute_shell_v2_command(self, command):
        return self.shell(command)


class FakeAdbDevice(AdbDevice):
    def __init__(self, responses=None):
        super().__init__(serial="fake-serial")
        self.shell = ScriptedShell(responses)

    def execute_shell_v2_command(self, command):
        return self.shell(command)


@pytest.fixture
def db() -> Storage:
    return Storage(":memory:")


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append
