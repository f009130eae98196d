# device.py
import shlex
import subprocess
from models import CommandResult

class DeviceNotAvailableError(Exception):
    pass


class Device:
    """
    Handle on a test target. Subclasses only need to run shell commands;
    file and property lookups are built on top of that.
    """

    def execute_shell_v2_command(self, command):
        raise NotImplementedError

    def does_file_exist(self, path):
        result = self.execute_shell_v2_command(f"ls {shlex.quote(path)}")
        return result.exit_code == 0

    def get_property(self, name):
        result = self.execute_shell_v2_command(f"getprop {name}")
        if result.exit_code != 0:
            return None
        value = result.stdout.strip()
        return value or None


class AdbDevice(Device):
    MIN_MICRODROID_API_LEVEL = 33

    def __init__(self, serial=None, adb_path="adb", command_timeout=600):
        self.serial = serial
        self.adb_path = adb_path
        self.command_timeout = command_timeout

    def _adb_args(self, command):
        args = [self.adb_path]
        if self.serial:
            args += ["-s", self.serial]
        return args + ["shell", command]

    def execute_shell_v2_command(self, command):
        try:
            result = subprocess.run(
                self._adb_args(command),
                capture_output=True,
                text=True,
                timeout=self.command_timeout
            )
        except subprocess.TimeoutExpired:
            return CommandResult(exit_code=-1, stdout="", stderr="timeout")
        except FileNotFoundError as e:
            raise DeviceNotAvailableError(f"cannot run {self.adb_path}: {e}") from e
        return CommandResult(exit_code=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")

    def supports_microdroid(self):
        """Whether the device kernel can host a protected or unprotected VM."""
        try:
            api_level = int(self.get_property("ro.build.version.sdk") or "")
        except ValueError:
            return False
        if api_level < self.MIN_MICRODROID_API_LEVEL:
            return False
        for prop in ("ro.boot.hypervisor.vm.supported", "ro.boot.hypervisor.protected_vm.supported"):
            if self.get_property(prop) in ("1", "true"):
                return True
        return False

    def __repr__(self):
        return f"AdbDevice(serial={self.serial!r})"
