# compos.py
import shlex
import time
import unittest
import uuid
from datetime import datetime
from device import AdbDevice
from models import PollRecord

APEXDATA_DIR = "/data/misc/apexdata/com.android.compos"
PENDING_ARTIFACTS_DIR = "/data/misc/apexdata/com.android.art/compos-pending"
COMPOS_APEX_DIR = "/apex/com.android.compos/"

# odrefresh gives up after 480s; the VM needs some time to boot on top of that.
VM_ODREFRESH_MAX_SECONDS = 480 + 60
JOB_CREATION_MAX_SECONDS = 5
SECONDS_BEFORE_PROGRESS_CHECK = 30

# Pending compilation job for staged APEXes
JOB_ID = "5132251"


class CompOsTestFailure(AssertionError):
    pass


class AssumptionViolated(unittest.SkipTest):
    pass


def assume_true(condition, message="Assumption not met"):
    if not condition:
        raise AssumptionViolated(message)


class CompOsTestUtils:
    def __init__(self, device, job_id=JOB_ID, job_creation_max_seconds=JOB_CREATION_MAX_SECONDS,
                 seconds_before_progress_check=SECONDS_BEFORE_PROGRESS_CHECK,
                 vm_odrefresh_max_seconds=VM_ODREFRESH_MAX_SECONDS, poll_interval=1.0,
                 sleep=None, db=None):
        self.device = device
        self.job_id = job_id
        self.job_creation_max_seconds = job_creation_max_seconds
        self.seconds_before_progress_check = seconds_before_progress_check
        self.vm_odrefresh_max_seconds = vm_odrefresh_max_seconds
        self.poll_interval = poll_interval
        self.sleep = sleep or time.sleep
        self.db = db  # optional Storage, keeps poll history
        self.run_id = None
        self._last_state = None

    def run_compilation_job_early_and_wait(self):
        """
        Start the CompOS compilation job as soon as it is scheduled and return
        once it has completed.

        Installing a test APEX schedules the job to run when the device is idle
        and charging; we force it by id instead of waiting for that.
        """
        self.run_id = f"run-{uuid.uuid4().hex[:8]}"
        self._last_state = None

        self._wait_for_job_to_be_scheduled()

        self._assert_command_succeeds(f"cmd jobscheduler run android {self.job_id}")
        self._log_transition(self._last_state, "run", "(forced via jobscheduler)")
        # Compilation takes a while, no point polling straight away
        self.sleep(self.seconds_before_progress_check)

        self._wait_for_job_exit(self.vm_odrefresh_max_seconds - self.seconds_before_progress_check)

    def checksum_directory_content_partial(self, path):
        # Sorted by filename (second column) so listings can be compared directly.
        # compos.info* is deleted at boot and only CompOS writes its signature;
        # cache-info.xml differs between compilations.
        return self._assert_command_succeeds(
            f"cd {shlex.quote(path)}; find -type f -exec sha256sum {{}} \\;"
            "| grep -v cache-info.xml | grep -v compos.info"
            "| sort -k2"
        )

    def assume_compos_present(self):
        # A VM needs kernel support, which only a real adb device can tell us about
        assume_true(isinstance(self.device, AdbDevice), "Need an actual TestDevice")
        assume_true(self.device.supports_microdroid(), "Requires VM support")

        assume_true(self.device.does_file_exist(COMPOS_APEX_DIR), "CompOS APEX not present")

    def assume_not_on_cuttlefish(self):
        product = self.device.get_property("ro.build.product")
        assume_true(product is not None and not product.startswith("vsoc_"),
                    f"Not supported on cuttlefish (ro.build.product={product})")

    def _wait_for_job_to_be_scheduled(self):
        for i in range(self.job_creation_max_seconds):
            result, state = self._get_job_state("scheduled", i)
            if state.startswith("unknown"):
                # Not scheduled yet
                self.sleep(self.poll_interval)
            elif result.exit_code != 0:
                self._fail(f"Failing due to unexpected job state: {result}")
            else:
                # The job exists, which is all we care about here
                return
        self._fail("Timed out waiting for the job to be scheduled")

    def _wait_for_job_exit(self, timeout):
        for i in range(timeout):
            result, state = self._get_job_state("exit", i)
            if "ready" in state or "active" in state:
                self.sleep(self.poll_interval)
            elif state.startswith("unknown"):
                self._log_transition(state.strip(), "completed")
                return
            else:
                self._fail(f"Failing due to unexpected job state: {result}")
        self._fail("Timed out waiting for the job to complete")

    def _get_job_state(self, phase, iteration):
        result = self.device.execute_shell_v2_command(f"cmd jobscheduler get-job-state android {self.job_id}")
        state = result.stdout
        observed = state.strip()
        if observed != self._last_state:
            self._log_transition(self._last_state, observed, f"(phase={phase}, poll={iteration + 1}, exit_code={result.exit_code})")
            self._last_state = observed
        if self.db is not None:
            self.db.record_poll(PollRecord(
                run_id=self.run_id or "adhoc",
                job_id=self.job_id,
                phase=phase,
                iteration=iteration,
                exit_code=result.exit_code,
                state=observed,
            ))
        return result, state

    def _assert_command_succeeds(self, command):
        result = self.device.execute_shell_v2_command(command)
        if result.exit_code != 0:
            self._fail(str(result))
        return result.stdout.strip()

    def _fail(self, message):
        self._log_transition(self._last_state, "failed", f"({message})")
        raise CompOsTestFailure(message)

    def _log_transition(self, old_state, new_state, extra=""):
        now = datetime.utcnow().isoformat()
        print(f"[{now}] Job {self.job_id}: {old_state or '-'} → {new_state} {extra}")
