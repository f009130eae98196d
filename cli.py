# cli.py
import sys
import click
from compos import (
    CompOsTestUtils, CompOsTestFailure, AssumptionViolated,
    JOB_ID, JOB_CREATION_MAX_SECONDS, SECONDS_BEFORE_PROGRESS_CHECK, VM_ODREFRESH_MAX_SECONDS,
)
from device import AdbDevice, DeviceNotAvailableError
from fixtures import describe_fixture, export_fixture
from storage import Storage

CONFIG_DEFAULTS = {
    "job_id": JOB_ID,
    "job_creation_max_seconds": str(JOB_CREATION_MAX_SECONDS),
    "seconds_before_progress_check": str(SECONDS_BEFORE_PROGRESS_CHECK),
    "vm_odrefresh_max_seconds": str(VM_ODREFRESH_MAX_SECONDS),
    "poll_interval": "1.0",
}

CONFIG_TYPES = {
    "job_id": str,
    "job_creation_max_seconds": int,
    "seconds_before_progress_check": int,
    "vm_odrefresh_max_seconds": int,
    "poll_interval": float,
}

@click.group()
def cli():
    """composctl - drive the CompOS compilation job on a test device"""
    pass


def _utils(db, serial, **overrides):
    """Raises ValueError naming the key when a stored value has the wrong type."""
    settings = {}
    for key, default in CONFIG_DEFAULTS.items():
        value = overrides.get(key)
        if value is None:
            value = db.get_config(key, default=default)
        try:
            settings[key] = CONFIG_TYPES[key](value)
        except ValueError:
            raise ValueError(f"Invalid config value {key}={value!r}, expected {CONFIG_TYPES[key].__name__}") from None
    return CompOsTestUtils(AdbDevice(serial=serial), db=db, **settings)


# ---------------- Compilation job ----------------
@cli.command("wait-compilation")
@click.option("--serial", default=None, help="adb serial of the target device")
@click.option("--job-id", default=None, help="Job scheduler id (uses config if set)")
@click.option("--job-creation-max-seconds", default=None, type=int, help="Polls to wait for the job to be scheduled (uses config if set)")
@click.option("--seconds-before-progress-check", default=None, type=int, help="Pause after forcing the job (uses config if set)")
@click.option("--vm-odrefresh-max-seconds", default=None, type=int, help="Overall budget for the compilation (uses config if set)")
def wait_compilation(serial, job_id, job_creation_max_seconds, seconds_before_progress_check, vm_odrefresh_max_seconds):
    """Force the pending compilation job to run and wait for it to finish"""
    db = Storage()
    try:
        utils = _utils(db, serial,
                       job_id=job_id,
                       job_creation_max_seconds=job_creation_max_seconds,
                       seconds_before_progress_check=seconds_before_progress_check,
                       vm_odrefresh_max_seconds=vm_odrefresh_max_seconds)
    except ValueError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)
    click.echo(f"🚀 Waiting for job {utils.job_id} (schedule={utils.job_creation_max_seconds}s, "
               f"pause={utils.seconds_before_progress_check}s, budget={utils.vm_odrefresh_max_seconds}s)")
    try:
        utils.run_compilation_job_early_and_wait()
    except (CompOsTestFailure, DeviceNotAvailableError) as e:
        click.echo(f"❌ {e}")
        sys.exit(1)
    click.echo(f"✅ Job {utils.job_id} completed ({utils.run_id}).")


@cli.command()
@click.argument("path")
@click.option("--serial", default=None, help="adb serial of the target device")
def checksum(path, serial):
    """Print sha256 of every file under PATH, sorted by filename"""
    utils = CompOsTestUtils(AdbDevice(serial=serial))
    try:
        click.echo(utils.checksum_directory_content_partial(path))
    except (CompOsTestFailure, DeviceNotAvailableError) as e:
        click.echo(f"❌ {e}")
        sys.exit(1)


@cli.command()
@click.option("--serial", default=None, help="adb serial of the target device")
def check(serial):
    """Report whether the device can run CompOS tests"""
    utils = CompOsTestUtils(AdbDevice(serial=serial))
    skipped = False
    for name, assumption in (("CompOS present", utils.assume_compos_present),
                             ("Not on cuttlefish", utils.assume_not_on_cuttlefish)):
        try:
            assumption()
            click.echo(f"✅ {name}")
        except AssumptionViolated as e:
            skipped = True
            click.echo(f"⏭ {name}: {e}")
        except DeviceNotAvailableError as e:
            click.echo(f"❌ {e}")
            sys.exit(1)
    if skipped:
        sys.exit(2)


# ---------------- Poll history ----------------
@cli.command()
@click.option("--run-id", default=None, help="Show every poll of a single run")
@click.option("--limit", default=20, type=int, help="Number of rows to show")
def history(run_id, limit):
    """Show recorded job-state polls"""
    db = Storage()
    if run_id:
        rows = db.list_polls(run_id=run_id, limit=limit)
        if not rows:
            click.echo(f"❌ Run {run_id} not found.")
            return
        for row in rows:
            click.echo(f"{row['observed_at']} | phase={row['phase']} | poll={row['iteration'] + 1} | exit_code={row['exit_code']} | state={row['state'] or '-'}")
        return

    rows = db.list_runs(limit=limit)
    if not rows:
        click.echo("No polls recorded yet.")
        return
    for row in rows:
        click.echo(f"{row['run_id']} | job={row['job_id']} | polls={row['polls']} | last_state={row['last_state'] or '-'} | started={row['started_at']} | last_seen={row['last_seen_at']}")


# ---------------- Config management ----------------
@cli.group()
def config():
    """Runtime configuration for the poller"""
    pass

@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key, value):
    """Set a config key to a value"""
    if key not in CONFIG_DEFAULTS:
        click.echo(f"❌ Unknown config key '{key}'. Known keys: {', '.join(sorted(CONFIG_DEFAULTS))}")
        sys.exit(1)
    try:
        CONFIG_TYPES[key](value)
    except ValueError:
        click.echo(f"❌ Invalid value '{value}' for '{key}', expected {CONFIG_TYPES[key].__name__}.")
        sys.exit(1)
    db = Storage()
    db.set_config(key, value)
    click.echo(f"🛠️ Config '{key}' set to '{value}'.")

@config.command("get")
@click.argument("key")
def config_get(key):
    """Get a config key"""
    db = Storage()
    value = db.get_config(key)
    if value is None:
        default = CONFIG_DEFAULTS.get(key)
        if default is not None:
            click.echo(f"{key}={default} (default)")
        else:
            click.echo(f"{key} not set")
        return
    click.echo(f"{key}={value}")

@config.command("list")
def config_list():
    """List all config keys"""
    db = Storage()
    rows = db.list_config()
    if not rows:
        click.echo("No config keys set.")
        return
    for row in rows:
        click.echo(f"{row['key']}={row['value']} (updated_at={row['updated_at']})")


# ---------------- Redefinition fixture ----------------
@cli.group()
def fixture():
    """Embedded class redefinition payloads"""
    pass

@fixture.command("info")
def fixture_info():
    """Show size and sha256 of each payload"""
    for entry in describe_fixture():
        click.echo(f"{entry['name']} | {entry['size']} bytes | sha256={entry['sha256']}")

@fixture.command("export")
@click.argument("directory")
def fixture_export(directory):
    """Write the payloads to DIRECTORY"""
    for path in export_fixture(directory):
        click.echo(f"📦 Wrote {path}")

# ---------------- Entrypoint ----------------
if __name__ == "__main__":
    cli()
