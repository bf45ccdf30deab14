"""
Host metric samplers for mintop.

Thin wrappers over psutil (and Linux sysfs for batteries) so that the
formatters can be driven by fakes in tests.
"""

from pathlib import Path

import psutil

from mintop.errors import FatalBatteryError, PartialBatteryError
from mintop.models import Battery, BatteryReport, BatteryState

POWER_SUPPLY_PATH = Path("/sys/class/power_supply")

# sysfs "status" strings
_SYSFS_STATES = {
    "Unknown": BatteryState.UNKNOWN,
    "Empty": BatteryState.EMPTY,
    "Full": BatteryState.FULL,
    "Charging": BatteryState.CHARGING,
    "Discharging": BatteryState.DISCHARGING,
    "Not charging": BatteryState.IDLE,
}


def prime_cpu_sampler() -> None:
    """Take a throwaway CPU reading (psutil's first non-blocking call returns 0.0)."""
    psutil.cpu_percent(interval=0, percpu=True)


def sample_cpu_percpu() -> list[float]:
    """
    Return per-core CPU usage since the previous call.

    Uses a zero interval so the call never sleeps; a non-zero interval would
    block the event loop for that long.
    """
    return psutil.cpu_percent(interval=0, percpu=True)


def sample_virtual_memory():
    """Return psutil's virtual memory snapshot (``total``, ``used``, ``percent``)."""
    return psutil.virtual_memory()


def _read_value(path: Path) -> str:
    return path.read_text().strip()


def _read_capacity(device: Path) -> tuple[float, float]:
    """Read current/full capacity, preferring energy (uWh) over charge (uAh)."""
    for prefix in ("energy", "charge"):
        now = device / f"{prefix}_now"
        full = device / f"{prefix}_full"
        if now.exists() and full.exists():
            return int(_read_value(now)) / 1e6, int(_read_value(full)) / 1e6
    raise FileNotFoundError(f"no energy_* or charge_* files in {device}")


def _read_sysfs_battery(device: Path) -> Battery:
    current, full = _read_capacity(device)
    status = _read_value(device / "status")
    return Battery(
        current=current,
        full=full,
        state=_SYSFS_STATES.get(status, BatteryState.UNKNOWN),
    )


def _is_battery(device: Path) -> bool:
    try:
        return _read_value(device / "type") == "Battery"
    except OSError:
        return False


def enumerate_sysfs_batteries(root: Path = POWER_SUPPLY_PATH) -> BatteryReport:
    """
    Enumerate batteries under a sysfs power_supply directory.

    Raises:
        FatalBatteryError: If the power_supply directory cannot be listed.
    """
    try:
        devices = sorted(root.iterdir())
    except OSError as exc:
        raise FatalBatteryError(f"cannot list {root}: {exc}") from exc

    batteries: list[Battery] = []
    errors: list[Exception | None] = []

    for device in devices:
        if not _is_battery(device):
            continue
        index = len(batteries)
        try:
            batteries.append(_read_sysfs_battery(device))
            errors.append(None)
        except (OSError, ValueError) as exc:
            # Typically an empty battery bay
            batteries.append(Battery(current=0.0, full=0.0))
            errors.append(PartialBatteryError(index, device.name, exc))

    return BatteryReport(batteries=batteries, errors=errors)


def enumerate_psutil_batteries() -> BatteryReport:
    """
    Enumerate batteries through psutil, which exposes at most one.

    Raises:
        FatalBatteryError: If the platform has no battery support in psutil.
    """
    sensors_battery = getattr(psutil, "sensors_battery", None)
    if sensors_battery is None:
        raise FatalBatteryError("psutil has no battery support on this platform")

    try:
        info = sensors_battery()
    except (OSError, RuntimeError) as exc:
        raise FatalBatteryError(str(exc)) from exc

    if info is None:
        return BatteryReport()

    if info.power_plugged is None:
        state = BatteryState.UNKNOWN
    elif info.power_plugged:
        state = BatteryState.FULL if info.percent >= 100 else BatteryState.CHARGING
    else:
        state = BatteryState.DISCHARGING

    return BatteryReport(
        batteries=[Battery(current=float(info.percent), full=100.0, state=state)],
        errors=[None],
    )


def enumerate_batteries() -> BatteryReport:
    """Enumerate all batteries on this host."""
    if psutil.LINUX:
        return enumerate_sysfs_batteries()
    return enumerate_psutil_batteries()
