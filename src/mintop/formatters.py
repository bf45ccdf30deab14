"""Metric formatters: turn one sampler reading into one line of display text."""

import logging
import math
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

from mintop.errors import FatalBatteryError
from mintop.models import BatteryReport, BatterySample, CpuSample, MemorySample
from mintop.samplers import enumerate_batteries, sample_cpu_percpu, sample_virtual_memory

logger = logging.getLogger(__name__)

BYTES_PER_GB = 1_000_000_000


class ErrorPolicy(Enum):
    """What a formatter does when its sampler fails."""

    DEGRADE = "degrade"  # Log at debug and render zeroed values
    RAISE = "raise"


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round non-negative values half away from zero (``round`` uses banker's rounding)."""
    scale = 10**ndigits
    return math.floor(value * scale + 0.5) / scale


def format_number(value: float) -> str:
    """Format a number without a trailing ``.0`` for whole values."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def bytes_to_gb(size: int) -> float:
    """Convert bytes to decimal gigabytes, rounded to one decimal place."""
    return round_half_up(size / BYTES_PER_GB, 1)


def summarize_cpu(per_core: Sequence[float]) -> CpuSample:
    """Average per-core percentages into a single sample."""
    cores = len(per_core)
    if cores == 0:
        return CpuSample(usage=0, cores=0)
    return CpuSample(usage=int(round_half_up(sum(per_core) / cores)), cores=cores)


def summarize_memory(total: int, used: int, percent: float) -> MemorySample:
    """Build a memory sample from raw byte counts and the used percentage."""
    return MemorySample(
        percent=int(round_half_up(percent)),
        used_gb=bytes_to_gb(used),
        total_gb=bytes_to_gb(total),
    )


def summarize_batteries(report: BatteryReport) -> BatterySample | None:
    """
    Reduce a battery report to the values of its last readable battery.

    Batteries with a partial error are skipped. Each readable battery overwrites
    the previous one, so with several batteries only the last one is reported.
    Returns None when the report holds no batteries at all.
    """
    if not report.batteries:
        return None

    charge = 0
    state = None
    for index, battery in enumerate(report.batteries):
        if report.error_for(index) is not None:
            continue
        charge = int(round_half_up(battery.current / battery.full * 100)) if battery.full else 0
        state = battery.state
    return BatterySample(percent=charge, state=state)


def format_cpu(sample: CpuSample) -> str:
    return f"CPU Usage: {sample.usage}% ({sample.cores} cores)\n"


def format_memory(sample: MemorySample) -> str:
    return (
        f"Memory Usage: {sample.percent}% "
        f"({format_number(sample.used_gb)}GB/{format_number(sample.total_gb)}GB)\n"
    )


def format_battery(sample: BatterySample | None) -> str:
    if sample is None:
        return ""
    state = str(sample.state) if sample.state is not None else ""
    return f"Battery Left: {sample.percent}% ({state})\n"


def get_cpu_usage(
    sampler: Callable[[], Sequence[float]] = sample_cpu_percpu,
    policy: ErrorPolicy = ErrorPolicy.DEGRADE,
) -> str:
    """Return the CPU line: average usage across cores and the core count."""
    try:
        per_core = sampler()
    except Exception:
        if policy is ErrorPolicy.RAISE:
            raise
        logger.debug("CPU sampler failed, reporting zero usage", exc_info=True)
        per_core = []
    return format_cpu(summarize_cpu(per_core))


def get_memory_usage(
    sampler: Callable[[], Any] = sample_virtual_memory,
    policy: ErrorPolicy = ErrorPolicy.DEGRADE,
) -> str:
    """Return the memory line: used percentage and used/total in GB."""
    try:
        memory = sampler()
        sample = summarize_memory(memory.total, memory.used, memory.percent)
    except Exception:
        if policy is ErrorPolicy.RAISE:
            raise
        logger.debug("Memory sampler failed, reporting zeroed snapshot", exc_info=True)
        sample = summarize_memory(0, 0, 0.0)
    return format_memory(sample)


def get_battery_usage(
    sampler: Callable[[], BatteryReport] = enumerate_batteries,
    policy: ErrorPolicy = ErrorPolicy.DEGRADE,
) -> str:
    """
    Return the battery line, or an empty string when there is nothing to show.

    A fatal enumeration error always omits the line regardless of policy: it
    means the host has no usable battery subsystem (e.g. a desktop).
    """
    try:
        report = sampler()
    except FatalBatteryError:
        logger.debug("Battery enumeration unavailable", exc_info=True)
        return ""
    except Exception:
        if policy is ErrorPolicy.RAISE:
            raise
        logger.debug("Battery sampler failed, omitting battery line", exc_info=True)
        return ""
    return format_battery(summarize_batteries(report))
