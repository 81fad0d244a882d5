"""Process memory and device temperature sampling."""

from __future__ import annotations

import logging
import os

import psutil

from src.config import GovernorConfig
from src.models import ThermalLevel

logger = logging.getLogger(__name__)

_TEMP_PATHS = (
    "/sys/class/thermal/thermal_zone0/temp",
    "/sys/class/hwmon/hwmon0/temp1_input",
)


class SystemSampler:
    """Reads resident memory of this process and the hottest CPU sensor."""

    def __init__(self, config: GovernorConfig):
        self._cfg = config
        self._process = psutil.Process()

    def memory_mb(self) -> float:
        return self._process.memory_info().rss / (1024 ** 2)

    def temperature_c(self) -> float | None:
        """Best-effort temperature read; None when no sensor is available."""
        if hasattr(psutil, "sensors_temperatures"):
            try:
                sensors = psutil.sensors_temperatures()
            except OSError:
                sensors = {}
            readings = [t.current for entries in sensors.values() for t in entries
                        if t.current is not None]
            if readings:
                return max(readings)

        for path in _TEMP_PATHS:
            if not os.path.exists(path):
                continue
            try:
                with open(path, "r") as f:
                    raw = f.read().strip()
            except OSError:
                continue
            try:
                # Millidegrees on sysfs
                return float(raw) / 1000.0 if len(raw) > 3 else float(raw)
            except ValueError:
                logger.debug("Unreadable temperature in %s: %r", path, raw)
        return None

    def thermal_level(self) -> ThermalLevel | None:
        temp = self.temperature_c()
        if temp is None:
            return None
        return classify_temperature(temp, self._cfg)


# Network input side per device class
TIER_INPUT_SIZES = {"low": 352, "mid": 512, "high": 640}


def performance_tier() -> str:
    """Coarse device class from logical CPU count and physical memory."""
    cpus = psutil.cpu_count(logical=True) or 1
    memory_gb = psutil.virtual_memory().total / (1024 ** 3)
    if cpus >= 8 and memory_gb >= 8:
        return "high"
    if cpus >= 4 and memory_gb >= 4:
        return "mid"
    return "low"


def classify_temperature(temp_c: float, config: GovernorConfig) -> ThermalLevel:
    if temp_c >= config.temp_critical:
        return ThermalLevel.CRITICAL
    if temp_c >= config.temp_serious:
        return ThermalLevel.SERIOUS
    if temp_c >= config.temp_fair:
        return ThermalLevel.FAIR
    return ThermalLevel.NOMINAL
