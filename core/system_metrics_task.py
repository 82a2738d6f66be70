"""Host resource gauges refreshed in the background."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import psutil

from core.background_task import BackgroundTask

if TYPE_CHECKING:
    from infrastructure.exposition import SystemGauges


class SystemMetricsTask(BackgroundTask):
    """Update CPU count, load average and total memory gauges."""

    def __init__(self, *, gauges: SystemGauges, **kw) -> None:
        super().__init__(name="SystemMetrics", **kw)
        self.gauges = gauges

    @staticmethod
    def read_system_values() -> dict[str, float]:
        values: dict[str, float] = {}
        try:
            cpu_count = psutil.cpu_count()
            if cpu_count is not None:
                values["cpu_cores"] = float(cpu_count)
        except Exception as exc:
            logging.debug(f"psutil.cpu_count failed: {exc}")
        try:
            values["load_average"] = float(psutil.getloadavg()[0])
        except (AttributeError, OSError) as exc:
            logging.debug(f"psutil.getloadavg failed: {exc}")
        try:
            values["memory_total"] = float(psutil.virtual_memory().total)
        except Exception as exc:
            logging.debug(f"psutil.virtual_memory failed: {exc}")
        return values

    async def execute(self) -> None:
        values = await self.run_blocking(self.read_system_values)
        self.gauges.update(values)
