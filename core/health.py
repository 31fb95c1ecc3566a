"""
core/health.py -- Process health snapshot for GET /health.

Each report() samples the live process through psutil: uptime is whole
seconds since the process was created, memory "used" is the resident set
size and "total" is the machine's physical memory, both in whole MB. No
history is kept between calls.

report() never raises. A sampling fault becomes an error snapshot (HTTP 500)
and an error log line.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import psutil

from core.logger import StructuredLogger, utc_timestamp

_MB = 1024 * 1024


@dataclass(frozen=True)
class MemorySample:
    used_bytes: int
    total_bytes: int


@dataclass(frozen=True)
class HealthReport:
    status: str  # "ok" | "error"
    timestamp: str
    version: str
    environment: str
    uptime_seconds: int = 0
    used_mb: int = 0
    total_mb: int = 0
    percentage: int = 0

    @property
    def status_code(self) -> int:
        return 200 if self.status == "ok" else 500


def sample_process_memory() -> MemorySample:
    return MemorySample(
        used_bytes=psutil.Process().memory_info().rss,
        total_bytes=psutil.virtual_memory().total,
    )


def sample_process_uptime() -> float:
    return time.time() - psutil.Process().create_time()


class HealthReporter:
    def __init__(
        self,
        logger: StructuredLogger,
        version: str,
        environment: str,
        memory_sampler: Callable[[], MemorySample] = sample_process_memory,
        uptime_sampler: Callable[[], float] = sample_process_uptime,
    ) -> None:
        self._logger = logger
        self.version = version
        self.environment = environment
        self._sample_memory = memory_sampler
        self._sample_uptime = uptime_sampler

    def report(self, request_id: Optional[str] = None) -> HealthReport:
        start = time.perf_counter()
        try:
            memory = self._sample_memory()
            uptime = max(0, int(self._sample_uptime()))
            used_mb = round(memory.used_bytes / _MB)
            total_mb = round(memory.total_bytes / _MB)
            percentage = round(used_mb / total_mb * 100)
        except Exception as exc:
            self._logger.log_error(exc, "Health check failed", request_id)
            return HealthReport(
                status="error",
                timestamp=utc_timestamp(),
                version=self.version,
                environment=self.environment,
            )

        report = HealthReport(
            status="ok",
            timestamp=utc_timestamp(),
            version=self.version,
            environment=self.environment,
            uptime_seconds=uptime,
            used_mb=used_mb,
            total_mb=total_mb,
            percentage=percentage,
        )
        metadata: dict[str, Any] = {
            "responseTimeMs": round((time.perf_counter() - start) * 1000, 2),
            "memoryUsedMB": used_mb,
            "uptimeSeconds": uptime,
        }
        self._logger.log_health_check(report.status, metadata, request_id)
        return report
