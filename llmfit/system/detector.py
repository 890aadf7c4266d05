"""System resource detection: CPU, RAM and GPU capacity."""

import logging
from dataclasses import dataclass
from typing import Any

import cpuinfo
import psutil

from llmfit.system.probes import (
    DEFAULT_TIMEOUT_S,
    CommandRunner,
    GpuInfo,
    GpuProbe,
    default_probes,
    run_command,
)

logger = logging.getLogger(__name__)

UNKNOWN_CPU = "Unknown CPU"

BYTES_PER_GB = 1024**3


@dataclass(frozen=True)
class SystemSnapshot:
    """One-time capture of the machine's capacity."""

    total_ram_gb: float
    available_ram_gb: float
    total_cpu_cores: int
    cpu_name: str = UNKNOWN_CPU
    has_gpu: bool = False
    gpu_memory_gb: float | None = None
    unified_memory: bool = False
    gpu_name: str | None = None

    def __post_init__(self) -> None:
        if self.available_ram_gb > self.total_ram_gb:
            raise ValueError(
                f"available RAM {self.available_ram_gb} GB exceeds total {self.total_ram_gb} GB"
            )
        if self.unified_memory and not self.has_gpu:
            raise ValueError("unified memory requires a GPU")
        if self.gpu_memory_gb is not None and not self.has_gpu:
            raise ValueError("GPU memory set without a GPU")

    @property
    def gpu_summary(self) -> str:
        """Human-readable GPU line."""
        if not self.has_gpu:
            return "GPU: Not detected"
        if self.unified_memory:
            label = self.gpu_name or "Apple Silicon"
            return f"GPU: {label} (unified memory, {self.gpu_memory_gb or 0.0:.2f} GB shared)"
        if self.gpu_memory_gb is None:
            return f"GPU: {self.gpu_name or 'Detected'} (VRAM unknown)"
        if self.gpu_memory_gb > 0:
            return f"GPU: {self.gpu_name or 'Detected'} ({self.gpu_memory_gb:.2f} GB VRAM)"
        return f"GPU: {self.gpu_name or 'Integrated'} (shared system memory)"

    def summary_lines(self) -> list[str]:
        return [
            f"CPU: {self.cpu_name} ({self.total_cpu_cores} cores)",
            f"Total RAM: {self.total_ram_gb:.2f} GB",
            f"Available RAM: {self.available_ram_gb:.2f} GB",
            self.gpu_summary,
        ]

    def __str__(self) -> str:
        return "\n".join(self.summary_lines())

    def to_dict(self) -> dict[str, Any]:
        return {
            "cpu_name": self.cpu_name,
            "total_cpu_cores": self.total_cpu_cores,
            "total_ram_gb": round(self.total_ram_gb, 2),
            "available_ram_gb": round(self.available_ram_gb, 2),
            "has_gpu": self.has_gpu,
            "gpu_name": self.gpu_name,
            "gpu_memory_gb": round(self.gpu_memory_gb, 2) if self.gpu_memory_gb is not None else None,
            "unified_memory": self.unified_memory,
        }


class SystemDetector:
    """
    Detects system resources for model fitting.

    Detection is best-effort: every signal that cannot be read falls back
    to a default, and detect() never raises.
    """

    def __init__(
        self,
        probes: list[GpuProbe] | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        runner: CommandRunner = run_command,
    ) -> None:
        self.probes = probes if probes is not None else default_probes(runner, timeout)

    def detect(self) -> SystemSnapshot:
        """Take a snapshot of the current system."""
        total_ram_gb, available_ram_gb = self._get_memory()
        gpu = self._detect_gpu(available_ram_gb)

        return SystemSnapshot(
            total_ram_gb=total_ram_gb,
            available_ram_gb=available_ram_gb,
            total_cpu_cores=self._get_cpu_cores(),
            cpu_name=self._get_cpu_name(),
            has_gpu=gpu is not None,
            gpu_memory_gb=gpu.memory_gb if gpu else None,
            unified_memory=gpu.unified_memory if gpu else False,
            gpu_name=gpu.name if gpu else None,
        )

    def _get_memory(self) -> tuple[float, float]:
        """Get total and available memory in GB."""
        try:
            memory = psutil.virtual_memory()
        except (OSError, RuntimeError) as e:
            logger.warning(f"Failed to read system memory: {e}")
            return 0.0, 0.0

        total = memory.total / BYTES_PER_GB
        available = min(memory.available / BYTES_PER_GB, total)
        return total, available

    def _get_cpu_cores(self) -> int:
        return psutil.cpu_count(logical=True) or 1

    def _get_cpu_name(self) -> str:
        """Get the CPU brand string via py-cpuinfo."""
        try:
            brand = cpuinfo.get_cpu_info().get("brand_raw")
        except Exception as e:
            logger.warning(f"Failed to get CPU name: {e}")
            return UNKNOWN_CPU
        return brand.strip() if brand and brand.strip() else UNKNOWN_CPU

    def _detect_gpu(self, available_ram_gb: float) -> GpuInfo | None:
        """Run the probe cascade; the first positive result wins."""
        for probe in self.probes:
            gpu = probe.probe(available_ram_gb)
            if gpu is not None:
                logger.info(f"GPU found by {probe.name} probe: {gpu}")
                return gpu
            logger.debug(f"{probe.name} probe: no GPU")
        return None


def detect_system(timeout: float = DEFAULT_TIMEOUT_S) -> SystemSnapshot:
    """Convenience function to take a system snapshot."""
    return SystemDetector(timeout=timeout).detect()
