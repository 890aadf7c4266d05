"""GPU probes, tried in priority order by the system detector."""

import logging
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Default limit for any external diagnostic tool
DEFAULT_TIMEOUT_S = 5.0

# PCI vendor id for Intel, as exposed by sysfs
INTEL_VENDOR_ID = "0x8086"

DRM_ROOT = Path("/sys/class/drm")

BYTES_PER_GB = 1024**3
MIB_PER_GB = 1024

# (argv, timeout) -> stdout, or None when the command is unusable
CommandRunner = Callable[[list[str], float], str | None]


def run_command(args: list[str], timeout: float = DEFAULT_TIMEOUT_S) -> str | None:
    """
    Run a diagnostic command and return its stdout.

    Returns None if the tool is missing, exits non-zero, times out or
    prints something that is not UTF-8.
    """
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            check=True,
            timeout=timeout,
        )
        return result.stdout.decode("utf-8")
    except FileNotFoundError:
        logger.debug(f"{args[0]} not found")
    except subprocess.TimeoutExpired:
        logger.debug(f"{args[0]} timed out after {timeout}s")
    except subprocess.CalledProcessError as e:
        logger.debug(f"{args[0]} exited with status {e.returncode}")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"{args[0]} failed: {e}")
    return None


@dataclass(frozen=True)
class GpuInfo:
    """Positive result of a GPU probe."""

    memory_gb: float | None  # None: size unknown, 0.0: shares system memory
    unified_memory: bool = False
    name: str | None = None


class GpuProbe(ABC):
    """A single GPU detection strategy."""

    name = "gpu"

    def __init__(
        self,
        runner: CommandRunner = run_command,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.runner = runner
        self.timeout = float(timeout)

    def _run(self, *args: str) -> str | None:
        return self.runner(list(args), self.timeout)

    @abstractmethod
    def probe(self, available_ram_gb: float) -> GpuInfo | None:
        """
        Look for a GPU.

        Args:
            available_ram_gb: Available system RAM, for shared-memory GPUs

        Returns:
            GpuInfo if a GPU was found, otherwise None
        """
        ...


class NvidiaProbe(GpuProbe):
    """Discrete NVIDIA GPU via nvidia-smi."""

    name = "nvidia"

    def probe(self, available_ram_gb: float) -> GpuInfo | None:
        output = self._run(
            "nvidia-smi",
            "--query-gpu=name,memory.total",
            "--format=csv,noheader,nounits",
        )
        if not output or not output.strip():
            return None

        # One line per GPU; only the first is considered
        first = output.strip().splitlines()[0]
        gpu_name, _, memory = first.rpartition(",")
        try:
            memory_mib = float(memory.strip())
        except ValueError:
            logger.debug(f"Unparsable nvidia-smi memory value: {memory!r}")
            return None

        return GpuInfo(
            memory_gb=memory_mib / MIB_PER_GB,
            name=gpu_name.strip() or None,
        )


class RocmProbe(GpuProbe):
    """AMD GPU via rocm-smi. Memory size is not read on this path."""

    name = "rocm"

    def probe(self, available_ram_gb: float) -> GpuInfo | None:
        if self._run("rocm-smi", "--showmeminfo", "vram") is None:
            return None
        return GpuInfo(memory_gb=None, name="AMD GPU")


class IntelProbe(GpuProbe):
    """
    Intel GPUs via the DRM sysfs tree, then lspci.

    Discrete Arc cards expose their VRAM size in sysfs. Integrated Arc
    graphics have no dedicated pool and are reported with 0.0 GB.
    """

    name = "intel"

    def __init__(
        self,
        runner: CommandRunner = run_command,
        timeout: float = DEFAULT_TIMEOUT_S,
        drm_root: Path = DRM_ROOT,
    ) -> None:
        super().__init__(runner, timeout)
        self.drm_root = drm_root

    def probe(self, available_ram_gb: float) -> GpuInfo | None:
        vram_gb = self._read_sysfs_vram()
        if vram_gb is not None:
            return GpuInfo(memory_gb=vram_gb, name="Intel Arc")

        if self._lspci_has_arc():
            return GpuInfo(memory_gb=0.0, name="Intel Arc")

        return None

    def _read_sysfs_vram(self) -> float | None:
        """Return VRAM of the first Intel card that reports a nonzero size."""
        try:
            cards = sorted(self.drm_root.iterdir())
        except OSError as e:
            logger.debug(f"Cannot list {self.drm_root}: {e}")
            return None

        for card in cards:
            device = card / "device"
            try:
                vendor = (device / "vendor").read_text().strip()
            except OSError:
                continue
            if vendor != INTEL_VENDOR_ID:
                continue

            try:
                vram_bytes = int((device / "mem_info_vram_total").read_text().strip())
            except (OSError, ValueError):
                continue
            if vram_bytes > 0:
                return vram_bytes / BYTES_PER_GB

        return None

    def _lspci_has_arc(self) -> bool:
        output = self._run("lspci")
        if output is None:
            return False
        for line in output.splitlines():
            lower = line.lower()
            if "intel" in lower and "arc" in lower:
                return True
        return False


class AppleSiliconProbe(GpuProbe):
    """
    Apple Silicon GPU via system_profiler.

    The GPU shares system RAM, so the available RAM at detection time is
    reported as the GPU pool.
    """

    name = "apple"

    def probe(self, available_ram_gb: float) -> GpuInfo | None:
        output = self._run("system_profiler", "SPDisplaysDataType")
        if output is None:
            return None

        for line in output.splitlines():
            lower = line.lower()
            if "apple m" in lower or "apple gpu" in lower:
                # Either "Chipset Model: Apple M2" or an "Apple M2:" section header
                key, _, value = line.partition(":")
                label = value.strip() or key.strip()
                return GpuInfo(
                    memory_gb=available_ram_gb,
                    unified_memory=True,
                    name=label or "Apple Silicon",
                )
        return None


def default_probes(
    runner: CommandRunner = run_command,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> list[GpuProbe]:
    """The probe cascade in priority order."""
    return [
        NvidiaProbe(runner, timeout),
        RocmProbe(runner, timeout),
        IntelProbe(runner, timeout),
        AppleSiliconProbe(runner, timeout),
    ]
