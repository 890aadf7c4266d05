"""System capability detection."""

from llmfit.system.detector import SystemDetector, SystemSnapshot, detect_system
from llmfit.system.probes import GpuInfo, GpuProbe

__all__ = ["SystemDetector", "SystemSnapshot", "detect_system", "GpuInfo", "GpuProbe"]
