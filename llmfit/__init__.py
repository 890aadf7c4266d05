"""llmfit: check which LLMs this machine can run locally."""

__version__ = "0.1.0"

from llmfit.fit import FitAssessment, FitLevel, FitPolicy, RunMode, assess
from llmfit.models import ModelSpec
from llmfit.system.detector import SystemSnapshot, detect_system

__all__ = [
    "__version__",
    "FitAssessment",
    "FitLevel",
    "FitPolicy",
    "RunMode",
    "assess",
    "ModelSpec",
    "SystemSnapshot",
    "detect_system",
]
