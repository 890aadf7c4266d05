"""Scoring of models against a system snapshot."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from llmfit.models import ModelSpec
from llmfit.system.detector import SystemSnapshot

logger = logging.getLogger(__name__)

# Utilization reported when nothing is available to compare against
MAX_UTILIZATION_PCT = 999.0


class RunMode(Enum):
    """How a model would execute on this machine."""

    GPU = "gpu"  # Fully resident in GPU memory
    CPU_OFFLOAD = "cpu_offload"  # GPU present, weights partly in system RAM
    CPU_ONLY = "cpu_only"


class FitLevel(Enum):
    """How comfortably a model fits, best first."""

    PERFECT = "perfect"
    GOOD = "good"
    MARGINAL = "marginal"
    TOO_TIGHT = "too_tight"


RUN_MODE_LABELS: dict[RunMode, str] = {
    RunMode.GPU: "GPU",
    RunMode.CPU_OFFLOAD: "CPU+GPU",
    RunMode.CPU_ONLY: "CPU",
}

FIT_LEVEL_LABELS: dict[FitLevel, str] = {
    FitLevel.PERFECT: "Perfect",
    FitLevel.GOOD: "Good",
    FitLevel.MARGINAL: "Marginal",
    FitLevel.TOO_TIGHT: "Too Tight",
}

# Ranking order for display (best first)
FIT_ORDER: list[FitLevel] = list(FitLevel)
RUN_MODE_ORDER: list[RunMode] = [RunMode.GPU, RunMode.CPU_OFFLOAD, RunMode.CPU_ONLY]


@dataclass(frozen=True)
class FitPolicy:
    """
    Utilization boundaries for each fit level, in percent.

    Bounds are inclusive: utilization equal to perfect_max_pct is Perfect.
    """

    perfect_max_pct: float = 50.0
    good_max_pct: float = 75.0
    marginal_max_pct: float = 95.0
    high_usage_note_pct: float = 90.0

    def level_for(self, utilization_pct: float) -> FitLevel:
        if utilization_pct <= self.perfect_max_pct:
            return FitLevel.PERFECT
        if utilization_pct <= self.good_max_pct:
            return FitLevel.GOOD
        if utilization_pct <= self.marginal_max_pct:
            return FitLevel.MARGINAL
        return FitLevel.TOO_TIGHT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FitPolicy":
        """Build a policy; raises ValueError/TypeError for non-numeric values."""
        return cls(
            perfect_max_pct=float(data.get("perfect_max_pct", 50.0)),
            good_max_pct=float(data.get("good_max_pct", 75.0)),
            marginal_max_pct=float(data.get("marginal_max_pct", 95.0)),
            high_usage_note_pct=float(data.get("high_usage_note_pct", 90.0)),
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "perfect_max_pct": self.perfect_max_pct,
            "good_max_pct": self.good_max_pct,
            "marginal_max_pct": self.marginal_max_pct,
            "high_usage_note_pct": self.high_usage_note_pct,
        }


DEFAULT_POLICY = FitPolicy()


@dataclass(frozen=True)
class FitAssessment:
    """Result of fitting one model to one snapshot."""

    model: ModelSpec
    run_mode: RunMode
    fit_level: FitLevel
    memory_required_gb: float
    memory_available_gb: float
    utilization_pct: float
    notes: tuple[str, ...] = ()

    @property
    def run_mode_text(self) -> str:
        return RUN_MODE_LABELS[self.run_mode]

    @property
    def fit_text(self) -> str:
        return FIT_LEVEL_LABELS[self.fit_level]

    @property
    def is_runnable(self) -> bool:
        """Check if the model fits at all."""
        return self.fit_level != FitLevel.TOO_TIGHT

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model.to_dict(),
            "run_mode": self.run_mode.value,
            "fit_level": self.fit_level.value,
            "memory_required_gb": round(self.memory_required_gb, 2),
            "memory_available_gb": round(self.memory_available_gb, 2),
            "utilization_pct": round(self.utilization_pct, 1),
            "notes": list(self.notes),
        }


class FitFilter(Enum):
    """Filters for a list of assessments."""

    ALL = "all"
    RUNNABLE = "runnable"
    PERFECT = "perfect"
    GOOD = "good"
    MARGINAL = "marginal"

    def matches(self, fit: FitAssessment) -> bool:
        if self == FitFilter.ALL:
            return True
        if self == FitFilter.RUNNABLE:
            return fit.is_runnable
        return fit.fit_level.value == self.value


def select_run_mode(snapshot: SystemSnapshot, model: ModelSpec) -> RunMode:
    """Pick the execution mode a model would use on this system."""
    if model.min_vram_gb is None or not snapshot.has_gpu:
        return RunMode.CPU_ONLY

    gpu_pool = snapshot.gpu_memory_gb
    if gpu_pool is None or gpu_pool <= 0:
        # GPU exists but its capacity cannot be confirmed
        return RunMode.CPU_OFFLOAD
    if gpu_pool >= model.min_vram_gb:
        return RunMode.GPU
    return RunMode.CPU_OFFLOAD


def utilization(required_gb: float, available_gb: float) -> float:
    """Percentage of the pool a requirement would use, clamped to [0, 999]."""
    if available_gb <= 0:
        return MAX_UTILIZATION_PCT
    pct = required_gb / available_gb * 100
    return min(max(pct, 0.0), MAX_UTILIZATION_PCT)


def assess(
    snapshot: SystemSnapshot,
    model: ModelSpec,
    policy: FitPolicy = DEFAULT_POLICY,
) -> FitAssessment:
    """
    Assess how well a model fits a system.

    Pure function of its inputs: safe to call concurrently for any number
    of models against a shared snapshot.

    Args:
        snapshot: Detected system capacity
        model: Model requirements
        policy: Fit-level boundaries

    Returns:
        FitAssessment with run mode, memory accounting, fit level and notes
    """
    run_mode = select_run_mode(snapshot, model)

    if run_mode == RunMode.GPU:
        # select_run_mode only picks GPU when both values are set
        required = model.min_vram_gb or 0.0
        available = snapshot.gpu_memory_gb or 0.0
    else:
        required = model.min_ram_gb
        available = snapshot.available_ram_gb

    utilization_pct = utilization(required, available)
    if available <= 0:
        fit_level = FitLevel.TOO_TIGHT
    else:
        fit_level = policy.level_for(utilization_pct)

    notes = _build_notes(snapshot, model, run_mode, fit_level, utilization_pct, policy)

    return FitAssessment(
        model=model,
        run_mode=run_mode,
        fit_level=fit_level,
        memory_required_gb=required,
        memory_available_gb=available,
        utilization_pct=utilization_pct,
        notes=tuple(notes),
    )


def _build_notes(
    snapshot: SystemSnapshot,
    model: ModelSpec,
    run_mode: RunMode,
    fit_level: FitLevel,
    utilization_pct: float,
    policy: FitPolicy,
) -> list[str]:
    """Advisory text for an assessment, most relevant first."""
    notes: list[str] = []

    if run_mode == RunMode.GPU:
        notes.append("Model fits entirely in GPU memory")
    elif run_mode == RunMode.CPU_OFFLOAD:
        if snapshot.gpu_memory_gb is None:
            notes.append("GPU memory size is unknown; actual performance may vary")
        elif snapshot.gpu_memory_gb <= 0:
            notes.append("GPU shares system memory; layers will be offloaded to RAM")
        else:
            notes.append(
                f"Insufficient VRAM ({snapshot.gpu_memory_gb:.1f} GB < "
                f"{model.min_vram_gb:.1f} GB); some layers will run on the CPU"
            )
    elif model.min_vram_gb is None:
        notes.append("Model has no GPU requirement and runs on the CPU")
    else:
        notes.append("No GPU detected; inference will run on the CPU and be slower")

    if snapshot.unified_memory:
        notes.append("Unified memory: the pool is shared with the OS and other applications")

    if run_mode != RunMode.GPU and snapshot.available_ram_gb < model.recommended_ram_gb:
        notes.append(
            f"Available RAM is below the recommended {model.recommended_ram_gb:.1f} GB"
        )

    if utilization_pct > policy.high_usage_note_pct:
        notes.append("Memory usage is high; close other applications before running")

    if fit_level == FitLevel.TOO_TIGHT:
        notes.append("Not enough memory to run this model comfortably")

    return notes


def rank_key(fit: FitAssessment) -> tuple[int, int, float, str]:
    """Sort key: best fit first, then GPU-first, then lowest utilization."""
    return (
        FIT_ORDER.index(fit.fit_level),
        RUN_MODE_ORDER.index(fit.run_mode),
        fit.utilization_pct,
        fit.model.name.lower(),
    )


def assess_all(
    snapshot: SystemSnapshot,
    models: list[ModelSpec],
    policy: FitPolicy = DEFAULT_POLICY,
) -> list[FitAssessment]:
    """Assess every model and rank the results for display."""
    fits = [assess(snapshot, model, policy) for model in models]
    fits.sort(key=rank_key)
    logger.debug(
        f"Assessed {len(fits)} models, {sum(f.is_runnable for f in fits)} runnable"
    )
    return fits


def filter_fits(
    fits: list[FitAssessment],
    fit_filter: FitFilter = FitFilter.ALL,
    providers: list[str] | None = None,
    search: str | None = None,
) -> list[FitAssessment]:
    """
    Keep the assessments matching every given criterion, preserving order.

    Args:
        fits: Assessments to filter
        fit_filter: Fit-level filter
        providers: Provider names to keep, ignoring case (None keeps all)
        search: Substring matched against name, provider, parameters and use case
    """
    wanted = {p.lower() for p in providers} if providers else None
    query = search.lower().strip() if search else ""

    result = []
    for fit in fits:
        if not fit_filter.matches(fit):
            continue
        if wanted is not None and fit.model.provider.lower() not in wanted:
            continue
        if query and not _matches_search(fit.model, query):
            continue
        result.append(fit)
    return result


def _matches_search(model: ModelSpec, query: str) -> bool:
    fields = (model.name, model.provider, model.parameter_count, model.use_case)
    return any(query in field.lower() for field in fields)
