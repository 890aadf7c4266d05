"""LLM model descriptors and the built-in catalog."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Error reading a model catalog file."""


@dataclass(frozen=True)
class ModelSpec:
    """Resource requirements and display metadata for one model."""

    name: str
    provider: str
    parameter_count: str
    quantization: str
    context_length: int
    min_ram_gb: float
    recommended_ram_gb: float
    min_vram_gb: float | None = None  # None means usable CPU-only
    use_case: str = ""

    @property
    def needs_gpu(self) -> bool:
        """Check if the model has a GPU memory requirement."""
        return self.min_vram_gb is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelSpec":
        min_vram = data.get("min_vram_gb")
        return cls(
            name=data["name"],
            provider=data.get("provider", "Unknown"),
            parameter_count=str(data.get("parameter_count", "?")),
            quantization=data.get("quantization", ""),
            context_length=int(data.get("context_length", 0)),
            min_ram_gb=float(data["min_ram_gb"]),
            recommended_ram_gb=float(data.get("recommended_ram_gb", data["min_ram_gb"])),
            min_vram_gb=float(min_vram) if min_vram is not None else None,
            use_case=data.get("use_case", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "provider": self.provider,
            "parameter_count": self.parameter_count,
            "quantization": self.quantization,
            "context_length": self.context_length,
            "min_vram_gb": self.min_vram_gb,
            "min_ram_gb": self.min_ram_gb,
            "recommended_ram_gb": self.recommended_ram_gb,
            "use_case": self.use_case,
        }


# Built-in catalog, smallest first
MODELS: list[ModelSpec] = [
    ModelSpec(
        name="TinyLlama-1.1B-Chat",
        provider="TinyLlama",
        parameter_count="1.1B",
        quantization="Q4_K_M",
        context_length=2048,
        min_ram_gb=1.0,
        recommended_ram_gb=2.0,
        use_case="Lightweight chat, testing",
    ),
    ModelSpec(
        name="Phi-3-mini-4k-instruct",
        provider="Microsoft",
        parameter_count="3.8B",
        quantization="Q4_K_M",
        context_length=4096,
        min_ram_gb=3.0,
        recommended_ram_gb=6.0,
        min_vram_gb=3.0,
        use_case="Reasoning, small footprint",
    ),
    ModelSpec(
        name="Mistral-7B-Instruct-v0.3",
        provider="Mistral AI",
        parameter_count="7B",
        quantization="Q4_K_M",
        context_length=32768,
        min_ram_gb=5.0,
        recommended_ram_gb=8.0,
        min_vram_gb=5.0,
        use_case="General chat, instruction following",
    ),
    ModelSpec(
        name="Llama-3.1-8B-Instruct",
        provider="Meta",
        parameter_count="8B",
        quantization="Q4_K_M",
        context_length=131072,
        min_ram_gb=6.0,
        recommended_ram_gb=10.0,
        min_vram_gb=6.0,
        use_case="General chat, long context",
    ),
    ModelSpec(
        name="Qwen2.5-Coder-14B-Instruct",
        provider="Alibaba",
        parameter_count="14B",
        quantization="Q4_K_M",
        context_length=32768,
        min_ram_gb=10.0,
        recommended_ram_gb=16.0,
        min_vram_gb=10.0,
        use_case="Code generation",
    ),
    ModelSpec(
        name="Mixtral-8x7B-Instruct-v0.1",
        provider="Mistral AI",
        parameter_count="46.7B",
        quantization="Q4_K_M",
        context_length=32768,
        min_ram_gb=28.0,
        recommended_ram_gb=36.0,
        min_vram_gb=26.0,
        use_case="Mixture of experts, general chat",
    ),
    ModelSpec(
        name="Llama-3.1-70B-Instruct",
        provider="Meta",
        parameter_count="70B",
        quantization="Q4_K_M",
        context_length=131072,
        min_ram_gb=42.0,
        recommended_ram_gb=64.0,
        min_vram_gb=40.0,
        use_case="High quality chat, reasoning",
    ),
]


def get_model_by_name(name: str, models: list[ModelSpec] | None = None) -> ModelSpec | None:
    """Find a model by name, ignoring case."""
    wanted = name.lower()
    for spec in models if models is not None else MODELS:
        if spec.name.lower() == wanted:
            return spec
    return None


def load_catalog(path: Path) -> list[ModelSpec]:
    """
    Load a model catalog from a JSON file.

    The file holds either a list of model records or an object with a
    "models" list. Records are trusted to be well formed.

    Raises:
        CatalogError: If the file cannot be read or has the wrong shape
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        raise CatalogError(f"Failed to read catalog {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("models")
    if not isinstance(data, list):
        raise CatalogError(f"Catalog {path} must contain a list of models")

    try:
        models = [ModelSpec.from_dict(record) for record in data]
    except (KeyError, TypeError, ValueError) as e:
        raise CatalogError(f"Malformed model record in {path}: {e}") from e

    logger.info(f"Loaded {len(models)} models from {path}")
    return models
