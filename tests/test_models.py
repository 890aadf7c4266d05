"""Tests for model definitions and catalog loading."""

import json

import pytest

from llmfit.models import (
    MODELS,
    CatalogError,
    ModelSpec,
    get_model_by_name,
    load_catalog,
)


class TestModelSpec:
    """Tests for ModelSpec dataclass."""

    def test_spec_creation(self):
        spec = ModelSpec(
            name="test-model",
            provider="Test",
            parameter_count="7B",
            quantization="Q4_K_M",
            context_length=4096,
            min_ram_gb=6.0,
            recommended_ram_gb=8.0,
        )
        assert spec.min_vram_gb is None
        assert spec.use_case == ""
        assert not spec.needs_gpu

    def test_from_dict(self):
        spec = ModelSpec.from_dict({
            "name": "Llama-3.1-8B",
            "provider": "Meta",
            "parameter_count": "8B",
            "quantization": "Q4_K_M",
            "context_length": 131072,
            "min_vram_gb": 6,
            "min_ram_gb": 6,
            "recommended_ram_gb": 10,
            "use_case": "Chat",
        })
        assert spec.min_vram_gb == 6.0
        assert spec.needs_gpu
        assert spec.recommended_ram_gb == 10.0

    def test_from_dict_defaults(self):
        spec = ModelSpec.from_dict({"name": "bare", "min_ram_gb": 2})
        assert spec.min_vram_gb is None
        assert spec.recommended_ram_gb == 2.0
        assert spec.provider == "Unknown"

    def test_dict_round_trip(self):
        spec = MODELS[2]
        assert ModelSpec.from_dict(spec.to_dict()) == spec


class TestCatalog:
    """Tests for the built-in catalog."""

    def test_names_unique(self):
        names = [spec.name for spec in MODELS]
        assert len(names) == len(set(names))

    def test_recommended_at_least_minimum(self):
        for spec in MODELS:
            assert spec.recommended_ram_gb >= spec.min_ram_gb

    def test_has_cpu_only_model(self):
        assert any(not spec.needs_gpu for spec in MODELS)


class TestGetModelByName:
    """Tests for get_model_by_name."""

    def test_case_insensitive(self):
        spec = get_model_by_name("mistral-7b-instruct-v0.3")
        assert spec is not None
        assert spec.provider == "Mistral AI"

    def test_unknown_returns_none(self):
        assert get_model_by_name("unknown/model") is None

    def test_custom_list(self):
        custom = [ModelSpec.from_dict({"name": "mine", "min_ram_gb": 1})]
        assert get_model_by_name("MINE", custom) is custom[0]
        assert get_model_by_name("TinyLlama-1.1B-Chat", custom) is None


class TestLoadCatalog:
    """Tests for load_catalog."""

    def test_load_list(self, tmp_path):
        path = tmp_path / "models.json"
        path.write_text(json.dumps([spec.to_dict() for spec in MODELS]))
        assert load_catalog(path) == MODELS

    def test_load_wrapped(self, tmp_path):
        path = tmp_path / "models.json"
        path.write_text(json.dumps({"models": [{"name": "a", "min_ram_gb": 1}]}))
        models = load_catalog(path)
        assert [spec.name for spec in models] == ["a"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_catalog(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "models.json"
        path.write_text("not json")
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "models.json"
        path.write_text(json.dumps({"name": "a"}))
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_missing_required_field(self, tmp_path):
        path = tmp_path / "models.json"
        path.write_text(json.dumps([{"provider": "nameless"}]))
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_non_utf8_file(self, tmp_path):
        path = tmp_path / "models.json"
        path.write_bytes(b"\xff\xfe[]")
        with pytest.raises(CatalogError):
            load_catalog(path)
