"""Tests for configuration handling."""

import json
import tempfile
from pathlib import Path

from llmfit.config import Config
from llmfit.fit import FitPolicy


class TestConfig:
    """Tests for Config dataclass."""

    def test_defaults(self):
        config = Config()
        assert config.policy == FitPolicy()
        assert config.probe_timeout == 5.0
        assert config.catalog_path is None

    def test_from_dict(self):
        data = {
            "policy": {
                "perfect_max_pct": 40,
                "good_max_pct": 70,
            },
            "probe_timeout": 2.0,
            "catalog_path": "/tmp/models.json",
        }
        config = Config.from_dict(data)
        assert config.policy.perfect_max_pct == 40
        assert config.policy.good_max_pct == 70
        assert config.policy.marginal_max_pct == 95.0
        assert config.probe_timeout == 2.0
        assert config.catalog_path == Path("/tmp/models.json")

    def test_to_dict(self):
        data = Config().to_dict()

        assert "policy" in data
        assert data["policy"]["marginal_max_pct"] == 95.0
        assert data["catalog_path"] is None

    def test_load_and_save(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"

            # Create config
            config = Config(probe_timeout=1.5)
            config.save(config_path)

            # Load it back
            loaded = Config.load(config_path)
            assert loaded.probe_timeout == 1.5
            assert loaded.policy == config.policy

    def test_load_missing_file(self):
        config = Config.load(Path("/nonexistent/config.json"))
        # Should return defaults
        assert config.probe_timeout == 5.0

    def test_load_corrupt_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json")
        config = Config.load(config_path)
        assert config.policy == FitPolicy()

    def test_load_non_object_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps([1, 2]))
        config = Config.load(config_path)
        assert config.policy == FitPolicy()
        assert config.probe_timeout == 5.0

    def test_load_non_utf8_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_bytes(b"\xff\xfe{}")
        config = Config.load(config_path)
        assert config.probe_timeout == 5.0

    def test_load_non_numeric_threshold(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"policy": {"perfect_max_pct": "lots"}}))
        config = Config.load(config_path)
        assert config.policy == FitPolicy()

    def test_load_non_numeric_timeout(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"probe_timeout": "soon"}))
        config = Config.load(config_path)
        assert config.probe_timeout == 5.0

    def test_load_policy_not_object(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"policy": [50, 75, 95]}))
        config = Config.load(config_path)
        assert config.policy == FitPolicy()

    def test_numeric_strings_are_coerced(self):
        config = Config.from_dict({"policy": {"perfect_max_pct": "40"}, "probe_timeout": "2"})
        assert config.policy.perfect_max_pct == 40.0
        assert config.policy.level_for(45.0).value == "good"
        assert config.probe_timeout == 2.0

    def test_load_skips_bad_file_for_next(self, tmp_path, monkeypatch):
        from llmfit import config as config_module

        bad = tmp_path / "bad.json"
        bad.write_text("[]")
        good = tmp_path / "good.json"
        good.write_text(json.dumps({"probe_timeout": 3}))
        monkeypatch.setattr(config_module, "CONFIG_PATHS", [bad, good])

        assert Config.load().probe_timeout == 3.0

    def test_validate_valid_config(self):
        config = Config()
        issues = config.validate()
        assert len(issues) == 0

    def test_validate_thresholds_out_of_order(self):
        config = Config(policy=FitPolicy(perfect_max_pct=80.0, good_max_pct=75.0))
        issues = config.validate()
        assert any("increase" in issue for issue in issues)

    def test_validate_threshold_range(self):
        config = Config(policy=FitPolicy(perfect_max_pct=0.0))
        issues = config.validate()
        assert any("perfect_max_pct" in issue for issue in issues)

    def test_validate_timeout(self):
        config = Config(probe_timeout=0)
        issues = config.validate()
        assert any("timeout" in issue for issue in issues)

    def test_validate_missing_catalog(self, tmp_path):
        config = Config(catalog_path=tmp_path / "missing.json")
        issues = config.validate()
        assert any("Catalog" in issue for issue in issues)
