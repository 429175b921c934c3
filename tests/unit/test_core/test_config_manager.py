"""
Unit tests for ConfigManager and the configuration models.
"""

from pathlib import Path

import pytest
import yaml

from famtasks.core.config_manager import AppConfig, ConfigManager, FamilyMember, LLMConfig
from famtasks.core.error_handler import ConfigurationError
from tests.fixtures.sample_data import SAMPLE_CONFIGURATIONS


SHIPPED_CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


class TestAppConfigModel:
    """Test suite for configuration models"""

    @pytest.mark.unit
    def test_defaults(self):
        """Test default configuration values and rosters"""
        config = AppConfig()
        assert config.app_name == "FamTasks"
        assert config.parser.hebrew_threshold == 0.3
        assert config.parser.driving_from == "home"
        assert config.llm.enabled is False
        assert {m.name for m in config.family_members} == {"Eyal", "Ella", "Hilly", "Yael", "Alon"}
        assert "kindergarten" in {p.name for p in config.known_places}

    @pytest.mark.unit
    def test_base_url_trailing_slash_stripped(self):
        assert LLMConfig(base_url="http://localhost:11434/").base_url == "http://localhost:11434"

    @pytest.mark.unit
    def test_base_url_scheme_required(self):
        with pytest.raises(ValueError):
            LLMConfig(base_url="localhost:11434")

    @pytest.mark.unit
    def test_blank_member_name_rejected(self):
        with pytest.raises(ValueError):
            FamilyMember(name="  ")

    @pytest.mark.unit
    def test_duplicate_members_rejected(self):
        with pytest.raises(ValueError):
            AppConfig(family_members=[FamilyMember(name="Alon"), FamilyMember(name="alon")])


class TestConfigManager:
    """Test suite for hierarchical configuration loading"""

    @pytest.mark.unit
    def test_missing_directory_gives_defaults(self, tmp_path):
        """Test that no config files still yields a valid configuration"""
        manager = ConfigManager(config_path=tmp_path / "missing", environment="development")
        config = manager.load_config()
        assert config.app_name == "FamTasks"
        assert config.environment == "development"

    @pytest.mark.unit
    def test_environment_file_overrides_default(self, temp_config_dir):
        """Test that testing.yaml is merged over default_config.yaml"""
        config = ConfigManager(config_path=temp_config_dir, environment="testing").load_config()

        assert config.app_name == "FamTasks-Test"
        assert config.environment == "testing"
        assert config.llm.enabled is True
        assert config.llm.preferred_models == ["llama3.1:8b"]
        # Untouched keys of a merged section survive
        assert config.llm.timeout == 5
        assert config.logging.level == "DEBUG"

    @pytest.mark.unit
    def test_local_file_has_highest_file_precedence(self, temp_config_dir):
        with open(temp_config_dir / "local.yaml", "w", encoding="utf-8") as f:
            yaml.safe_dump({"llm": {"timeout": 9}}, f)

        config = ConfigManager(config_path=temp_config_dir, environment="testing").load_config()
        assert config.llm.timeout == 9
        assert config.llm.enabled is True

    @pytest.mark.unit
    def test_env_overrides(self, temp_config_dir, monkeypatch):
        """Test FAMTASKS_<SECTION>_<KEY> overrides with type conversion"""
        monkeypatch.setenv("FAMTASKS_LLM_BASE_URL", "http://ollama:11434/")
        monkeypatch.setenv("FAMTASKS_LLM_ENABLED", "false")
        monkeypatch.setenv("FAMTASKS_PARSER_HEBREW_THRESHOLD", "0.5")
        monkeypatch.setenv("FAMTASKS_LLM_PREFERRED_MODELS", "a:1, b:2")

        config = ConfigManager(config_path=temp_config_dir, environment="testing").load_config()

        assert config.llm.base_url == "http://ollama:11434"
        assert config.llm.enabled is False
        assert config.parser.hebrew_threshold == 0.5
        assert config.llm.preferred_models == ["a:1", "b:2"]

    @pytest.mark.unit
    def test_env_selects_environment(self, temp_config_dir, monkeypatch):
        monkeypatch.setenv("FAMTASKS_ENV", "testing")
        manager = ConfigManager(config_path=temp_config_dir)
        assert manager.environment == "testing"
        assert manager.load_config().llm.enabled is True

    @pytest.mark.unit
    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "default_config.yaml").write_text("parser: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            ConfigManager(config_path=tmp_path).load_config()

    @pytest.mark.unit
    def test_non_mapping_yaml(self, tmp_path):
        (tmp_path / "default_config.yaml").write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            ConfigManager(config_path=tmp_path).load_config()

    @pytest.mark.unit
    def test_invalid_values(self, tmp_path):
        """Test that out-of-range values raise ConfigurationError"""
        with open(tmp_path / "default_config.yaml", "w", encoding="utf-8") as f:
            yaml.safe_dump(SAMPLE_CONFIGURATIONS["invalid"], f)

        with pytest.raises(ConfigurationError):
            ConfigManager(config_path=tmp_path).load_config()

    @pytest.mark.unit
    def test_load_is_cached(self, temp_config_dir):
        manager = ConfigManager(config_path=temp_config_dir, environment="testing")
        first = manager.load_config()
        assert manager.load_config() is first
        assert manager.reload_config() is not first

    @pytest.mark.unit
    def test_validate_config(self, temp_config_dir):
        """Test validation without applying"""
        manager = ConfigManager(config_path=temp_config_dir)
        assert manager.validate_config({}) == []

        errors = manager.validate_config({"parser": {"hebrew_threshold": 2.5}})
        assert len(errors) == 1
        assert errors[0].startswith("parser.hebrew_threshold")

    @pytest.mark.unit
    def test_export_config(self, temp_config_dir, tmp_path):
        manager = ConfigManager(config_path=temp_config_dir, environment="testing")
        target = tmp_path / "out" / "exported.yaml"
        manager.export_config(target)

        with open(target, encoding="utf-8") as f:
            exported = yaml.safe_load(f)
        assert exported["app_name"] == "FamTasks-Test"
        assert exported["llm"]["preferred_models"] == ["llama3.1:8b"]
        assert any(m["name_localized"] == "אלון" for m in exported["family_members"])

    @pytest.mark.unit
    def test_shipped_config_carries_rosters(self):
        """Test that config/default_config.yaml lists the same rosters as the model defaults"""
        with open(SHIPPED_CONFIG_DIR / "default_config.yaml", encoding="utf-8") as f:
            shipped = yaml.safe_load(f)
        assert {"family_members", "known_places"} <= set(shipped)

        config = ConfigManager(config_path=SHIPPED_CONFIG_DIR, environment="development").load_config()
        defaults = AppConfig()
        assert config.family_members == defaults.family_members
        assert config.known_places == defaults.known_places
