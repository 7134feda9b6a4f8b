from pathlib import Path

import pytest
import yaml

from refpack import setup_config
from refpack.constants import DEFAULT_FILTER_RULES, DEFAULT_MAX_LIST
from refpack.exceptions import ConfigFileError, ConfigValidationError


def _write_config(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


class TestLoadConfig:
    def test_missing_default_file_is_empty(self):
        assert setup_config.load_config() == {}

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigFileError):
            setup_config.load_config(str(tmp_path / "nope.yaml"))

    def test_reads_default_location(self):
        _write_config(Path(setup_config.CONFIG_FILE), {"MAX_LIST": 5})
        assert setup_config.load_config() == {"max_list": 5}

    def test_maps_keys_case_insensitively(self, tmp_path):
        path = _write_config(
            tmp_path / "c.yaml",
            {"dev_prefix": "105", "FILTER_RULES": ["vr"], "Output_Dir": "/tmp/x"},
        )
        assert setup_config.load_config(path) == {
            "dev_prefix": "105",
            "filter_rules": ["vr"],
            "output_dir": "/tmp/x",
        }

    def test_unknown_keys_ignored(self, tmp_path):
        path = _write_config(tmp_path / "c.yaml", {"NTFY_TOPIC": "x", "SILENT": True})
        assert setup_config.load_config(path) == {"silent": True}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("", encoding="utf-8")
        assert setup_config.load_config(str(path)) == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("MAX_LIST: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigFileError):
            setup_config.load_config(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigFileError):
            setup_config.load_config(str(path))


class TestSettingsFromEnvironment:
    def test_empty(self):
        assert setup_config.settings_from_environment({}) == {}

    def test_all_switches(self):
        overrides = setup_config.settings_from_environment(
            {
                "MAX_LIST": "7",
                "DEV_PREFIX": " 105 ",
                "SKIP_DOWNLOAD": "1",
                "SILENT": "1",
                "GITHUB_TOKEN": " tok ",
            }
        )
        assert overrides == {
            "max_list": 7,
            "dev_prefix": "105",
            "skip_download": True,
            "silent": True,
            "github_token": "tok",
        }

    @pytest.mark.parametrize("value", ["abc", "0", "-3"])
    def test_invalid_max_list_ignored(self, value):
        assert "max_list" not in setup_config.settings_from_environment({"MAX_LIST": value})

    @pytest.mark.parametrize("value", ["0", "true", "yes", ""])
    def test_switches_need_exactly_one(self, value):
        overrides = setup_config.settings_from_environment(
            {"SKIP_DOWNLOAD": value, "SILENT": value}
        )
        assert overrides == {}


class TestBuildSettings:
    def test_defaults(self):
        settings = setup_config.build_settings()
        assert settings.max_list == DEFAULT_MAX_LIST
        assert settings.filter_rules == DEFAULT_FILTER_RULES
        assert settings.root_prefix == "MHWILDS/"
        assert settings.product_name == "REFramework"
        assert settings.asset_name == "MHWILDS.zip"
        assert settings.skip_download is False
        assert settings.silent is False
        assert settings.output_dir == Path.cwd()
        assert settings.delivery_dir == Path(setup_config.get_downloads_dir())

    def test_later_layers_win(self):
        settings = setup_config.build_settings(
            {"max_list": 3, "dev_prefix": "10"},
            {"max_list": 4},
            {"max_list": 5, "dev_prefix": None},
        )
        assert settings.max_list == 5
        assert settings.dev_prefix == "10"

    def test_coercions(self, tmp_path):
        settings = setup_config.build_settings(
            {
                "max_list": "12",
                "dev_prefix": 105,
                "skip_download": "yes",
                "output_dir": str(tmp_path),
                "delivery_dir": "",
                "filter_rules": "vr",
                "api_timeout": "2.5",
            }
        )
        assert settings.max_list == 12
        assert settings.dev_prefix == "105"
        assert settings.skip_download is True
        assert settings.output_dir == tmp_path
        assert settings.delivery_dir is None
        assert settings.filter_rules == ("vr",)
        assert settings.api_timeout == 2.5

    def test_settings_are_frozen(self):
        settings = setup_config.build_settings()
        with pytest.raises(AttributeError):
            settings.max_list = 1

    @pytest.mark.parametrize(
        "config",
        [
            {"max_list": 0},
            {"max_list": "many"},
            {"max_list": True},
            {"silent": "perhaps"},
            {"filter_rules": [1, 2]},
            {"releases_url": ""},
            {"api_timeout": -1},
            {"output_dir": None},
            {"root_prefix": "/"},
            {"not_a_setting": 1},
        ],
    )
    def test_invalid_values(self, config):
        with pytest.raises(ConfigValidationError):
            setup_config.build_settings(config)

    def test_validation_error_names_field(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            setup_config.build_settings({"max_list": "many"})
        assert exc_info.value.field == "max_list"
        assert exc_info.value.stage == "config"
