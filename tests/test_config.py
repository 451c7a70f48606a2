"""Tests for environment-driven configuration."""

import pytest

from cellscope import config as config_module
from cellscope.config import Config, get_config, reset_config


ENV_VARS = ('CELLSCOPE_CELL_DELIMITER', 'CELLSCOPE_OUTPUT_FORMAT', 'CELLSCOPE_SHOW_LOCALS')


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate every test from the caller's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        # setenv first so teardown unsets the variable again even after
        # load_dotenv writes the variable back
        monkeypatch.setenv(name, 'placeholder')
        monkeypatch.delenv(name)
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Values used when nothing is configured."""

    def test_defaults(self):
        config = Config()

        assert config.cell_delimiter == '# ╔═╡'
        assert config.output_format == 'table'
        assert config.show_locals is True


class TestEnvironment:
    """Environment variables override defaults."""

    def test_output_format_is_normalized(self, monkeypatch):
        monkeypatch.setenv('CELLSCOPE_OUTPUT_FORMAT', ' JSON ')
        assert Config().output_format == 'json'

    def test_show_locals_false(self, monkeypatch):
        monkeypatch.setenv('CELLSCOPE_SHOW_LOCALS', 'off')
        assert Config().show_locals is False

    def test_custom_delimiter(self, monkeypatch):
        monkeypatch.setenv('CELLSCOPE_CELL_DELIMITER', '# %%')
        assert Config().cell_delimiter == '# %%'

    def test_invalid_output_format(self, monkeypatch):
        monkeypatch.setenv('CELLSCOPE_OUTPUT_FORMAT', 'yaml')
        with pytest.raises(ValueError, match="CELLSCOPE_OUTPUT_FORMAT"):
            Config()

    def test_invalid_show_locals(self, monkeypatch):
        monkeypatch.setenv('CELLSCOPE_SHOW_LOCALS', 'sometimes')
        with pytest.raises(ValueError, match="CELLSCOPE_SHOW_LOCALS"):
            Config()


class TestDotenv:
    """Values can come from a .env file."""

    def test_env_file_in_working_directory(self, tmp_path):
        (tmp_path / '.env').write_text("CELLSCOPE_OUTPUT_FORMAT=json\n", encoding='utf-8')

        assert Config().output_format == 'json'

    def test_explicit_env_path(self, tmp_path):
        env_file = tmp_path / 'custom.env'
        env_file.write_text("CELLSCOPE_SHOW_LOCALS=no\n", encoding='utf-8')

        assert Config(env_file).show_locals is False

    def test_environment_wins_over_env_file(self, monkeypatch, tmp_path):
        (tmp_path / '.env').write_text("CELLSCOPE_OUTPUT_FORMAT=json\n", encoding='utf-8')
        monkeypatch.setenv('CELLSCOPE_OUTPUT_FORMAT', 'table')

        assert Config().output_format == 'table'


class TestSingleton:
    """get_config caches until reset_config."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reset_config(self):
        first = get_config()
        reset_config()

        assert config_module._config is None
        assert get_config() is not first
