#!/usr/bin/env python3
"""
Test suite for configuration loading and settings resolution.
"""

from stepwise.config import Settings, get_config_value, load_config, set_config_value


class TestSettingsResolve:
    """Tests for layering defaults, config file, environment and flags"""

    def test_defaults(self):
        settings = Settings.resolve(config={}, environ={})
        assert settings == Settings()
        assert settings.auto_advance
        assert not settings.run_on_save

    def test_later_sources_win(self):
        """Test config < environment < explicit overrides"""
        config = {'toolchain': 'from-config', 'success_marker': 'PASS', 'run_timeout': 5}
        environ = {'STEPWISE_TOOLCHAIN': 'from-env', 'STEPWISE_RUN_TIMEOUT': '7.5'}
        settings = Settings.resolve(config, environ, toolchain='from-flag')
        assert settings.toolchain == 'from-flag'
        assert settings.success_marker == 'PASS'
        assert settings.run_timeout == 7.5

    def test_none_override_is_ignored(self):
        settings = Settings.resolve({'toolchain': 'cfg'}, {}, toolchain=None)
        assert settings.toolchain == 'cfg'

    def test_values_are_coerced(self):
        """Test string values take the type of the default"""
        environ = {'STEPWISE_AUTO_ADVANCE': 'no', 'STEPWISE_WATCH': 'TRUE', 'STEPWISE_DEBOUNCE_SECONDS': '0.5'}
        settings = Settings.resolve({}, environ)
        assert settings.auto_advance is False
        assert settings.watch is True
        assert settings.debounce_seconds == 0.5

    def test_invalid_value_falls_back(self):
        """Test an unparseable stored value keeps the default instead of failing"""
        settings = Settings.resolve({'run_timeout': 'abc', 'tick_seconds': '0.2'}, {'STEPWISE_DEBOUNCE_SECONDS': 'soon'})
        assert settings.run_timeout == Settings().run_timeout
        assert settings.debounce_seconds == Settings().debounce_seconds
        assert settings.tick_seconds == 0.2

    def test_invalid_value_keeps_earlier_source(self):
        settings = Settings.resolve({'run_timeout': 5}, {'STEPWISE_RUN_TIMEOUT': 'abc'})
        assert settings.run_timeout == 5.0

    def test_extra_env_from_config(self):
        settings = Settings.resolve({'extra_env': {'RUST_BACKTRACE': 1}}, {})
        assert settings.extra_env == {'RUST_BACKTRACE': '1'}

    def test_toolchain_argv(self):
        settings = Settings(toolchain='cargo run --quiet --')
        assert settings.toolchain_argv() == ['cargo', 'run', '--quiet', '--']


class TestConfigFile:
    """Tests for the user config file"""

    def test_set_and_get(self, tmp_path, monkeypatch):
        monkeypatch.setenv('STEPWISE_HOME', str(tmp_path))
        assert load_config() == {}
        set_config_value('toolchain', 'rustlings-check')
        assert get_config_value('toolchain') == 'rustlings-check'
        assert (tmp_path / 'config.json').exists()

    def test_corrupt_file_is_empty(self, tmp_path, monkeypatch):
        monkeypatch.setenv('STEPWISE_HOME', str(tmp_path))
        (tmp_path / 'config.json').write_text('{oops')
        assert load_config() == {}
