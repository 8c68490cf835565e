"""Tests for config persistence."""

from __future__ import annotations

import threading
import time
from unittest.mock import Mock, patch

import pytest
from powerdock.config_persist import (
    UPDATE_CHECKS_VAR,
    ConfigPersister,
    UpdatePreference,
    _quote_value,
    apply_changes,
)

CONF = """# PowerDock configuration
MQTT_HOST="broker.local"
# (default) POWERDOCK_UPDATE_CHECKS="false"
POWERDOCK_LOG_LEVEL=INFO
"""


class TestQuoting:
    """Test quote helper."""

    def test_quote_value_simple(self):
        assert _quote_value("true") == '"true"'

    def test_quote_value_with_quotes(self):
        assert _quote_value('say "hi"') == '"say \\"hi\\""'

    def test_quote_value_empty(self):
        assert _quote_value("") == '""'


class TestApplyChanges:
    def test_uncomments_default_line(self):
        """A '# (default)' line becomes a real assignment."""
        result = apply_changes(CONF, {UPDATE_CHECKS_VAR: "true"})
        assert 'POWERDOCK_UPDATE_CHECKS="true"\n' in result
        assert "# (default) POWERDOCK_UPDATE_CHECKS" not in result

    def test_rewrites_existing_assignment(self):
        result = apply_changes(CONF, {"POWERDOCK_LOG_LEVEL": "DEBUG"})
        assert 'POWERDOCK_LOG_LEVEL="DEBUG"' in result

    def test_preserves_other_lines(self):
        result = apply_changes(CONF, {"POWERDOCK_LOG_LEVEL": "DEBUG"})
        assert result.splitlines()[0] == "# PowerDock configuration"
        assert 'MQTT_HOST="broker.local"' in result
        assert result.endswith("\n")

    def test_unknown_variable_warns(self):
        logger = Mock()
        result = apply_changes(CONF, {"NOT_THERE": "1"}, logger)
        assert result == CONF
        logger.warning.assert_called_once()


class TestConfigPersister:
    """Test ConfigPersister writes."""

    @pytest.fixture
    def conf_path(self, tmp_path):
        path = tmp_path / "powerdock.conf"
        path.write_text(CONF, encoding="utf-8")
        return path

    def test_flush_sync_writes_and_backs_up(self, conf_path):
        persister = ConfigPersister(conf_path)
        persister.update(UPDATE_CHECKS_VAR, "true")
        persister.flush_sync()

        assert 'POWERDOCK_UPDATE_CHECKS="true"' in conf_path.read_text(encoding="utf-8")
        backup = conf_path.with_name("powerdock.conf.backup")
        assert backup.read_text(encoding="utf-8") == CONF

    def test_debounce_coalesces_updates(self, conf_path):
        """Rapid toggles result in one write with the final value."""
        persister = ConfigPersister(conf_path, debounce_seconds=0.05)
        with patch.object(persister, "_write_changes", wraps=persister._write_changes) as spy:
            persister.update(UPDATE_CHECKS_VAR, "true")
            persister.update(UPDATE_CHECKS_VAR, "false")
            persister.update(UPDATE_CHECKS_VAR, "true")
            time.sleep(0.3)

        spy.assert_called_once_with({UPDATE_CHECKS_VAR: "true"})

    def test_flush_without_changes_is_noop(self, conf_path):
        persister = ConfigPersister(conf_path)
        persister.flush_sync()
        assert conf_path.read_text(encoding="utf-8") == CONF
        assert not conf_path.with_name("powerdock.conf.backup").exists()

    def test_missing_file_is_skipped(self, tmp_path):
        logger = Mock()
        persister = ConfigPersister(tmp_path / "absent.conf", logger=logger)
        persister.update(UPDATE_CHECKS_VAR, "true")
        persister.stop()

        logger.warning.assert_called_once()
        assert not (tmp_path / "absent.conf").exists()

    def test_write_error_is_logged(self, conf_path):
        logger = Mock()
        persister = ConfigPersister(conf_path, logger=logger)
        persister.update(UPDATE_CHECKS_VAR, "true")
        with patch.object(persister, "_write_changes", side_effect=OSError("read-only filesystem")):
            persister.flush_sync()
        logger.error.assert_called_once()

    def test_concurrent_updates_are_all_written(self, conf_path):
        persister = ConfigPersister(conf_path, debounce_seconds=10)
        threads = [
            threading.Thread(target=persister.update, args=(UPDATE_CHECKS_VAR, "true")),
            threading.Thread(target=persister.update, args=("POWERDOCK_LOG_LEVEL", "DEBUG")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        persister.stop()

        content = conf_path.read_text(encoding="utf-8")
        assert 'POWERDOCK_UPDATE_CHECKS="true"' in content
        assert 'POWERDOCK_LOG_LEVEL="DEBUG"' in content


class TestUpdatePreference:
    def test_change_is_persisted(self):
        persister = Mock()
        preference = UpdatePreference(False, persister)

        preference.set_enabled(True)

        assert preference.enabled is True
        persister.update.assert_called_once_with(UPDATE_CHECKS_VAR, "true")

    def test_unchanged_value_not_persisted(self):
        persister = Mock()
        UpdatePreference(True, persister).set_enabled(True)
        persister.update.assert_not_called()

    def test_disable(self):
        persister = Mock()
        preference = UpdatePreference(True, persister)
        preference.set_enabled(False)
        persister.update.assert_called_once_with(UPDATE_CHECKS_VAR, "false")
