"""Tests for release API token loading."""

from __future__ import annotations

import json

import pytest
from powerdock.credentials import MAX_TOKEN_FILE_BYTES, CredentialLoader


@pytest.fixture
def token_file(tmp_path):
    return tmp_path / "ota_config.json"


class TestCredentialLoader:
    """Every failure path yields None; only a clean token is returned."""

    def test_loads_token(self, token_file):
        token_file.write_text(json.dumps({"github_token": "ghp_abc123"}), encoding="utf-8")
        assert CredentialLoader(token_file).load_token() == "ghp_abc123"

    def test_strips_whitespace(self, token_file):
        token_file.write_text(json.dumps({"github_token": "  ghp_abc123\n"}), encoding="utf-8")
        assert CredentialLoader(token_file).load_token() == "ghp_abc123"

    def test_missing_file(self, token_file, mock_logger):
        assert CredentialLoader(token_file, logger=mock_logger).load_token() is None
        mock_logger.info.assert_called()

    def test_empty_file(self, token_file, mock_logger):
        token_file.write_text("", encoding="utf-8")
        assert CredentialLoader(token_file, logger=mock_logger).load_token() is None
        mock_logger.warning.assert_called()

    def test_oversized_file(self, token_file):
        token_file.write_text(json.dumps({"github_token": "x" * MAX_TOKEN_FILE_BYTES}), encoding="utf-8")
        assert CredentialLoader(token_file).load_token() is None

    def test_invalid_json(self, token_file):
        token_file.write_text("{github_token: nope", encoding="utf-8")
        assert CredentialLoader(token_file).load_token() is None

    def test_not_utf8(self, token_file):
        token_file.write_bytes(b"\xff\xfe\x00garbage")
        assert CredentialLoader(token_file).load_token() is None

    @pytest.mark.parametrize(
        "payload",
        [{}, {"github_token": ""}, {"github_token": "   "}, {"github_token": 42}, ["github_token"]],
    )
    def test_absent_or_blank_field(self, token_file, payload):
        token_file.write_text(json.dumps(payload), encoding="utf-8")
        assert CredentialLoader(token_file).load_token() is None

    def test_token_never_logged(self, token_file, mock_logger):
        token_file.write_text(json.dumps({"github_token": "ghp_secret"}), encoding="utf-8")
        CredentialLoader(token_file, logger=mock_logger).load_token()

        for method in (mock_logger.debug, mock_logger.info, mock_logger.warning):
            for call in method.call_args_list:
                assert "ghp_secret" not in " ".join(str(arg) for arg in call.args)
