"""Unit tests for SyncSettings."""

import pytest
from pydantic import ValidationError

from datasync.config import SyncSettings


class TestSyncSettingsDefaults:
    def test_defaults(self) -> None:
        settings = SyncSettings()

        assert settings.max_chunk_size == 30_000
        assert settings.session_timeout_seconds == 60.0
        assert settings.sweep_interval_seconds == 30.0
        assert settings.peer_settle_delay_seconds == 5.0
        assert settings.log_level == "INFO"

    def test_is_frozen(self) -> None:
        settings = SyncSettings()

        with pytest.raises(ValidationError):
            settings.max_chunk_size = 10  # type: ignore[misc]


class TestSyncSettingsValidation:
    @pytest.mark.parametrize(
        "field, value",
        [
            ("max_chunk_size", 0),
            ("session_timeout_seconds", 0),
            ("sweep_interval_seconds", -1),
            ("peer_settle_delay_seconds", -0.5),
        ],
    )
    def test_rejects_out_of_range(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            SyncSettings(**{field: value})

    def test_log_level_is_normalized(self) -> None:
        assert SyncSettings(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SyncSettings(log_level="chatty")

    def test_unknown_field_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SyncSettings(chunk_size=10)  # type: ignore[call-arg]


class TestSyncSettingsFromEnv:
    def test_reads_prefixed_variables(self) -> None:
        settings = SyncSettings.from_env(
            {
                "DATASYNC_MAX_CHUNK_SIZE": "1024",
                "DATASYNC_SESSION_TIMEOUT_SECONDS": "2.5",
                "DATASYNC_LOG_LEVEL": "warning",
                "UNRELATED": "x",
            }
        )

        assert settings.max_chunk_size == 1024
        assert settings.session_timeout_seconds == 2.5
        assert settings.log_level == "WARNING"
        assert settings.sweep_interval_seconds == 30.0

    def test_blank_values_fall_back_to_defaults(self) -> None:
        settings = SyncSettings.from_env({"DATASYNC_MAX_CHUNK_SIZE": "  "})

        assert settings.max_chunk_size == 30_000

    def test_invalid_value_raises(self) -> None:
        with pytest.raises(ValidationError):
            SyncSettings.from_env({"DATASYNC_MAX_CHUNK_SIZE": "lots"})

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATASYNC_PEER_SETTLE_DELAY_SECONDS", "0")

        assert SyncSettings.from_env().peer_settle_delay_seconds == 0
