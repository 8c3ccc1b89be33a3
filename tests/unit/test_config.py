"""
Unit tests for configuration loading.
"""

from pathlib import Path

import pytest

from fundsplit.core.config import DistributionConfig, load_config


class TestDistributionConfig:
    """Tests for defaults and validation."""

    def test_defaults(self):
        config = DistributionConfig()

        assert config.percent_scale == 1_000_000
        assert config.claim_word_bits == 256
        assert config.max_proof_length == 256
        assert config.db_path == Path("data") / "fundsplit.db"

    @pytest.mark.parametrize("bits", [0, 8, 100, 512])
    def test_rejects_unsupported_word_width(self, bits):
        with pytest.raises(ValueError):
            DistributionConfig(claim_word_bits=bits)

    def test_rejects_non_positive_scale(self):
        with pytest.raises(ValueError):
            DistributionConfig(percent_scale=0)


class TestLoadConfig:
    """Tests for FUNDSPLIT_* overrides."""

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FUNDSPLIT_CLAIM_WORD_BITS", "64")
        monkeypatch.setenv("FUNDSPLIT_MAX_BATCH_SIZE", "10")
        monkeypatch.setenv("FUNDSPLIT_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("FUNDSPLIT_DB_NAME", "test.db")

        config = load_config()

        assert config.claim_word_bits == 64
        assert config.max_batch_size == 10
        assert config.db_path == tmp_path / "test.db"

    def test_empty_value_ignored(self, monkeypatch):
        monkeypatch.setenv("FUNDSPLIT_PERCENT_SCALE", "")
        assert load_config().percent_scale == 1_000_000

    def test_dotenv_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / "fundsplit.env"
        env_file.write_text("FUNDSPLIT_MAX_PROOF_LENGTH=32\n")
        # Register the variable so monkeypatch removes what the file sets
        monkeypatch.setenv("FUNDSPLIT_MAX_PROOF_LENGTH", "0")
        monkeypatch.delenv("FUNDSPLIT_MAX_PROOF_LENGTH")

        config = load_config(str(env_file))

        assert config.max_proof_length == 32

    def test_environment_wins_over_dotenv(self, monkeypatch, tmp_path):
        env_file = tmp_path / "fundsplit.env"
        env_file.write_text("FUNDSPLIT_CLAIM_WORD_BITS=32\n")
        monkeypatch.setenv("FUNDSPLIT_CLAIM_WORD_BITS", "128")

        assert load_config(str(env_file)).claim_word_bits == 128

    def test_invalid_override_rejected(self, monkeypatch):
        monkeypatch.setenv("FUNDSPLIT_CLAIM_WORD_BITS", "12")
        with pytest.raises(ValueError):
            load_config()
