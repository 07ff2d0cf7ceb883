"""
Configuration Loader Test Suite

Coverage:
  - TOML parsing into section dataclasses
  - environment variable overrides
  - validation and DAO construction from config
  - load_config resolution order
"""

import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from diamond_dao.config import GovernanceConfig, load_config
from diamond_dao.constants import DEFAULT_PROPOSAL_EXPIRATION_SECONDS
from diamond_dao.crypto.address import normalize_address
from diamond_dao.exceptions import ConfigurationError
from diamond_dao.governance import DuplicateSignerError


ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20

ENV_VARS = (
    "DIAMOND_DAO_CONFIG",
    "DIAMOND_DAO_SIGNERS",
    "DIAMOND_DAO_VOTE_THRESHOLD",
    "DIAMOND_DAO_ADMIN",
    "DIAMOND_DAO_PROPOSAL_EXPIRATION",
    "DIAMOND_DAO_LOG_LEVEL",
    "DIAMOND_DAO_LOG_FILE_OUTPUT",
    "DIAMOND_DAO_STATE_FILE",
)

SAMPLE_TOML = f"""
[dao]
signers = ["{ALICE}", "{BOB}", "{CAROL}"]
vote_threshold = 2
admin = "{BOB}"
proposal_expiration_seconds = 3600

[logging]
level = "debug"
file_output = true

[storage]
state_file = "state/dao.json"
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path, text=SAMPLE_TOML):
    path = tmp_path / "diamond_dao.toml"
    path.write_text(text)
    return path


class TestGovernanceConfigLoad:

    def test_from_file(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        assert cfg.dao.signers == [ALICE, BOB, CAROL]
        assert cfg.dao.vote_threshold == 2
        assert cfg.dao.admin == BOB
        assert cfg.dao.proposal_expiration_seconds == 3600
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.file_output is True
        assert cfg.storage.state_file == "state/dao.json"

    def test_defaults(self):
        cfg = GovernanceConfig()
        assert cfg.dao.signers == []
        assert cfg.dao.vote_threshold == 1
        assert cfg.dao.proposal_expiration_seconds == DEFAULT_PROPOSAL_EXPIRATION_SECONDS
        assert cfg.logging.level == "INFO"
        assert cfg.storage.state_file == "diamond_dao_state.json"

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(tmp_path / "nope.toml"))
        assert cfg.dao.signers == []

    def test_invalid_toml_raises(self, tmp_path):
        path = write_config(tmp_path, "[dao\nsigners = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            GovernanceConfig.from_file(str(path))

    def test_admin_defaults_to_first_signer(self, tmp_path):
        path = write_config(tmp_path, f'[dao]\nsigners = ["{CAROL}", "{ALICE}"]\n')
        cfg = GovernanceConfig.from_file(str(path))
        assert cfg.dao.effective_admin == CAROL

    def test_to_dict(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        d = cfg.to_dict()
        assert d["dao"]["vote_threshold"] == 2
        assert d["dao"]["admin"] == BOB
        assert d["logging"]["level"] == "DEBUG"
        assert d["storage"]["state_file"] == "state/dao.json"


class TestGovernanceConfigEnv:

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIAMOND_DAO_SIGNERS", f"{ALICE}, {BOB}")
        monkeypatch.setenv("DIAMOND_DAO_VOTE_THRESHOLD", "1")
        monkeypatch.setenv("DIAMOND_DAO_ADMIN", ALICE)
        monkeypatch.setenv("DIAMOND_DAO_PROPOSAL_EXPIRATION", "120.5")
        monkeypatch.setenv("DIAMOND_DAO_LOG_LEVEL", "warning")
        monkeypatch.setenv("DIAMOND_DAO_STATE_FILE", "/tmp/other.json")

        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        assert cfg.dao.signers == [ALICE, BOB]
        assert cfg.dao.vote_threshold == 1
        assert cfg.dao.admin == ALICE
        assert cfg.dao.proposal_expiration_seconds == 120.5
        assert cfg.logging.level == "WARNING"
        assert cfg.storage.state_file == "/tmp/other.json"

    def test_file_output_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIAMOND_DAO_LOG_FILE_OUTPUT", "false")
        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        assert cfg.logging.file_output is False
        assert GovernanceConfig().logging.file_output is False

    def test_env_applies_without_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIAMOND_DAO_SIGNERS", ALICE)
        cfg = GovernanceConfig.from_file(str(tmp_path / "missing.toml"))
        assert cfg.dao.signers == [ALICE]

    def test_bad_threshold_env_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIAMOND_DAO_VOTE_THRESHOLD", "two")
        with pytest.raises(ConfigurationError, match="DIAMOND_DAO_VOTE_THRESHOLD"):
            GovernanceConfig.from_file(str(write_config(tmp_path)))

    def test_bad_expiration_env_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIAMOND_DAO_PROPOSAL_EXPIRATION", "soon")
        with pytest.raises(ConfigurationError, match="DIAMOND_DAO_PROPOSAL_EXPIRATION"):
            GovernanceConfig.from_file(str(write_config(tmp_path)))


class TestGovernanceConfigValidate:

    def test_valid(self, tmp_path):
        assert GovernanceConfig.from_file(str(write_config(tmp_path))).validate() is True

    def test_no_signers_raises(self):
        with pytest.raises(ConfigurationError, match="signers"):
            GovernanceConfig().validate()

    def test_threshold_too_high_raises(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        cfg.dao.vote_threshold = 4
        with pytest.raises(ConfigurationError, match="exceeds"):
            cfg.validate()

    def test_threshold_zero_raises(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        cfg.dao.vote_threshold = 0
        with pytest.raises(ConfigurationError, match="vote_threshold"):
            cfg.validate()

    def test_bad_expiration_raises(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        cfg.dao.proposal_expiration_seconds = 0
        with pytest.raises(ConfigurationError, match="proposal_expiration"):
            cfg.validate()

    def test_bad_log_level_raises(self, tmp_path):
        cfg = GovernanceConfig.from_file(str(write_config(tmp_path)))
        cfg.logging.level = "LOUD"
        with pytest.raises(ConfigurationError, match="log level"):
            cfg.validate()


class TestCreateDAO:

    def test_create_dao(self, tmp_path):
        dao = GovernanceConfig.from_file(str(write_config(tmp_path))).create_dao()
        assert dao.vote_threshold() == 2
        assert dao.admin == normalize_address(BOB)
        assert dao.proposal_expiration() == 3600

    def test_create_dao_surfaces_construction_errors(self, tmp_path):
        path = write_config(tmp_path, f'[dao]\nsigners = ["{ALICE}", "{ALICE}"]\n')
        with pytest.raises(DuplicateSignerError):
            GovernanceConfig.from_file(str(path)).create_dao()


class TestLoadConfig:

    def test_explicit_path(self, tmp_path):
        cfg = load_config(str(write_config(tmp_path)))
        assert cfg.dao.vote_threshold == 2

    def test_env_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DIAMOND_DAO_CONFIG", str(write_config(tmp_path)))
        assert load_config().dao.vote_threshold == 2

    def test_cwd_default(self, tmp_path, monkeypatch):
        write_config(tmp_path)
        monkeypatch.chdir(tmp_path)
        assert load_config().dao.admin == BOB

    def test_nothing_found_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = load_config()
        assert cfg.dao.signers == []
        assert cfg.logging.level == "INFO"
