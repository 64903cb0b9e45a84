import json
import os
from pathlib import Path

import pytest

from apisync.config.settings import CONFIG_FILE_ENV, SyncSettings, load_settings
from apisync.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("APISYNC_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


def test_defaults():
    s = load_settings()
    assert s.source.owner == "twilio"
    assert s.source.token is None
    assert s.matcher.min_score == 40
    assert s.matcher.low_confidence_score == 60
    assert s.matcher.match_trailing_nouns is True
    assert s.matcher.noun_segments["message"] == "Messages"
    assert "twilio_api_v2010" in s.tracked_domains
    assert s.packages["sdk"] == "twilio"


def test_file_env_and_overrides_layer_in_order(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "apisync.json"
    cfg.write_text(
        json.dumps({"matcher": {"min_score": 50}, "source": {"owner": "acme", "token": "from-file"}}),
        encoding="utf-8",
    )
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")

    s = load_settings(cfg, overrides={"matcher": {"low_confidence_score": 70}})

    assert s.matcher.min_score == 50
    assert s.matcher.low_confidence_score == 70
    # nested sections merge key by key
    assert s.matcher.noun_segments["message"] == "Messages"
    assert s.source.owner == "acme"
    assert s.source.token == "from-env"


def test_prefixed_env_vars_reach_nested_sections(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "apisync.json"
    cfg.write_text(json.dumps({"matcher": {"min_score": 50, "shape_bonus": 12}}), encoding="utf-8")
    monkeypatch.setenv("APISYNC_MATCHER__MIN_SCORE", "55")
    monkeypatch.setenv("APISYNC_SOURCE__MAX_WORKERS", "2")
    monkeypatch.setenv("APISYNC_TRACKED_DOMAINS", '["twilio_verify_v2"]')

    s = load_settings(cfg)
    assert s.matcher.min_score == 55
    assert s.matcher.shape_bonus == 12
    assert s.source.max_workers == 2
    assert s.tracked_domains == ["twilio_verify_v2"]

    # explicit overrides beat the environment
    assert load_settings(cfg, overrides={"matcher": {"min_score": 60}}).matcher.min_score == 60


def test_github_token_applies_to_directly_built_settings(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_x")
    assert SyncSettings().source.token == "ghp_x"
    assert "github_token" not in SyncSettings().model_dump()


def test_config_file_from_env(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "c.json"
    cfg.write_text(json.dumps({"tracked_domains": ["twilio_verify_v2"]}), encoding="utf-8")
    monkeypatch.setenv(CONFIG_FILE_ENV, str(cfg))

    assert load_settings().tracked_domains == ["twilio_verify_v2"]


def test_config_file_applies_only_to_its_own_load(tmp_path: Path):
    cfg = tmp_path / "c.json"
    cfg.write_text(json.dumps({"sdk_pinned_range": "^9.0.0"}), encoding="utf-8")

    assert load_settings(cfg).sdk_pinned_range == "^9.0.0"
    assert load_settings().sdk_pinned_range != "^9.0.0"


def test_invalid_config_raises_config_error(tmp_path: Path, monkeypatch):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"source": {"max_workers": 0}}), encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(bad)

    with pytest.raises(ConfigError):
        load_settings(tmp_path / "missing.json")

    not_json = tmp_path / "x.json"
    not_json.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(not_json)

    monkeypatch.setenv("APISYNC_MATCHER__MIN_SCORE", "lots")
    with pytest.raises(ConfigError):
        load_settings()
