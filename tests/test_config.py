# File: tests/test_config.py
import json
from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from adstxt_manager.config import DEFAULT_SPECIAL_DOMAINS, ManagerConfig, load_config


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content,suffix,expect_exc",
    [
        ("cache_ttl_hours: 12\nconcurrency_limit: 4", ".yaml", None),
        (json.dumps({"cache_ttl_hours": 12, "concurrency_limit": 4}), ".json", None),
        ("concurrency_limit: 0", ".yaml", ValidationError),
        ("bogus_option: 1", ".yaml", ValidationError),
        ("not: a: mapping", ".yaml", ValueError),
        ("just a string", ".yaml", TypeError),
        ("[1, 2]", ".json", TypeError),
        ("{broken", ".json", ValueError),
    ],
)
def test_load_config_variants(tmp_path, content, suffix, expect_exc):
    cfg_path = write_file(tmp_path, content, suffix)
    if expect_exc:
        with pytest.raises(expect_exc):
            load_config(cfg_path)
    else:
        cfg = load_config(cfg_path)
        assert isinstance(cfg, ManagerConfig)
        assert cfg.cache_ttl_hours == 12
        assert cfg.concurrency_limit == 4


def test_defaults_without_file(tmp_path, monkeypatch):
    # Нет configs/default.yaml в рабочей папке -> значения по умолчанию
    monkeypatch.chdir(tmp_path)
    cfg = load_config(None)
    assert cfg == ManagerConfig()
    assert cfg.cache_ttl == timedelta(hours=24)
    assert cfg.concurrency_limit == 10
    assert cfg.chunk_pause == 0.1
    assert cfg.sellers_json_timeout == 30
    assert cfg.ads_txt_timeout == 5
    assert cfg.special_domains == DEFAULT_SPECIAL_DOMAINS


def test_default_file_is_used(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text("retry_times: 2\n", encoding="utf-8")
    assert load_config(None).retry_times == 2


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_unsupported_suffix(tmp_path):
    cfg_path = write_file(tmp_path, "x = 1", ".toml")
    with pytest.raises(ValueError):
        load_config(cfg_path)


def test_url_template_requires_placeholder():
    with pytest.raises(ValidationError):
        ManagerConfig(sellers_json_url_template="https://example.com/sellers.json")
    with pytest.raises(ValidationError):
        ManagerConfig(ads_txt_url_templates=["https://example.com/ads.txt"])


def test_special_domains_are_lowercased():
    cfg = ManagerConfig(special_domains={" Google.COM ": "https://x.test/sellers.json"})
    assert cfg.special_domains == {"google.com": "https://x.test/sellers.json"}


def test_config_is_frozen():
    cfg = ManagerConfig()
    with pytest.raises(ValidationError):
        cfg.concurrency_limit = 3
