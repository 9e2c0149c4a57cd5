"""
测试 config.py 配置加载。
"""

import json
from pathlib import Path

from src.certiffix.config import Config


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    cfg = Config()
    assert cfg.config_dir == Path.home() / ".config" / "certiffix"
    assert cfg.default_days == 398
    assert cfg.default_ips == ["127.0.0.1"]
    assert cfg.openssl_bin == "openssl"
    assert cfg.command_timeout is None


def test_env_overrides(monkeypatch, tmp_path):
    """测试环境变量覆盖，IP 列表支持分隔符"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CERTIFFIX_CONFIG_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("CERTIFFIX_DEFAULT_IPS", "127.0.0.1, 10.0.0.1;192.168.1.1")
    monkeypatch.setenv("CERTIFFIX_DEFAULT_DAYS", "30")
    cfg = Config()
    assert cfg.config_dir == tmp_path / "store"
    assert cfg.default_ips == ["127.0.0.1", "10.0.0.1", "192.168.1.1"]
    assert cfg.default_days == 30


def test_env_ips_as_json(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CERTIFFIX_DEFAULT_IPS", '["::1", "127.0.0.1"]')
    assert Config().default_ips == ["::1", "127.0.0.1"]


def test_json_config_file(monkeypatch, tmp_path):
    """测试从 CONFIG_FILE 指定的 JSON 文件加载，环境变量优先"""
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"openssl_bin": "/opt/openssl/bin/openssl", "default_days": 90}), encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))
    monkeypatch.setenv("CERTIFFIX_DEFAULT_DAYS", "7")

    cfg = Config()
    assert cfg.openssl_bin == "/opt/openssl/bin/openssl"
    assert cfg.default_days == 7


def test_invalid_json_file_is_ignored(monkeypatch, tmp_path):
    (tmp_path / "certiffix.json").write_text("{not json", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    assert Config().openssl_bin == "openssl"
