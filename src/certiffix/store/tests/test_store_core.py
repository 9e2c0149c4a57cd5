"""
测试 store/core.py 模块。
"""

import os
import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from src.certiffix.errors import InvalidIdentifier
from src.certiffix.store import core
from src.certiffix.store.schemas import KeyRole, StoreKind, TrustStoreConfig


def _write_self_signed(path: Path, common_name: str) -> None:
    """生成一个自签名证书写入 path（仅用于读取测试）。"""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))


def test_ensure_layout_creates_private_directories(trust_store):
    """测试目录创建与权限"""
    assert core.ensure_layout(trust_store)
    for path in (trust_store.base_dir, trust_store.ca_dir, trust_store.private_dir, trust_store.public_dir):
        assert path.is_dir()
    if os.name == "posix":
        mode = stat.S_IMODE(trust_store.ca_dir.stat().st_mode)
        assert mode & 0o077 == 0
    # 重复调用不报错
    assert core.ensure_layout(trust_store)


def test_ensure_layout_failure_is_not_fatal(trust_store):
    """测试目录创建失败时仅返回 False"""
    with patch.object(Path, "mkdir", side_effect=PermissionError("read-only")):
        assert core.ensure_layout(trust_store) is False


def test_derive_identifier():
    assert core.derive_identifier("root.test") == "root_test"
    assert core.derive_identifier("Example, Inc!!") == core.derive_identifier("Example, Inc!!")


def test_path_for(trust_store):
    """测试各类文件的路径"""
    assert core.path_for(trust_store, StoreKind.CA, "root_test", KeyRole.PRIVATE_KEY) == trust_store.ca_dir / "root_test.ca.key"
    assert core.path_for(trust_store, StoreKind.CA, "root_test", KeyRole.PUBLIC_CERT) == trust_store.ca_dir / "root_test.ca.pem"
    assert core.path_for(trust_store, StoreKind.LEAF, "svc_test", KeyRole.PRIVATE_KEY) == trust_store.private_dir / "svc_test.key"
    assert core.path_for(trust_store, StoreKind.LEAF, "svc_test", KeyRole.PUBLIC_CERT) == trust_store.public_dir / "svc_test.pem"


def test_ca_private_key_for():
    assert core.ca_private_key_for(Path("/x/root_test.ca.pem")) == Path("/x/root_test.ca.key")
    assert core.ca_private_key_for(Path("/x/other.pem")) == Path("/x/other.key")


def test_resolve_ca_reference(trust_store, tmp_path):
    """测试 CA 引用既可以是路径也可以是名称"""
    assert core.resolve_ca_reference(trust_store, "root.test") == trust_store.ca_dir / "root_test.ca.pem"
    assert core.resolve_ca_reference(trust_store, "root_test") == trust_store.ca_dir / "root_test.ca.pem"

    explicit = tmp_path / "elsewhere" / "my.ca.pem"
    assert core.resolve_ca_reference(trust_store, str(explicit)) == explicit


def test_list_available_filters_extensions(trust_store):
    """测试仅列出证书文件"""
    core.ensure_layout(trust_store)
    _write_self_signed(trust_store.ca_dir / "root_test.ca.pem", "root.test")
    (trust_store.ca_dir / "root_test.ca.key").write_text("key")
    (trust_store.ca_dir / "root_test.ca.srl").write_text("01")
    (trust_store.ca_dir / "broken.ca.pem").write_text("not a certificate")

    entries = core.list_available(trust_store, StoreKind.CA)

    assert [e.identifier for e in entries] == ["broken", "root_test"]
    broken, root = entries
    assert broken.info is None
    assert root.info is not None
    assert "CN=root.test" in root.info.subject
    assert root.public_cert_path == (trust_store.ca_dir / "root_test.ca.pem").resolve()


def test_list_available_leaf(trust_store):
    core.ensure_layout(trust_store)
    (trust_store.public_dir / "svc_test.pem").write_text("x")
    (trust_store.private_dir / "svc_test.key").write_text("x")

    entries = core.list_available(trust_store, StoreKind.LEAF)
    assert [e.identifier for e in entries] == ["svc_test"]


def test_list_available_missing_directory(tmp_path):
    store = TrustStoreConfig(base_dir=tmp_path / "nothing-here")
    assert core.list_available(store) == []


def test_describe_certificate(tmp_path):
    path = tmp_path / "c.pem"
    _write_self_signed(path, "desc.test")
    info = core.describe_certificate(path)
    assert info is not None
    assert info.subject == info.issuer
    assert len(info.sha256) == 64
    assert core.describe_certificate(tmp_path / "missing.pem") is None


@pytest.mark.parametrize("name", ["127.0.0.1", "123", "*.", "::1"])
def test_derive_identifier_rejects_names_without_letters(name):
    """测试无法派生标识符的名称（如 IP 地址）被拒绝"""
    with pytest.raises(InvalidIdentifier) as ei:
        core.derive_identifier(name)
    assert ei.value.name == name


def test_resolve_ca_reference_without_letters(trust_store):
    with pytest.raises(InvalidIdentifier):
        core.resolve_ca_reference(trust_store, "10.0.0.1")
