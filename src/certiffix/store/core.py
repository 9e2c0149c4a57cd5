"""
信任库目录布局管理。

负责创建 ca/、private/、public/ 目录，由证书名称派生存储标识符，
计算私钥 / 证书路径，以及列出已有的证书。
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from loguru import logger

from ..errors import InvalidIdentifier
from ..template.core import standard_mangle
from .schemas import (
    AvailableCertificate,
    CertificateInfo,
    KeyRole,
    StoreKind,
    TrustStoreConfig,
    TrustStoreEntry,
)

CA_KEY_SUFFIX = ".ca.key"
CA_CERT_SUFFIX = ".ca.pem"
LEAF_KEY_SUFFIX = ".key"
LEAF_CERT_SUFFIX = ".pem"
CERT_EXTENSIONS = (".pem",)


def ensure_layout(store: TrustStoreConfig) -> bool:
    """
    确保信任库目录存在（权限 0700）。
    创建失败只记录错误，不中断流程，以便只读场景下仍可列出已有证书。
    :return: 所有目录均就绪时返回 True。
    """
    try:
        for path in (store.base_dir, store.ca_dir, store.private_dir, store.public_dir):
            path.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"创建配置目录失败: {store.base_dir}: {e}")
        return False
    return True


def derive_identifier(primary_name: str) -> str:
    """
    由主 DNS 名称派生存储标识符，例如 "root.test" -> "root_test"。
    :raises InvalidIdentifier: 名称中没有字母（如 "127.0.0.1"），派生结果为空。
    """
    identifier = standard_mangle(primary_name)
    if not identifier:
        logger.error(f"无法由名称派生存储标识符: {primary_name!r}")
        raise InvalidIdentifier(primary_name)
    return identifier


def path_for(store: TrustStoreConfig, kind: StoreKind, identifier: str, role: KeyRole) -> Path:
    """
    计算某个标识符在信任库中的文件路径。
    CA: ca/<id>.ca.key、ca/<id>.ca.pem；叶子证书: private/<id>.key、public/<id>.pem。
    """
    if kind == StoreKind.CA:
        suffix = CA_KEY_SUFFIX if role == KeyRole.PRIVATE_KEY else CA_CERT_SUFFIX
        return store.ca_dir / f"{identifier}{suffix}"
    if role == KeyRole.PRIVATE_KEY:
        return store.private_dir / f"{identifier}{LEAF_KEY_SUFFIX}"
    return store.public_dir / f"{identifier}{LEAF_CERT_SUFFIX}"


def entry_for(store: TrustStoreConfig, kind: StoreKind, identifier: str) -> TrustStoreEntry:
    return TrustStoreEntry(
        identifier=identifier,
        private_key_path=path_for(store, kind, identifier, KeyRole.PRIVATE_KEY),
        public_cert_path=path_for(store, kind, identifier, KeyRole.PUBLIC_CERT),
    )


def ca_private_key_for(ca_cert_path: Path) -> Path:
    """由 CA 公共证书路径推导其私钥路径（.ca.pem -> .ca.key）。"""
    ca_cert_path = Path(ca_cert_path)
    if ca_cert_path.name.endswith(CA_CERT_SUFFIX):
        return ca_cert_path.with_name(ca_cert_path.name[: -len(CA_CERT_SUFFIX)] + CA_KEY_SUFFIX)
    return ca_cert_path.with_suffix(LEAF_KEY_SUFFIX)


def resolve_ca_reference(store: TrustStoreConfig, reference: str) -> Path:
    """
    将 CA 引用解析为公共证书路径。
    引用可以是证书文件路径，也可以是 CA 的标识符 / DNS 名称（如 "root.test"）。
    """
    candidate = Path(reference).expanduser()
    if candidate.is_file() or candidate.name.endswith(CERT_EXTENSIONS):
        return candidate
    return path_for(store, StoreKind.CA, derive_identifier(reference), KeyRole.PUBLIC_CERT)


def _identifier_from_filename(name: str) -> str:
    for suffix in (CA_CERT_SUFFIX, LEAF_CERT_SUFFIX):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def describe_certificate(path: Path) -> CertificateInfo | None:
    """读取证书摘要信息；文件无法解析时返回 None。"""
    try:
        cert = x509.load_pem_x509_certificate(Path(path).read_bytes())
    except (OSError, ValueError) as e:
        logger.debug(f"读取证书信息失败: {path}: {e}")
        return None
    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_after=cert.not_valid_after_utc,
        sha256=cert.fingerprint(hashes.SHA256()).hex(),
    )


def list_available(store: TrustStoreConfig, kind: StoreKind = StoreKind.CA) -> List[AvailableCertificate]:
    """
    列出信任库中已有的证书（按文件名排序），仅包含可识别的证书扩展名。
    """
    directory = store.ca_dir if kind == StoreKind.CA else store.public_dir
    if not directory.is_dir():
        return []

    result: List[AvailableCertificate] = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or not path.name.endswith(CERT_EXTENSIONS):
            continue
        result.append(
            AvailableCertificate(
                identifier=_identifier_from_filename(path.name),
                public_cert_path=path.resolve(),
                info=describe_certificate(path),
            )
        )
    return result
