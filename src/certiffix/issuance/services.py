"""
证书签发服务的业务逻辑层。

两个流程：
- generate_ca_cert: 生成自签名 CA 根证书
- generate_cert: 由指定 CA 签发叶子证书
每一步 openssl 调用都同步等待完成，任一步失败即抛出异常，临时文件总会被删除。
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from ..errors import CANotFound, DuplicateCA, MissingRequiredField
from ..store import core as store_core
from ..store.schemas import KeyRole, StoreKind, TrustStoreConfig
from ..template.core import (
    CONFIG_EXT_TEMPLATE,
    CONFIG_TEMPLATE,
    build_template_context,
    expand_template,
)
from . import core
from .schemas import CertificateRequest, IssuedCertificate, Toolchain


def _log_certificate_info(label: str, path) -> None:
    info = store_core.describe_certificate(path)
    if info is None:
        return
    logger.info(
        f"{label}: subject={info.subject}, issuer={info.issuer}, "
        f"not_after={info.not_after}, sha256={info.sha256}"
    )


def generate_ca_cert(
    request: CertificateRequest,
    store: TrustStoreConfig,
    toolchain: Optional[Toolchain] = None,
    runner: Optional[core.Runner] = None,
) -> IssuedCertificate:
    """
    生成自签名 CA 根证书。
    :param request: 签发参数，dns[0] 决定存储标识符。
    :param store: 信任库目录配置。
    :param toolchain: openssl 调用参数，默认使用系统 openssl 与系统临时目录。
    :param runner: 外部命令执行函数，默认 core.run_command。
    :return: 私钥与证书路径。
    :raises DuplicateCA: 同名 CA 根证书已存在。
    :raises MissingRequiredField / ExternalToolFailure / FileIOFailure
    """
    toolchain = toolchain or Toolchain()
    runner = runner or core.run_command

    identifier = store_core.derive_identifier(request.primary_name)
    entry = store_core.entry_for(store, StoreKind.CA, identifier)

    if entry.public_cert_path.exists():
        logger.error(f"CA 根证书已存在: {entry.public_cert_path}")
        raise DuplicateCA(entry.public_cert_path)

    store_core.ensure_layout(store)
    context = build_template_context(request)

    with core.TempArtifacts(toolchain.tmp_dir) as artifacts:
        config_path = artifacts.write("ca-config.conf", expand_template(CONFIG_TEMPLATE, context))

        runner(
            core.genpkey_args(toolchain.openssl_bin, entry.private_key_path, toolchain.key_bits),
            timeout=toolchain.command_timeout,
        )
        runner(
            core.self_signed_args(
                toolchain.openssl_bin,
                config_path,
                entry.private_key_path,
                request.days,
                entry.public_cert_path,
            ),
            timeout=toolchain.command_timeout,
        )

    logger.info(f"CA 根证书私钥已写入: {entry.private_key_path}")
    logger.info(f"CA 根证书公钥已写入: {entry.public_cert_path}")
    _log_certificate_info("CA 证书信息", entry.public_cert_path)

    return IssuedCertificate(
        identifier=identifier,
        private_key_path=entry.private_key_path,
        public_cert_path=entry.public_cert_path,
        dns=request.dns,
        ip=request.ip,
        trust_warning=(
            f"需要将此 CA 根证书添加到浏览器或系统的受信任证书颁发机构中: {entry.public_cert_path}"
        ),
    )


def generate_cert(
    request: CertificateRequest,
    store: TrustStoreConfig,
    toolchain: Optional[Toolchain] = None,
    runner: Optional[core.Runner] = None,
) -> IssuedCertificate:
    """
    由 request.ca 指定的 CA 签发叶子证书。同名叶子证书会被覆盖。
    :raises CANotFound: CA 证书或 CA 私钥不存在（分别说明）。
    :raises MissingRequiredField / ExternalToolFailure / FileIOFailure
    """
    toolchain = toolchain or Toolchain()
    runner = runner or core.run_command

    if not request.ca:
        raise MissingRequiredField("ca")

    ca_cert_path = store_core.resolve_ca_reference(store, request.ca)
    ca_key_path = store_core.ca_private_key_for(ca_cert_path)

    if not ca_cert_path.exists():
        logger.error(f"CA 签名证书未找到: {ca_cert_path}")
        raise CANotFound(ca_cert_path, "certificate")
    if not ca_key_path.exists():
        logger.error(f"CA 签名私钥未找到: {ca_key_path}")
        raise CANotFound(ca_key_path, "private_key")

    identifier = store_core.derive_identifier(request.primary_name)
    private_key_path = store_core.path_for(store, StoreKind.LEAF, identifier, KeyRole.PRIVATE_KEY)
    public_cert_path = store_core.path_for(store, StoreKind.LEAF, identifier, KeyRole.PUBLIC_CERT)

    store_core.ensure_layout(store)
    context = build_template_context(request)

    with core.TempArtifacts(toolchain.tmp_dir) as artifacts:
        config_path = artifacts.write("config.conf", expand_template(CONFIG_TEMPLATE, context))
        ext_path = artifacts.write("config-ext.conf", expand_template(CONFIG_EXT_TEMPLATE, context))
        csr_path = artifacts.path("csr.pem")

        runner(
            core.genpkey_args(toolchain.openssl_bin, private_key_path, toolchain.key_bits),
            timeout=toolchain.command_timeout,
        )
        runner(
            core.csr_args(toolchain.openssl_bin, config_path, private_key_path, csr_path),
            timeout=toolchain.command_timeout,
        )
        runner(
            core.ca_sign_args(
                toolchain.openssl_bin,
                csr_path,
                ca_cert_path,
                ca_key_path,
                public_cert_path,
                request.days,
                ext_path,
            ),
            timeout=toolchain.command_timeout,
        )

    logger.info(f"证书私钥已写入: {private_key_path}")
    logger.info(f"证书公钥已写入: {public_cert_path}")
    _log_certificate_info("证书信息", public_cert_path)

    return IssuedCertificate(
        identifier=identifier,
        private_key_path=private_key_path,
        public_cert_path=public_cert_path,
        ca_cert_path=ca_cert_path,
        dns=request.dns,
        ip=request.ip,
    )
