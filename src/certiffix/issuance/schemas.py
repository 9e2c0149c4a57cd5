"""
证书签发流程的数据模型定义。
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from ..errors import MissingRequiredField

WILDCARD_PREFIX = "*."
DEFAULT_DAYS = 398
RSA_KEY_BITS = 4096


class CertificateRequest(BaseModel):
    """
    单次签发所需的完整参数。
    common_name 以 "*." 开头时视为通配符证书：去掉前缀，dns 为 [基础域名, 通配符域名]。
    """

    country: Optional[str] = None
    state: Optional[str] = None
    county: Optional[str] = None
    organization: Optional[str] = None
    unit: Optional[str] = None
    email: Optional[str] = None
    common_name: Optional[str] = None
    dns: List[str] = Field(default_factory=list, description="SAN 中的 DNS 名称，第一个为主标识")
    ip: List[str] = Field(default_factory=lambda: ["127.0.0.1"], description="SAN 中的 IP 地址")
    days: int = Field(default=DEFAULT_DAYS, gt=0, description="证书有效天数")
    wildcard: bool = False
    ca: Optional[str] = Field(default=None, description="签名 CA 的证书路径或标识符（仅叶子证书）")

    @model_validator(mode="after")
    def normalize_wildcard(self) -> "CertificateRequest":
        if self.common_name and self.common_name.startswith(WILDCARD_PREFIX):
            self.common_name = self.common_name[len(WILDCARD_PREFIX):]
            self.wildcard = True
        if not self.dns and self.common_name:
            self.dns = [self.common_name]
            if self.wildcard:
                self.dns.append(f"{WILDCARD_PREFIX}{self.common_name}")
        return self

    @property
    def primary_name(self) -> str:
        """用于派生存储标识符的主 DNS 名称。"""
        if not self.dns:
            raise MissingRequiredField("common_name")
        return self.dns[0]


class IssueCARequest(CertificateRequest):
    """HTTP 接口：生成 CA 根证书的请求体。"""


class IssueCertRequest(CertificateRequest):
    """HTTP 接口：签发叶子证书的请求体，ca 为必填。"""

    ca: str


class IssuedCertificate(BaseModel):
    """一次签发流程的结果。"""

    identifier: str
    private_key_path: Path
    public_cert_path: Path
    ca_cert_path: Optional[Path] = None
    dns: List[str] = Field(default_factory=list)
    ip: List[str] = Field(default_factory=list)
    trust_warning: Optional[str] = None


class Toolchain(BaseModel):
    """外部工具调用参数。"""

    openssl_bin: str = "openssl"
    tmp_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    command_timeout: Optional[float] = None
    key_bits: int = RSA_KEY_BITS

    @classmethod
    def from_config(cls, cfg) -> "Toolchain":
        values = {"openssl_bin": cfg.openssl_bin, "command_timeout": cfg.command_timeout}
        if cfg.tmp_dir is not None:
            values["tmp_dir"] = cfg.tmp_dir
        return cls(**values)
