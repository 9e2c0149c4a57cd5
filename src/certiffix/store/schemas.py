"""
信任库（trust store）的数据模型定义。
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class StoreKind(str, Enum):
    CA = "ca"
    LEAF = "leaf"


class KeyRole(str, Enum):
    PRIVATE_KEY = "private_key"
    PUBLIC_CERT = "public_cert"


class TrustStoreConfig(BaseModel):
    """
    信任库目录配置：base_dir 下的 ca/、private/、public/ 三个子目录。
    """

    model_config = ConfigDict(frozen=True)

    base_dir: Path

    @property
    def ca_dir(self) -> Path:
        return self.base_dir / "ca"

    @property
    def private_dir(self) -> Path:
        return self.base_dir / "private"

    @property
    def public_dir(self) -> Path:
        return self.base_dir / "public"


class TrustStoreEntry(BaseModel):
    """以标识符为键的一组私钥 / 公共证书路径。"""

    identifier: str
    private_key_path: Path
    public_cert_path: Path


class CertificateInfo(BaseModel):
    """从证书文件中读取的摘要信息。"""

    subject: str
    issuer: str
    not_after: datetime
    sha256: str


class AvailableCertificate(BaseModel):
    """信任库中已有的证书（用于列出可选 CA）。"""

    identifier: str = Field(description="由文件名得到的标识符")
    public_cert_path: Path = Field(description="公共证书文件路径")
    info: CertificateInfo | None = Field(default=None, description="证书摘要，无法解析时为空")
