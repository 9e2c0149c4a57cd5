"""
证书签发流程中使用的异常类型。

所有异常都继承自 CertiffixError，组件内部只负责抛出，
由 CLI / 路由层统一决定退出码或 HTTP 状态码。
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class CertiffixError(Exception):
    """certiffix 所有业务异常的基类。"""


class MissingRequiredField(CertiffixError, ValueError):
    """模板展开时缺少必填字段。"""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"缺少必填字段 '{field}'，已中止")


class InvalidIdentifier(CertiffixError, ValueError):
    """证书名称中没有任何字母，无法派生存储标识符（例如 IP 地址）。"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"无法由名称 '{name}' 派生存储标识符（需至少包含一个字母），已中止")


class DuplicateCA(CertiffixError, ValueError):
    """目标 CA 根证书已存在，拒绝覆盖。"""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"CA 根证书 '{self.path}' 已存在，已中止")


class CANotFound(CertiffixError, LookupError):
    """签发叶子证书所需的 CA 证书或私钥不存在。"""

    def __init__(self, path: Path, missing: str):
        self.path = Path(path)
        self.missing = missing
        if missing == "private_key":
            message = f"CA 签名私钥 '{self.path}' 未找到，已中止"
        else:
            message = f"CA 签名证书 '{self.path}' 未找到，已中止"
        super().__init__(message)


class ExternalToolFailure(CertiffixError, RuntimeError):
    """外部工具（openssl）执行失败。"""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"执行命令失败 (exit={returncode}): {' '.join(self.command)}"
        if stderr:
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)


class FileIOFailure(CertiffixError, RuntimeError):
    """临时文件或信任库读写失败。"""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"写入文件失败: {self.path}: {reason}")
