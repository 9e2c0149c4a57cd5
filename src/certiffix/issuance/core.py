"""
证书签发的底层实现：调用 openssl、管理临时文件、构建命令参数。
"""

from __future__ import annotations

import secrets
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from ..errors import ExternalToolFailure, FileIOFailure

TEMP_PREFIX = "certiffix"


@dataclass
class CommandResult:
    command: List[str]
    returncode: int
    stdout: str
    stderr: str


Runner = Callable[..., CommandResult]


def run_command(cmd: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """
    同步执行外部命令并完整收集 stdout / stderr。
    :param cmd: 命令及参数。
    :param timeout: 超时秒数，None 表示不限制。
    :return: CommandResult
    :raises ExternalToolFailure: 命令不存在、超时或返回非零退出码。
    """
    cmd = [str(part) for part in cmd]
    logger.debug(f">>> {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        logger.error(f"执行命令失败: {' '.join(cmd)}: {e}")
        raise ExternalToolFailure(cmd, 127, str(e))
    except subprocess.TimeoutExpired as e:
        logger.error(f"执行命令超时 ({timeout}s): {' '.join(cmd)}")
        stderr = e.stderr if isinstance(e.stderr, str) else ""
        raise ExternalToolFailure(cmd, 124, stderr or f"timeout after {timeout}s")

    if result.returncode != 0:
        logger.error(f"执行命令失败: {' '.join(cmd)}\n{result.stderr}")
        raise ExternalToolFailure(cmd, result.returncode, result.stderr)

    return CommandResult(
        command=cmd,
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr,
    )


class TempArtifacts:
    """
    一次签发流程中的临时文件集合。

    所有文件共享同一个随机数字后缀，退出上下文时（无论成功或失败）全部删除。
    """

    def __init__(self, tmp_dir: Path, prefix: str = TEMP_PREFIX):
        self.tmp_dir = Path(tmp_dir)
        self.token = str(secrets.randbelow(10**16))
        self.prefix = prefix
        self._paths: Dict[str, Path] = {}

    def path(self, name: str) -> Path:
        """预留一个临时文件路径，例如 name="csr.pem"。"""
        if name not in self._paths:
            self._paths[name] = self.tmp_dir / f"{self.prefix}-{self.token}-{name}"
        return self._paths[name]

    def write(self, name: str, content: str) -> Path:
        path = self.path(name)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error(f"写入临时文件失败: {path}: {e}")
            raise FileIOFailure(path, str(e))
        return path

    @property
    def paths(self) -> List[Path]:
        return list(self._paths.values())

    def cleanup(self) -> None:
        for path in self._paths.values():
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"删除临时文件失败: {path}: {e}")

    def __enter__(self) -> "TempArtifacts":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


def genpkey_args(openssl: str, key_path: Path, bits: int) -> List[str]:
    """RSA 私钥生成参数。"""
    return [
        openssl,
        "genpkey",
        "-algorithm",
        "RSA",
        "-out",
        str(key_path),
        "-pkeyopt",
        f"rsa_keygen_bits:{bits}",
    ]


def self_signed_args(openssl: str, config_path: Path, key_path: Path, days: int, out_path: Path) -> List[str]:
    """自签名 CA 根证书生成参数。"""
    return [
        openssl,
        "req",
        "-x509",
        "-new",
        "-config",
        str(config_path),
        "-key",
        str(key_path),
        "-sha256",
        "-days",
        str(days),
        "-out",
        str(out_path),
    ]


def csr_args(openssl: str, config_path: Path, key_path: Path, out_path: Path) -> List[str]:
    """证书签名请求（CSR）生成参数。"""
    return [
        openssl,
        "req",
        "-new",
        "-config",
        str(config_path),
        "-key",
        str(key_path),
        "-out",
        str(out_path),
    ]


def ca_sign_args(
    openssl: str,
    csr_path: Path,
    ca_cert_path: Path,
    ca_key_path: Path,
    out_path: Path,
    days: int,
    ext_path: Path,
) -> List[str]:
    """由 CA 签发 CSR 的参数（自动创建 CA 序列号文件）。"""
    return [
        openssl,
        "x509",
        "-req",
        "-in",
        str(csr_path),
        "-CA",
        str(ca_cert_path),
        "-CAkey",
        str(ca_key_path),
        "-CAcreateserial",
        "-out",
        str(out_path),
        "-days",
        str(days),
        "-extfile",
        str(ext_path),
    ]
