"""
测试共用的 fixture：隔离的信任库、临时目录，以及模拟 openssl 的执行函数。
"""

from pathlib import Path
from typing import List, Optional

import pytest

from src.certiffix.errors import ExternalToolFailure
from src.certiffix.issuance.core import CommandResult
from src.certiffix.issuance.schemas import Toolchain
from src.certiffix.store.schemas import TrustStoreConfig


class FakeOpenSSL:
    """按 -out 参数写出占位文件；fail_on 指定的子命令返回非零退出码。"""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.calls: List[List[str]] = []
        self.temp_files_seen: List[List[Path]] = []

    def __call__(self, cmd, timeout=None) -> CommandResult:
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        if cmd[1] == self.fail_on:
            raise ExternalToolFailure(cmd, 1, f"{cmd[1]}: simulated failure")
        if "-out" in cmd:
            out = Path(cmd[cmd.index("-out") + 1])
            out.write_text(f"fake output of openssl {cmd[1]}\n", encoding="utf-8")
        return CommandResult(command=cmd, returncode=0, stdout="", stderr="")

    def subcommands(self) -> List[str]:
        return [c[1] for c in self.calls]


@pytest.fixture
def trust_store(tmp_path) -> TrustStoreConfig:
    return TrustStoreConfig(base_dir=tmp_path / "certiffix")


@pytest.fixture
def toolchain(tmp_path) -> Toolchain:
    tmp_dir = tmp_path / "tmp"
    tmp_dir.mkdir()
    return Toolchain(tmp_dir=tmp_dir)


@pytest.fixture
def fake_openssl() -> FakeOpenSSL:
    return FakeOpenSSL()


@pytest.fixture
def make_fake_openssl():
    return FakeOpenSSL
