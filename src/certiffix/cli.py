"""
certiffix 命令行入口。

使用自签名 CA 根证书生成开发用证书：
- certiffix ca      生成自签名 CA 根证书
- certiffix cert    由指定 CA 根证书签发证书
- certiffix list    列出已有的 CA 根证书 / 叶子证书

未通过参数给出的字段会交互式询问。
"""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional

import typer
from loguru import logger
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

from src.certiffix.config import config
from src.certiffix.errors import CertiffixError, ExternalToolFailure
from src.certiffix.issuance import services
from src.certiffix.issuance.schemas import CertificateRequest, IssuedCertificate, Toolchain, WILDCARD_PREFIX
from src.certiffix.store import core as store_core
from src.certiffix.store.schemas import StoreKind, TrustStoreConfig

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="使用自签名 CA 根证书生成开发用证书",
)
console = Console()

PROMPT_QUESTIONS = [
    ("country", "国家 (Country)"),
    ("state", "州 / 省 (State or Province)"),
    ("county", "县 / 地区 (County or Locality)"),
    ("organization", "组织 (Organization)"),
    ("unit", "部门 (Unit)"),
    ("email", "邮箱 (Email)"),
    ("common_name", "通用名称 / 域名 (Common Name)"),
]


def _err(msg: str) -> None:
    console.print(f"[bold red]ERROR[/bold red] {msg}", highlight=False, soft_wrap=True)


def _ok(msg: str) -> None:
    console.print(f"[bold green]OK[/bold green] {msg}", highlight=False, soft_wrap=True)


def _warn(msg: str) -> None:
    console.print(f"[bold yellow]WARN[/bold yellow] {msg}", highlight=False, soft_wrap=True)


def _trust_store() -> TrustStoreConfig:
    return TrustStoreConfig(base_dir=config.config_dir)


def _toolchain() -> Toolchain:
    return Toolchain.from_config(config)


def resolve_values(values: Dict[str, Any], wildcard: Optional[bool]) -> Dict[str, Any]:
    """
    交互式补全缺失的字段。
    common_name 以 "*." 开头时不再询问是否为通配符证书。
    """
    resolved = dict(values)
    for name, message in PROMPT_QUESTIONS:
        if resolved.get(name) is None:
            resolved[name] = Prompt.ask(message, console=console, default="")

    common_name = resolved.get("common_name") or ""
    if common_name.startswith(WILDCARD_PREFIX):
        resolved["wildcard"] = True
    elif wildcard is None:
        resolved["wildcard"] = Confirm.ask("是否支持通配符域名？", console=console, default=False)
    else:
        resolved["wildcard"] = wildcard

    if not resolved["common_name"]:
        # 空字符串视为未提供，交由模板展开报告缺失字段
        resolved["common_name"] = None
    if not resolved.get("organization"):
        resolved["organization"] = None
    return resolved


def choose_ca(store: TrustStoreConfig) -> str:
    """在已有 CA 根证书中选择一个用于签名。"""
    choices = store_core.list_available(store, StoreKind.CA)
    if not choices:
        _err(f"没有可用的 CA 根证书，请先运行: {sys.argv[0]} ca")
        raise typer.Exit(1)

    if len(choices) == 1:
        return str(choices[0].public_cert_path)

    identifiers = [c.identifier for c in choices]
    selected = Prompt.ask(
        "选择用于签名的 CA 根证书",
        choices=identifiers,
        default=identifiers[0],
        console=console,
    )
    return str(choices[identifiers.index(selected)].public_cert_path)


def _build_request(values: Dict[str, Any]) -> CertificateRequest:
    try:
        return CertificateRequest(**values)
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"]) or "request"
            _err(f"参数 '{field}' 无效: {error['msg']}")
        raise typer.Exit(2)


def _run(workflow, request: CertificateRequest) -> IssuedCertificate:
    """唯一的错误边界：业务异常在此转换为退出码。"""
    try:
        return workflow(request, _trust_store(), _toolchain())
    except ExternalToolFailure as e:
        _err(str(e))
        raise typer.Exit(e.returncode or 1)
    except CertiffixError as e:
        _err(str(e))
        raise typer.Exit(1)


def _subject_values(
    country, state, county, organization, unit, email, common_name, ip, days
) -> Dict[str, Any]:
    return {
        "country": country,
        "state": state,
        "county": county,
        "organization": organization,
        "unit": unit,
        "email": email,
        "common_name": common_name,
        "ip": ip if ip else list(config.default_ips),
        "days": days if days is not None else config.default_days,
    }


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志（包括执行的 openssl 命令）"),
):
    """
    使用自签名 CA 根证书生成开发用证书。
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else config.log_level.upper())
    if not store_core.ensure_layout(_trust_store()):
        _warn(f"无法创建配置目录: {config.config_dir}")


@app.command("ca")
def generate_ca(
    country: Optional[str] = typer.Option(None, "--country", "--c", help="证书的国家代码"),
    state: Optional[str] = typer.Option(None, "--state", "--st", "--province", help="州 / 省"),
    county: Optional[str] = typer.Option(None, "--county", "--l", "--locality", help="县 / 地区"),
    organization: Optional[str] = typer.Option(None, "--organization", "--o", "--org", help="组织"),
    unit: Optional[str] = typer.Option(None, "--unit", "--ou", help="部门"),
    email: Optional[str] = typer.Option(None, "--email", help="邮箱地址"),
    common_name: Optional[str] = typer.Option(
        None, "--common-name", "--cn", "--common", "--domain", help="域名，以 *. 开头时生成通配符证书"
    ),
    ip: Optional[List[str]] = typer.Option(None, "--ip", help="SAN 中的 IP 地址，可多次指定"),
    days: Optional[int] = typer.Option(None, "--days", help="证书有效天数，默认 398"),
    wildcard: Optional[bool] = typer.Option(None, "--wildcard/--no-wildcard", "--wild/--no-wild", help="生成通配符证书"),
):
    """
    生成自签名 CA 根证书。
    """
    values = _subject_values(country, state, county, organization, unit, email, common_name, ip, days)
    request = _build_request(resolve_values(values, wildcard))
    issued = _run(services.generate_ca_cert, request)

    _ok(f"CA 根证书私钥已写入: {issued.private_key_path}")
    _ok(f"CA 根证书公钥已写入: {issued.public_cert_path}")
    if issued.trust_warning:
        _warn(issued.trust_warning)


@app.command("cert")
def generate_cert(
    ca: Optional[str] = typer.Option(None, "--ca", help="签名 CA 根证书的路径或名称，不指定时交互选择"),
    country: Optional[str] = typer.Option(None, "--country", "--c", help="证书的国家代码"),
    state: Optional[str] = typer.Option(None, "--state", "--st", "--province", help="州 / 省"),
    county: Optional[str] = typer.Option(None, "--county", "--l", "--locality", help="县 / 地区"),
    organization: Optional[str] = typer.Option(None, "--organization", "--o", "--org", help="组织"),
    unit: Optional[str] = typer.Option(None, "--unit", "--ou", help="部门"),
    email: Optional[str] = typer.Option(None, "--email", help="邮箱地址"),
    common_name: Optional[str] = typer.Option(
        None, "--common-name", "--cn", "--common", "--domain", help="域名，以 *. 开头时生成通配符证书"
    ),
    ip: Optional[List[str]] = typer.Option(None, "--ip", help="SAN 中的 IP 地址，可多次指定，默认 127.0.0.1"),
    days: Optional[int] = typer.Option(None, "--days", help="证书有效天数，默认 398"),
    wildcard: Optional[bool] = typer.Option(None, "--wildcard/--no-wildcard", "--wild/--no-wild", help="生成通配符证书"),
):
    """
    由指定的 CA 根证书签发证书。
    """
    store = _trust_store()
    if not ca:
        ca = choose_ca(store)

    values = _subject_values(country, state, county, organization, unit, email, common_name, ip, days)
    values["ca"] = ca
    request = _build_request(resolve_values(values, wildcard))
    issued = _run(services.generate_cert, request)

    _ok(f"证书私钥已写入: {issued.private_key_path}")
    _ok(f"证书公钥已写入: {issued.public_cert_path}")


@app.command("list")
def list_certificates(
    leaf: bool = typer.Option(False, "--leaf", help="列出叶子证书而不是 CA 根证书"),
):
    """
    列出信任库中的证书。
    """
    kind = StoreKind.LEAF if leaf else StoreKind.CA
    entries = store_core.list_available(_trust_store(), kind)
    if not entries:
        _warn("信任库中没有证书")
        return

    table = Table(title=f"certiffix {kind.value}", show_header=True, header_style="bold", box=box.MINIMAL_DOUBLE_HEAD)
    table.add_column("名称", no_wrap=True)
    table.add_column("路径")
    table.add_column("主题")
    table.add_column("过期时间", no_wrap=True)
    for entry in entries:
        info = entry.info
        table.add_row(
            entry.identifier,
            str(entry.public_cert_path),
            info.subject if info else "-",
            info.not_after.isoformat() if info else "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
