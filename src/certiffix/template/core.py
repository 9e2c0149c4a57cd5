"""
OpenSSL 配置模板的展开逻辑。

公开接口：
- CONFIG_TEMPLATE: 主题（distinguished name）配置模板
- CONFIG_EXT_TEMPLATE: 叶子证书扩展配置模板（含 SAN）
- standard_mangle: 将任意文本转换为文件名安全的标识符
- expand_template: 以参数表展开模板
- build_template_context: 由 CertificateRequest 生成模板参数表
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping

from ..errors import MissingRequiredField

CONFIG_TEMPLATE = """
[req]
prompt = no
distinguished_name = {MASTER_NAME}

[{MASTER_NAME}]
C = {COUNTRY}
ST = {STATE}
L = {COUNTY}
O = {ORGANIZATION}
OU = {UNIT}
emailAddress = {EMAIL}
CN = {COMMON_NAME}
"""

CONFIG_EXT_TEMPLATE = """
authorityKeyIdentifier=keyid,issuer
basicConstraints=CA:FALSE
keyUsage = digitalSignature, nonRepudiation, keyEncipherment, dataEncipherment
subjectAltName = @alt_names

[alt_names]
{DNS}
{IP}
"""

REQUIRED_FIELDS = ("organization", "common_name")
OPTIONAL_SUBJECT_FIELDS = ("country", "state", "county", "unit", "email")

_PLACEHOLDER_RE = re.compile(r"\{([A-Z_]+)\}")
_NON_WORD_RE = re.compile(r"\W+", re.ASCII)
_LEADING_RE = re.compile(r"^[^a-zA-Z]+")
_TRAILING_RE = re.compile(r"[^a-zA-Z]+$")


def standard_mangle(text: str) -> str:
    """
    将文本转换为小写、仅含字母数字与下划线的标识符。
    非单词字符序列替换为单个下划线，再去掉首尾的非字母字符。
    :param text: 原始文本，例如 DNS 名称。
    :return: 例如 "root.test" -> "root_test"。
    """
    mangled = _NON_WORD_RE.sub("_", text)
    mangled = _LEADING_RE.sub("", mangled)
    mangled = _TRAILING_RE.sub("", mangled)
    return mangled.lower()


def _render_value(key: str, value: Any) -> str:
    if isinstance(value, (list, tuple)):
        # 多值字段展开为 KEY.1 = a、KEY.2 = b ...
        name = key.upper()
        return "".join(f"{name}.{index} = {item}\n" for index, item in enumerate(value, start=1))
    return str(value)


def expand_template(template: str, params: Mapping[str, Any]) -> str:
    """
    以参数表展开模板中的 {UPPER_CASE} 占位符。
    :param template: 模板文本。
    :param params: 小写键名的参数表。
    :return: 展开后的文本。
    :raises MissingRequiredField: 缺少 organization / common_name，或任一占位符没有对应值。
    """
    args: Dict[str, Any] = dict(params)

    for field in REQUIRED_FIELDS:
        if args.get(field) is None:
            raise MissingRequiredField(field)

    if args.get("master_name") is None:
        args["master_name"] = standard_mangle(f"{args['organization']}:{args['common_name']}")

    def _replace(match: re.Match) -> str:
        key = match.group(1).lower()
        value = args.get(key)
        if value is None:
            raise MissingRequiredField(key)
        return _render_value(key, value)

    return _PLACEHOLDER_RE.sub(_replace, template)


def build_template_context(request) -> Dict[str, Any]:
    """
    由 CertificateRequest 生成模板参数表（键名统一小写），并预先计算 master_name。
    未填写的可选主题字段按空字符串展开，只有 organization / common_name 缺失时展开失败。
    """
    context: Dict[str, Any] = {
        key.lower(): value for key, value in request.model_dump(exclude={"ca"}).items()
    }
    for field in OPTIONAL_SUBJECT_FIELDS:
        if context.get(field) is None:
            context[field] = ""
    if context.get("organization") is not None and context.get("common_name") is not None:
        context["master_name"] = standard_mangle(
            f"{context['organization']}:{context['common_name']}"
        )
    return context
