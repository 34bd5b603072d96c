"""名称规范化模块。

提供两种规范化形式：
- normalize_exact: 用于 O(1) 精确查找的紧凑形式。
- tokenize: 用于模糊打分的有序词元序列。
"""

import re

from ontomap.constants import GENERIC_ID_TOKEN

_SEPARATORS = re.compile(r"[\s_\-]+")
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")


def normalize_exact(name: str | None) -> str:
    """转为小写并去除空白、下划线和连字符。

    Args:
        name: 原始名称。

    Returns:
        紧凑的规范化名称，输入为空时返回空字符串。

    Example:
        >>> normalize_exact("Customer_ID")
        "customerid"
    """
    if not name:
        return ""
    return _SEPARATORS.sub("", name.lower())


def tokenize(name: str | None) -> list[str]:
    """按大小写边界和分隔符切分名称。

    驼峰边界（小写或数字后接大写）与缩写边界（"URLPath" → "URL Path"）均视为切分点，
    每个词元转为小写，丢弃空词元。

    Args:
        name: 原始名称。

    Returns:
        有序的小写词元列表。

    Example:
        >>> tokenize("PrimaryCustomerID")
        ["primary", "customer", "id"]
    """
    if not name:
        return []
    spaced = _ACRONYM_WORD.sub(r"\1 \2", name)
    spaced = _LOWER_UPPER.sub(r"\1 \2", spaced)
    return [token for token in _SEPARATORS.split(spaced.lower()) if token]


def strip_id_suffix(normalized: str) -> str:
    """去掉规范化名称末尾的 "id"。"""
    if normalized.endswith(GENERIC_ID_TOKEN):
        return normalized[: -len(GENERIC_ID_TOKEN)]
    return normalized


def fk_stem_tokens(name: str | None) -> list[str]:
    """外键列名去掉 id 后缀后的词元。

    末尾词元恰为 "id" 时整体丢弃；末尾词元以 "id" 结尾时去掉该后缀。

    Example:
        >>> fk_stem_tokens("PrimaryCustomerID")
        ["primary", "customer"]
        >>> fk_stem_tokens("origin_branchid")
        ["origin", "branch"]
    """
    tokens = tokenize(name)
    if not tokens:
        return []
    last = tokens[-1]
    if last == GENERIC_ID_TOKEN:
        tokens = tokens[:-1]
    elif last.endswith(GENERIC_ID_TOKEN):
        tokens[-1] = strip_id_suffix(last)
    return [token for token in tokens if token]
