"""
文本处理工具模块。

提供 IRI 片段提取和结构哈希计算功能，供模型层与匹配层共用。
"""

import hashlib
import re

_IRI_SEPARATORS = re.compile(r"[#/]")


def is_iri(ref: str) -> bool:
    """判断引用是否为完整 IRI（包含协议部分）。

    Args:
        ref: 类或属性的引用字符串。

    Returns:
        包含 "://" 或以 "urn:" 开头时返回 True。
    """
    return "://" in ref or ref.startswith("urn:")


def local_name_of(ref: str) -> str:
    """
    提取 IRI 的本地名称。

    取最后一个 "#" 或 "/" 之后的片段；若引用不是 IRI，原样返回。

    Args:
        ref: IRI 或本地名称。

    Returns:
        本地名称，输入为空时返回空字符串。

    Example:
        >>> local_name_of("http://example.org/onto#Customer")
        "Customer"
    """
    if not ref:
        return ""
    if not is_iri(ref):
        return ref
    return _IRI_SEPARATORS.split(ref.rstrip("#/"))[-1]


def compute_text_hash(text: str) -> str:
    """
    计算文本的 MD5 哈希值。

    Args:
        text: 待计算哈希的文本。

    Returns:
        32 位十六进制哈希字符串。
    """
    return hashlib.md5(text.encode("utf-8")).hexdigest()
