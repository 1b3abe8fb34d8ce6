"""
文本处理工具函数
"""

import re

TRUNCATION_MARKER = "\n\n[Content truncated...]"

_HORIZONTAL_WHITESPACE_RE = re.compile(r"[ \t\f\v\u00a0]+")
_EXCESS_BLANK_LINES_RE = re.compile(r"\n{3,}")


def truncate_text(text: str, max_chars: int, marker: str = TRUNCATION_MARKER) -> str:
    """
    超过上限的文本截断并追加截断标记

    Args:
        text: 原始文本
        max_chars: 最大字符数（不含标记）
        marker: 截断标记

    Returns:
        str: 截断后的文本
    """
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + marker


def normalize_line_endings(text: str) -> str:
    """统一换行符为\\n"""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def collapse_blank_lines(text: str) -> str:
    """连续多个空行合并为一个空行"""
    return _EXCESS_BLANK_LINES_RE.sub("\n\n", text)


def normalize_whitespace(text: str) -> str:
    """
    规范化空白：行内空白合并为单个空格，去掉行首尾空白，合并多余空行
    """
    lines = [
        _HORIZONTAL_WHITESPACE_RE.sub(" ", line).strip()
        for line in normalize_line_endings(text).split("\n")
    ]
    return collapse_blank_lines("\n".join(lines)).strip()
