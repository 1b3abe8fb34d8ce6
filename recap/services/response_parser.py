"""
从大语言模型的文本输出中恢复JSON对象

模型输出不保证是合法JSON。提取按固定顺序尝试多个策略，每个策略产出候选字符串，
候选经过清理后解析，第一个解析成功的对象即为结果：

1. 标注为json的代码块
2. 内容以{开头、以}结尾的任意代码块
3. 全文第一个{到最后一个}之间的子串
4. 括号配平扫描得到的每个顶层{...}片段
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

_JSON_FENCE_RE = re.compile(r"```[ \t]*json[ \t]*\r?\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_ANY_FENCE_RE = re.compile(r"```[ \t]*(?:[\w+-]+)?[ \t]*\r?\n?(.*?)```", re.DOTALL)

# 字符串字面量内的原始换行/制表符转义，而不是合并
_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TYPOGRAPHIC_QUOTES = str.maketrans({
    "“": '"', "”": '"', "„": '"', "‟": '"',
    "‘": "'", "’": "'",
})


@dataclass(frozen=True)
class Found:
    """提取成功"""
    payload: Dict[str, Any]
    strategy: str


@dataclass(frozen=True)
class NotFound:
    """所有策略都没有得到可解析的JSON对象"""
    attempted: Tuple[str, ...] = ()


ExtractionResult = Union[Found, NotFound]


# ---------------------------------------------------------------------------
# 提取策略
# ---------------------------------------------------------------------------

def fenced_json_blocks(text: str) -> Iterator[str]:
    """标注为json的代码块内容"""
    for match in _JSON_FENCE_RE.finditer(text):
        yield match.group(1).strip()


def fenced_object_blocks(text: str) -> Iterator[str]:
    """内容看起来是JSON对象的任意代码块"""
    for match in _ANY_FENCE_RE.finditer(text):
        body = match.group(1).strip()
        if body.startswith("{") and body.endswith("}"):
            yield body


def outer_brace_span(text: str) -> Iterator[str]:
    """第一个{到最后一个}"""
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        yield text[start:end + 1]


def balanced_brace_spans(text: str) -> Iterator[str]:
    """
    逐个产出顶层括号配平的{...}片段

    只在括号内部跟踪双引号字符串，正文里的引号和撇号不影响扫描。
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for index, ch in enumerate(text):
        if depth and in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = index
            depth += 1
        elif ch == "}" and depth:
            depth -= 1
            if depth == 0:
                yield text[start:index + 1]


STRATEGIES: List[Tuple[str, Callable[[str], Iterator[str]]]] = [
    ("fenced_json", fenced_json_blocks),
    ("fenced_object", fenced_object_blocks),
    ("outer_braces", outer_brace_span),
    ("balanced_span", balanced_brace_spans),
]


# ---------------------------------------------------------------------------
# 清理
# ---------------------------------------------------------------------------

def clean_json_candidate(candidate: str) -> str:
    """
    清理候选JSON文本

    - 去掉 /* */ 和 // 注释
    - 去掉 } 和 ] 之前的多余逗号
    - 字符串外的空白合并为单个空格
    - 字符串内的原始换行和制表符转义，内容保持不变
    """
    out: List[str] = []
    index, length = 0, len(candidate)
    in_string = False

    while index < length:
        ch = candidate[index]

        if in_string:
            if ch == "\\" and index + 1 < length:
                out.append(candidate[index:index + 2])
                index += 2
                continue
            if ch == '"':
                in_string = False
                out.append(ch)
            else:
                out.append(_STRING_ESCAPES.get(ch, ch))
            index += 1
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
        elif candidate.startswith("//", index):
            newline = candidate.find("\n", index)
            index = length if newline == -1 else newline
            continue
        elif candidate.startswith("/*", index):
            close = candidate.find("*/", index + 2)
            index = length if close == -1 else close + 2
            continue
        elif ch.isspace():
            if out and out[-1] != " ":
                out.append(" ")
        elif ch in "}]":
            while out and out[-1] == " ":
                out.pop()
            if out and out[-1] == ",":
                out.pop()
            out.append(ch)
        else:
            out.append(ch)
        index += 1

    return "".join(out).strip()


def aggressive_clean(candidate: str) -> str:
    """更激进的清理：去掉控制字符、替换排版引号和非法的\\'转义，再做常规清理"""
    text = _CONTROL_CHARS_RE.sub("", candidate)
    text = text.translate(_TYPOGRAPHIC_QUOTES)
    text = text.replace("\\'", "'")
    return clean_json_candidate(text)


def parse_candidate(candidate: str) -> Optional[Dict[str, Any]]:
    """解析单个候选，失败时再做一次激进清理"""
    for cleaner in (clean_json_candidate, aggressive_clean):
        try:
            parsed = json.loads(cleaner(candidate))
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def extract_json_object(text: str) -> ExtractionResult:
    """
    按策略顺序从模型输出中提取第一个可解析的JSON对象

    Args:
        text: 模型原始输出

    Returns:
        Found(payload, strategy) 或 NotFound
    """
    if not text:
        return NotFound()

    attempted = []
    for name, strategy in STRATEGIES:
        attempted.append(name)
        for candidate in strategy(text):
            payload = parse_candidate(candidate)
            if payload is not None:
                return Found(payload=payload, strategy=name)

    return NotFound(attempted=tuple(attempted))
