"""
摘要服务
把原始文本交给大语言模型生成摘要和按重要程度排序的要点
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from recap.core.exceptions import MalformedAIResponseException, UnreadableContentException
from recap.core.logging import ai_logger
from recap.services.ai.ai_service import AIService
from recap.services.response_parser import NotFound, extract_json_object
from recap.utils.text_utils import truncate_text

DEFAULT_IMPORTANCE = 3
MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 5

SUMMARY_SYSTEM_PROMPT = """
You are a study assistant. You analyze a student's coursework material
(lecture transcripts, notes, readings) and produce study aids.

Respond with a single JSON object and nothing else, using exactly this structure:
{
  "title": "A short descriptive title for the material (max 8 words)",
  "summary": "A comprehensive summary of the material",
  "keyPoints": [
    {"point": "First key point", "importance": 5},
    {"point": "Second key point", "importance": 4}
  ]
}

Rules:
1. "importance" is an integer from 1 (minor detail) to 5 (essential to study).
2. Key points are short, self-contained facts a student can review.
3. Write in the same language as the material.
"""


@dataclass
class KeyPointResult:
    """单个要点"""
    text: str
    importance: int = DEFAULT_IMPORTANCE


@dataclass
class SummaryResult:
    """摘要结果"""
    summary: str
    key_points: List[KeyPointResult] = field(default_factory=list)
    title: Optional[str] = None


def clamp_importance(value: Any) -> int:
    """重要程度限制在1-5的整数，缺失或无法识别时为3"""
    if value is None or isinstance(value, bool):
        return DEFAULT_IMPORTANCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_IMPORTANCE
    if math.isnan(number):
        return DEFAULT_IMPORTANCE
    if math.isinf(number):
        return MAX_IMPORTANCE if number > 0 else MIN_IMPORTANCE
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, int(round(number))))


def normalize_key_point(item: Any) -> Optional[KeyPointResult]:
    """把模型给出的要点条目规范化，没有文本的条目丢弃"""
    if isinstance(item, str):
        text, importance = item, None
    elif isinstance(item, dict):
        text = item.get("point", item.get("text"))
        importance = item.get("importance", item.get("importance_level"))
    else:
        return None

    if not isinstance(text, str) or not text.strip():
        return None
    return KeyPointResult(text=text.strip(), importance=clamp_importance(importance))


def parse_summary_response(content: str) -> SummaryResult:
    """
    解析模型输出为摘要结果

    Raises:
        MalformedAIResponseException: 没有可解析的JSON对象或缺少summary字段
    """
    result = extract_json_object(content)
    if isinstance(result, NotFound):
        raise MalformedAIResponseException(
            "AI response did not contain a parseable JSON object"
        )

    payload: Dict[str, Any] = result.payload
    summary = payload.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise MalformedAIResponseException("AI response is missing the summary field")

    raw_points = payload.get("keyPoints", payload.get("key_points")) or []
    if not isinstance(raw_points, list):
        raw_points = []

    key_points = [point for point in map(normalize_key_point, raw_points) if point]

    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        title = None

    ai_logger.debug(
        f"Parsed AI response via {result.strategy}: {len(key_points)} key points"
    )
    return SummaryResult(summary=summary.strip(), key_points=key_points, title=title and title.strip())


class SummarizationService:
    """摘要服务"""

    def __init__(
        self,
        ai_service: AIService,
        max_input_chars: int = 30000,
        temperature: float = 0.3
    ):
        self.ai_service = ai_service
        self.max_input_chars = max_input_chars
        self.temperature = temperature

    def build_messages(self, text: str) -> List[Dict[str, str]]:
        """构建摘要请求消息，超长文本截断"""
        prepared = truncate_text(text, self.max_input_chars)
        if len(prepared) != len(text):
            ai_logger.info(
                f"Summary input truncated from {len(text)} to {self.max_input_chars} characters"
            )

        return [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT.strip()},
            {"role": "user", "content": f"Material:\n{prepared}"}
        ]

    async def summarize(self, text: str) -> SummaryResult:
        """
        生成摘要和要点

        Args:
            text: 转录或提取得到的原始文本

        Returns:
            SummaryResult: 摘要、要点和建议标题
        """
        if not text or not text.strip():
            raise UnreadableContentException("There is no text to summarize")

        response = await self.ai_service.chat_completion(
            self.build_messages(text),
            temperature=self.temperature
        )
        return parse_summary_response(response.content)
