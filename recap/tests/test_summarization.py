"""
摘要服务测试
"""

import pytest

from recap.core.exceptions import (
    MalformedAIResponseException, UnreadableContentException, UpstreamAPIException
)
from recap.services.ai.ai_service import AIService
from recap.services.summarization import (
    SummarizationService,
    clamp_importance,
    normalize_key_point,
    parse_summary_response,
)
from recap.utils.text_utils import TRUNCATION_MARKER

from .conftest import FakeLLMProvider, FakeSTTProvider, make_ai_config


class TestClampImportance:
    """重要程度限制测试"""

    @pytest.mark.parametrize("value,expected", [
        (9, 5),
        (-3, 1),
        (None, 3),
        ("high", 3),
        ("4", 4),
        (2.6, 3),
        (0, 1),
        (True, 3),
        (float("nan"), 3),
        (float("inf"), 5),
    ])
    def test_clamp(self, value, expected):
        assert clamp_importance(value) == expected

    def test_key_point_without_importance_defaults_to_three(self):
        point = normalize_key_point({"point": "Memorize the Krebs cycle"})

        assert point.text == "Memorize the Krebs cycle"
        assert point.importance == 3

    def test_plain_string_key_point(self):
        point = normalize_key_point("  ATP is the energy currency  ")

        assert point.text == "ATP is the energy currency"
        assert point.importance == 3

    def test_key_point_without_text_is_dropped(self):
        assert normalize_key_point({"importance": 5}) is None
        assert normalize_key_point({"point": "   "}) is None
        assert normalize_key_point(42) is None


class TestParseSummaryResponse:
    """模型输出解析测试"""

    def test_parses_summary_and_clamped_key_points(self):
        content = """```json
{
  "title": "Thermodynamics",
  "summary": "Energy is conserved.",
  "keyPoints": [
    {"point": "First law", "importance": 9},
    {"point": "Second law", "importance": -3},
    {"point": "Third law"},
  ]
}
```"""
        result = parse_summary_response(content)

        assert result.summary == "Energy is conserved."
        assert result.title == "Thermodynamics"
        assert [(p.text, p.importance) for p in result.key_points] == [
            ("First law", 5),
            ("Second law", 1),
            ("Third law", 3),
        ]

    def test_snake_case_key_points_accepted(self):
        result = parse_summary_response(
            '{"summary": "Short", "key_points": [{"text": "Point", "importance_level": 2}]}'
        )

        assert result.key_points[0].text == "Point"
        assert result.key_points[0].importance == 2
        assert result.title is None

    def test_no_json_raises(self):
        with pytest.raises(MalformedAIResponseException):
            parse_summary_response("I am unable to help with that.")

    def test_missing_summary_raises(self):
        with pytest.raises(MalformedAIResponseException, match="summary"):
            parse_summary_response('{"keyPoints": [{"point": "Orphan", "importance": 4}]}')

    def test_non_list_key_points_are_ignored(self):
        result = parse_summary_response('{"summary": "Only a summary", "keyPoints": "none"}')

        assert result.summary == "Only a summary"
        assert result.key_points == []


class TestSummarizationService:
    """摘要服务测试"""

    @pytest.mark.asyncio
    async def test_summarize(self, ai_service, llm_provider):
        service = SummarizationService(ai_service)

        result = await service.summarize("The mitochondria is the powerhouse of the cell.")

        assert result.summary.startswith("The lecture covers")
        assert [p.importance for p in result.key_points] == [5, 4, 3]
        assert len(llm_provider.calls) == 1
        assert llm_provider.calls[0]["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_long_input_is_truncated_with_marker(self, ai_service, llm_provider):
        service = SummarizationService(ai_service, max_input_chars=30000)
        text = "x" * 30500

        result = await service.summarize(text)

        sent = llm_provider.calls[0]["messages"][-1]["content"]
        assert sent.endswith(TRUNCATION_MARKER)
        assert sent.count("x") == 30000
        assert result.summary

    @pytest.mark.asyncio
    async def test_short_input_is_not_truncated(self, ai_service, llm_provider):
        service = SummarizationService(ai_service, max_input_chars=100)

        await service.summarize("short text")

        assert TRUNCATION_MARKER not in llm_provider.calls[0]["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_empty_text_raises(self, ai_service, llm_provider):
        service = SummarizationService(ai_service)

        with pytest.raises(UnreadableContentException):
            await service.summarize("   \n ")
        assert llm_provider.calls == []

    @pytest.mark.asyncio
    async def test_malformed_reply_is_not_retried(self):
        llm = FakeLLMProvider(replies=["no json at all"])
        service = SummarizationService(
            AIService(make_ai_config(), stt_provider=FakeSTTProvider(), llm_provider=llm)
        )

        with pytest.raises(MalformedAIResponseException):
            await service.summarize("Some lecture text")
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self):
        llm = FakeLLMProvider(error=UpstreamAPIException("Gemini request failed (HTTP 400)", status_code=400))
        service = SummarizationService(
            AIService(make_ai_config(), stt_provider=FakeSTTProvider(), llm_provider=llm)
        )

        with pytest.raises(UpstreamAPIException):
            await service.summarize("Some lecture text")
        assert len(llm.calls) == 1
