"""
Google Gemini API集成实现
提供Gemini LLM服务支持
"""

from typing import Dict, Any, List, Optional, Tuple

import httpx

from recap.core.exceptions import UpstreamAPIException
from .base import (
    LLMProvider, AIProvider, LLMResponse,
    build_http_client, raise_for_upstream_status
)


class GeminiLLMProvider(LLMProvider):
    """Google Gemini大语言模型服务"""

    def __init__(self, config: Dict[str, Any], http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.base_url = (config.get("base_url") or "https://generativelanguage.googleapis.com").rstrip("/")
        self.default_model = config.get("model", "gemini-1.5-flash")
        self.client = http_client or build_http_client(
            config, headers={"content-type": "application/json"}
        )

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.GEMINI

    def _convert_messages(self, messages: List[Dict[str, str]]) -> Tuple[str, List[Dict[str, Any]]]:
        """
        转换消息格式为Gemini API格式
        Gemini使用systemInstruction和contents的分离结构，助手角色名为model
        """
        system_parts = []
        contents = []

        for msg in messages:
            if msg["role"] == "system":
                system_parts.append(msg["content"])
            elif msg["role"] in ("user", "assistant"):
                contents.append({
                    "role": "model" if msg["role"] == "assistant" else "user",
                    "parts": [{"text": msg["content"]}]
                })

        return "\n\n".join(system_parts), contents

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: float = 0.7,
        max_tokens: int = None,
        **kwargs
    ) -> LLMResponse:
        """Gemini内容生成"""
        api_key = self._require_api_key("Google Gemini")
        model = model or self.default_model

        system_message, contents = self._convert_messages(messages)

        generation_config = {"temperature": temperature}
        if max_tokens:
            generation_config["maxOutputTokens"] = max_tokens

        request_data = {
            "contents": contents,
            "generationConfig": generation_config
        }
        if system_message:
            request_data["systemInstruction"] = {"parts": [{"text": system_message}]}

        try:
            response = await self.client.post(
                f"{self.base_url}/v1beta/models/{model}:generateContent",
                params={"key": api_key},
                json=request_data
            )
        except httpx.TimeoutException as e:
            raise UpstreamAPIException(f"Gemini request timed out: {e}", transient=True)
        except httpx.TransportError as e:
            raise UpstreamAPIException(f"Gemini connection error: {e}", transient=True)

        raise_for_upstream_status(response, "Gemini")

        try:
            result = response.json()
        except ValueError:
            raise UpstreamAPIException("Gemini returned a non-JSON response")

        block_reason = (result.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise UpstreamAPIException(f"Gemini blocked the request: {block_reason}")

        candidates = result.get("candidates") or []
        if not candidates:
            raise UpstreamAPIException("Gemini returned no candidates")

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")
        parts = (candidate.get("content") or {}).get("parts") or []
        content = "".join(part.get("text", "") for part in parts)

        if not content and finish_reason == "SAFETY":
            raise UpstreamAPIException("Gemini blocked the response by safety filtering")

        usage_metadata = result.get("usageMetadata") or {}
        return LLMResponse(
            content=content,
            model=result.get("modelVersion", model),
            usage={
                "prompt_tokens": usage_metadata.get("promptTokenCount", 0),
                "completion_tokens": usage_metadata.get("candidatesTokenCount", 0),
                "total_tokens": usage_metadata.get("totalTokenCount", 0)
            },
            finish_reason=finish_reason,
            metadata={"safety_ratings": candidate.get("safetyRatings", [])}
        )

    async def close(self):
        await self.client.aclose()


# 注册Gemini提供商到工厂
def register_gemini_providers():
    """注册Gemini服务提供商"""
    from .base import AIServiceFactory

    AIServiceFactory.register_llm_provider(
        AIProvider.GEMINI,
        GeminiLLMProvider
    )
