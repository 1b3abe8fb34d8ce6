"""
OpenAI API集成实现
包含Whisper STT和GPT LLM服务
"""

import io
from typing import Dict, Any, List, Optional

import openai
from openai import AsyncOpenAI

from recap.core.exceptions import UpstreamAPIException
from .base import (
    STTProvider, LLMProvider, AIProvider,
    TranscriptionResult, LLMResponse, build_http_client
)


def _create_client(config: Dict[str, Any]) -> Optional[AsyncOpenAI]:
    """创建OpenAI客户端，没有密钥时返回None，调用时再报配置错误"""
    if not config.get("api_key"):
        return None

    http_client = None
    if config.get("http_proxy") or config.get("https_proxy"):
        http_client = build_http_client(config)

    return AsyncOpenAI(
        api_key=config.get("api_key"),
        base_url=config.get("base_url"),  # 支持自定义endpoint
        timeout=config.get("timeout", 120),
        max_retries=0,  # 重试由AIService统一处理
        http_client=http_client
    )


def _translate_error(service: str, error: openai.OpenAIError) -> UpstreamAPIException:
    """把OpenAI SDK异常转换为上游错误"""
    if isinstance(error, openai.APIStatusError):
        status_code = error.status_code
        if status_code in (401, 403):
            message = f"{service} rejected the credentials (HTTP {status_code}): {error.message}"
        else:
            message = f"{service} request failed (HTTP {status_code}): {error.message}"
        return UpstreamAPIException(
            message,
            status_code=status_code,
            transient=status_code >= 500 or status_code == 429
        )
    if isinstance(error, openai.APIConnectionError):
        return UpstreamAPIException(f"{service} connection error: {error}", transient=True)
    return UpstreamAPIException(f"{service} error: {error}")


class OpenAISTTProvider(STTProvider):
    """OpenAI Whisper语音转录服务（不支持说话人分离）"""

    def __init__(self, config: Dict[str, Any], client: Optional[AsyncOpenAI] = None):
        super().__init__(config)
        self.client = client or _create_client(config)
        self.default_model = config.get("model", "whisper-1")

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.OPENAI

    async def transcribe_audio(
        self,
        audio: bytes,
        content_type: str = "application/octet-stream",
        **kwargs
    ) -> TranscriptionResult:
        """使用Whisper API转录音频"""
        self._require_api_key("OpenAI")

        transcription_params = {
            "model": kwargs.get("model", self.default_model),
            "response_format": "verbose_json",  # 获取详细信息
            "timestamp_granularities": ["word", "segment"]
        }
        if kwargs.get("language"):
            transcription_params["language"] = kwargs["language"]

        audio_file = io.BytesIO(audio)
        audio_file.name = "audio.m4a"

        try:
            response = await self.client.audio.transcriptions.create(
                file=audio_file,
                **transcription_params
            )
        except openai.OpenAIError as e:
            raise _translate_error("OpenAI Whisper", e)

        payload = response.model_dump()
        return TranscriptionResult(
            text=(payload.get("text") or "").strip(),
            language=payload.get("language"),
            words=payload.get("words") or [],
            raw=payload
        )

    async def close(self):
        if self.client is not None:
            await self.client.close()


class OpenAILLMProvider(LLMProvider):
    """OpenAI GPT大语言模型服务"""

    def __init__(self, config: Dict[str, Any], client: Optional[AsyncOpenAI] = None):
        super().__init__(config)
        self.client = client or _create_client(config)
        self.default_model = config.get("model", "gpt-4o-mini")

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.OPENAI

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: float = 0.7,
        max_tokens: int = None,
        **kwargs
    ) -> LLMResponse:
        """GPT聊天完成"""
        self._require_api_key("OpenAI")

        try:
            response = await self.client.chat.completions.create(
                model=model or self.default_model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs
            )
        except openai.OpenAIError as e:
            raise _translate_error("OpenAI", e)

        if not response.choices:
            raise UpstreamAPIException("OpenAI returned no choices")

        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise UpstreamAPIException("OpenAI blocked the response by content filtering")

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            }

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage=usage,
            finish_reason=choice.finish_reason,
            metadata={"id": response.id}
        )

    async def close(self):
        if self.client is not None:
            await self.client.close()


# 注册OpenAI提供商到工厂
def register_openai_providers():
    """注册OpenAI服务提供商"""
    from .base import AIServiceFactory

    AIServiceFactory.register_stt_provider(
        AIProvider.OPENAI,
        OpenAISTTProvider
    )
    AIServiceFactory.register_llm_provider(
        AIProvider.OPENAI,
        OpenAILLMProvider
    )
