"""
AI服务管理器
统一管理STT和LLM服务，对瞬时错误做有限重试
"""

from typing import Dict, List, Optional

from recap.core.logging import ai_logger
from recap.core.retry import execute_with_retry
from .base import (
    AIServiceFactory, STTProvider, LLMProvider,
    TranscriptionResult, LLMResponse, AIConfig
)
from .elevenlabs_provider import register_elevenlabs_providers
from .gemini_provider import register_gemini_providers
from .openai_provider import register_openai_providers


def register_all_providers():
    """注册所有提供商"""
    register_elevenlabs_providers()
    register_gemini_providers()
    register_openai_providers()


class AIService:
    """AI服务管理器"""

    def __init__(
        self,
        config: AIConfig,
        stt_provider: Optional[STTProvider] = None,
        llm_provider: Optional[LLMProvider] = None
    ):
        self.config = config

        if stt_provider is None or llm_provider is None:
            register_all_providers()

        # 初始化服务提供商
        self.stt_provider: STTProvider = stt_provider or AIServiceFactory.create_stt_provider(
            config.stt_provider,
            config.stt_config
        )
        self.llm_provider: LLMProvider = llm_provider or AIServiceFactory.create_llm_provider(
            config.llm_provider,
            config.llm_config
        )

    # STT相关方法
    async def transcribe_audio(
        self,
        audio: bytes,
        content_type: str = "application/octet-stream",
        **kwargs
    ) -> TranscriptionResult:
        """转录音频内容"""
        return await execute_with_retry(
            f"{self.stt_provider.provider.value} transcription",
            self.stt_provider.transcribe_audio,
            audio,
            content_type,
            retry_attempts=self.config.retry_attempts,
            retry_delay=self.config.retry_delay,
            **kwargs
        )

    # LLM相关方法
    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        **kwargs
    ) -> LLMResponse:
        """聊天完成"""
        return await execute_with_retry(
            f"{self.llm_provider.provider.value} chat completion",
            self.llm_provider.chat_completion,
            messages,
            model or self.config.default_llm_model,
            retry_attempts=self.config.retry_attempts,
            retry_delay=self.config.retry_delay,
            **kwargs
        )

    def get_provider_info(self) -> Dict[str, str]:
        """获取当前使用的提供商信息"""
        return {
            "stt_provider": self.stt_provider.provider.value,
            "llm_provider": self.llm_provider.provider.value
        }

    async def close(self):
        """关闭提供商连接"""
        await self.stt_provider.close()
        await self.llm_provider.close()


# 全局AI服务实例
ai_service: Optional[AIService] = None


def init_ai_service(config: AIConfig) -> AIService:
    """初始化AI服务"""
    global ai_service
    ai_service = AIService(config)
    ai_logger.info(
        f"AI service initialized: stt={config.stt_provider.value}, llm={config.llm_provider.value}"
    )
    return ai_service


def get_ai_service() -> AIService:
    """获取AI服务实例"""
    if ai_service is None:
        raise RuntimeError("AI service not initialized. Call init_ai_service() first.")
    return ai_service


async def shutdown_ai_service():
    """关闭AI服务"""
    global ai_service
    if ai_service is not None:
        await ai_service.close()
        ai_service = None
