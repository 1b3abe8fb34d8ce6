"""
AI服务抽象基类
支持语音转录(STT)和大语言模型(LLM)的通用接口
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from enum import Enum

import httpx

from recap.core.exceptions import ConfigurationException, UpstreamAPIException


class AIProvider(Enum):
    """AI服务提供商枚举"""
    OPENAI = "openai"
    ELEVENLABS = "elevenlabs"
    GEMINI = "gemini"


@dataclass
class TranscriptionResult:
    """语音转录结果

    raw保存转录服务的完整响应，逐词时间、说话人标签、音频事件都在其中
    """
    text: str
    language: Optional[str] = None
    words: List[Dict[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """大语言模型响应结果"""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def build_http_client(config: Dict[str, Any], **kwargs) -> httpx.AsyncClient:
    """根据配置构建HTTP客户端（支持代理）"""
    proxy = config.get("https_proxy") or config.get("http_proxy")
    if proxy and config.get("proxy_auth"):
        username, password = config["proxy_auth"].split(":", 1)
        scheme, _, rest = proxy.partition("://")
        proxy = f"{scheme}://{username}:{password}@{rest}"

    return httpx.AsyncClient(
        proxy=proxy,
        timeout=config.get("timeout", 120),
        **kwargs
    )


def raise_for_upstream_status(response: httpx.Response, service: str):
    """把非2xx响应转换为上游错误，5xx和429视为瞬时错误"""
    if response.is_success:
        return

    detail = response.text[:500] if response.content else response.reason_phrase
    if response.status_code in (401, 403):
        message = f"{service} rejected the credentials (HTTP {response.status_code}): {detail}"
    else:
        message = f"{service} request failed (HTTP {response.status_code}): {detail}"

    raise UpstreamAPIException(
        message,
        status_code=response.status_code,
        transient=response.status_code >= 500 or response.status_code == 429
    )


class STTProvider(ABC):
    """语音转录服务抽象基类"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.provider = self._get_provider_name()

    @abstractmethod
    def _get_provider_name(self) -> AIProvider:
        """获取提供商名称"""
        pass

    def _require_api_key(self, service: str) -> str:
        api_key = self.config.get("api_key")
        if not api_key:
            raise ConfigurationException(f"{service} API key not configured")
        return api_key

    @abstractmethod
    async def transcribe_audio(
        self,
        audio: bytes,
        content_type: str = "application/octet-stream",
        **kwargs
    ) -> TranscriptionResult:
        """
        转录音频内容

        Args:
            audio: 音频二进制内容
            content_type: 内容类型提示，如 'audio/mp4'
            **kwargs: 其他参数

        Returns:
            TranscriptionResult: 转录结果
        """
        pass

    async def close(self):
        """释放底层连接"""
        pass


class LLMProvider(ABC):
    """大语言模型服务抽象基类"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.provider = self._get_provider_name()

    @abstractmethod
    def _get_provider_name(self) -> AIProvider:
        """获取提供商名称"""
        pass

    def _require_api_key(self, service: str) -> str:
        api_key = self.config.get("api_key")
        if not api_key:
            raise ConfigurationException(f"{service} API key not configured")
        return api_key

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: float = 0.7,
        max_tokens: int = None,
        **kwargs
    ) -> LLMResponse:
        """
        聊天完成接口

        Args:
            messages: 消息列表，格式 [{"role": "user", "content": "..."}]
            model: 模型名称
            temperature: 温度参数
            max_tokens: 最大token数
            **kwargs: 其他参数

        Returns:
            LLMResponse: 模型响应
        """
        pass

    async def close(self):
        """释放底层连接"""
        pass


@dataclass
class AIConfig:
    """AI服务配置"""
    stt_provider: AIProvider
    llm_provider: AIProvider
    stt_config: Dict[str, Any]
    llm_config: Dict[str, Any]
    default_stt_model: str = None
    default_llm_model: str = None
    retry_attempts: int = 3
    retry_delay: float = 1.0


class AIServiceFactory:
    """AI服务工厂类"""

    _stt_providers = {}
    _llm_providers = {}

    @classmethod
    def register_stt_provider(cls, provider: AIProvider, provider_class):
        """注册STT提供商"""
        cls._stt_providers[provider] = provider_class

    @classmethod
    def register_llm_provider(cls, provider: AIProvider, provider_class):
        """注册LLM提供商"""
        cls._llm_providers[provider] = provider_class

    @classmethod
    def create_stt_provider(cls, provider: AIProvider, config: Dict[str, Any]) -> STTProvider:
        """创建STT服务实例"""
        if provider not in cls._stt_providers:
            raise ConfigurationException(f"Unknown STT provider: {provider.value}")
        return cls._stt_providers[provider](config)

    @classmethod
    def create_llm_provider(cls, provider: AIProvider, config: Dict[str, Any]) -> LLMProvider:
        """创建LLM服务实例"""
        if provider not in cls._llm_providers:
            raise ConfigurationException(f"Unknown LLM provider: {provider.value}")
        return cls._llm_providers[provider](config)
