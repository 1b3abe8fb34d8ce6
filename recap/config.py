"""
应用配置管理
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from pathlib import Path

# AI配置相关的类将在需要时动态导入以避免循环依赖


class Settings(BaseSettings):
    """应用配置"""

    # 基本配置
    app_name: str = "Study Recap API"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="调试模式")

    # 服务器配置
    host: str = Field(default="0.0.0.0", description="服务器地址")
    port: int = Field(default=8000, description="服务器端口")

    # 数据库配置
    database_url: str = Field(
        default="sqlite+aiosqlite:///./recap.db",
        description="数据库连接URL"
    )
    database_echo: bool = Field(default=False, description="SQL语句调试输出")
    database_pool_size: int = Field(default=10, description="连接池大小")
    database_max_overflow: int = Field(default=20, description="连接池最大溢出")

    # 日志配置
    log_dir: str = Field(default="logs", description="日志目录")

    # 服务提供商选择
    stt_provider: str = Field(default="elevenlabs", description="语音转录服务: elevenlabs, openai")
    llm_provider: str = Field(default="gemini", description="大语言模型服务: gemini, openai")

    # ElevenLabs配置
    elevenlabs_api_key: Optional[str] = Field(default=None, description="ElevenLabs API密钥")
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io", description="ElevenLabs API基础URL")
    elevenlabs_model: str = Field(default="scribe_v1", description="ElevenLabs转录模型")

    # OpenAI配置
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API密钥")
    openai_base_url: Optional[str] = Field(default=None, description="OpenAI API基础URL")
    openai_model: str = Field(default="gpt-4o-mini", description="默认OpenAI模型")
    whisper_model: str = Field(default="whisper-1", description="默认Whisper模型")

    # Gemini配置
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API密钥")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Gemini API基础URL"
    )
    gemini_model: str = Field(default="gemini-1.5-flash", description="默认Gemini模型")

    # 代理配置
    http_proxy: Optional[str] = Field(default=None, description="HTTP代理地址")
    https_proxy: Optional[str] = Field(default=None, description="HTTPS代理地址")
    proxy_auth: Optional[str] = Field(default=None, description="代理认证信息 (username:password)")

    # 上游调用配置
    http_timeout: float = Field(default=120.0, description="HTTP请求超时(秒)")
    retry_attempts: int = Field(default=3, description="瞬时错误的最大尝试次数")
    retry_delay: float = Field(default=1.0, description="重试初始间隔(秒)，按指数退避")

    # 处理流水线配置
    summary_input_max_chars: int = Field(default=30000, description="送入摘要模型的最大字符数")
    max_extracted_text_chars: int = Field(
        default=5_000_000,
        description="文档提取文本的最大字符数，超出部分截断"
    )
    unsupported_format_policy: str = Field(
        default="error",
        description="不支持的文档格式处理策略: error, placeholder"
    )
    key_points_policy: str = Field(
        default="best_effort",
        description="要点保存失败时的策略: best_effort, strict"
    )

    # CORS配置
    allowed_origins: list = Field(
        default=["http://localhost:8081", "http://127.0.0.1:8081"],
        description="允许的跨域源"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def ai_config(self):
        """获取AI服务配置"""
        # 动态导入以避免循环依赖
        from recap.services.ai.base import AIProvider, AIConfig

        proxy_config = {
            "http_proxy": self.http_proxy,
            "https_proxy": self.https_proxy,
            "proxy_auth": self.proxy_auth
        }

        stt_provider = AIProvider(self.stt_provider)
        llm_provider = AIProvider(self.llm_provider)

        if stt_provider == AIProvider.OPENAI:
            stt_config = {
                "api_key": self.openai_api_key,
                "base_url": self.openai_base_url,
                "model": self.whisper_model,
            }
        else:
            stt_config = {
                "api_key": self.elevenlabs_api_key,
                "base_url": self.elevenlabs_base_url,
                "model": self.elevenlabs_model,
            }

        if llm_provider == AIProvider.OPENAI:
            llm_config = {
                "api_key": self.openai_api_key,
                "base_url": self.openai_base_url,
                "model": self.openai_model,
            }
        else:
            llm_config = {
                "api_key": self.gemini_api_key,
                "base_url": self.gemini_base_url,
                "model": self.gemini_model,
            }

        stt_config.update(timeout=self.http_timeout, **proxy_config)
        llm_config.update(timeout=self.http_timeout, **proxy_config)

        return AIConfig(
            stt_provider=stt_provider,
            llm_provider=llm_provider,
            stt_config=stt_config,
            llm_config=llm_config,
            default_stt_model=stt_config["model"],
            default_llm_model=llm_config["model"],
            retry_attempts=self.retry_attempts,
            retry_delay=self.retry_delay
        )

    def ensure_directories(self):
        """确保必要的目录存在"""
        Path(self.log_dir).mkdir(parents=True, exist_ok=True)


# 创建全局配置实例
settings = Settings()
