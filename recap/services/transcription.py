"""
转录服务
"""

from recap.core.exceptions import UnreadableContentException
from recap.core.logging import ai_logger
from recap.services.ai.ai_service import AIService
from recap.services.ai.base import TranscriptionResult


class TranscriptionService:
    """转录服务，输出完整保留转录服务的原始响应"""

    def __init__(self, ai_service: AIService):
        self.ai_service = ai_service

    async def transcribe(
        self,
        audio: bytes,
        content_type: str = "application/octet-stream",
        **kwargs
    ) -> TranscriptionResult:
        """
        转录音频内容

        Args:
            audio: 音频二进制内容
            content_type: 内容类型提示
            **kwargs: 传给提供商的其他参数

        Returns:
            TranscriptionResult: 转录结果

        Raises:
            ConfigurationException: 缺少API密钥
            UpstreamAPIException: 转录服务返回非2xx
            UnreadableContentException: 没有得到转录文本
        """
        if not audio:
            raise UnreadableContentException("Audio content is empty")

        result = await self.ai_service.transcribe_audio(audio, content_type, **kwargs)

        if not result.text or not result.text.strip():
            raise UnreadableContentException("Transcription returned no text")

        ai_logger.info(
            f"Transcribed {len(audio)} bytes: {len(result.text)} characters, "
            f"{len(result.words)} words, language={result.language}"
        )
        return result
