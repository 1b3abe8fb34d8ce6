"""
ElevenLabs Speech-to-Text集成实现
请求逐词时间戳和说话人分离
"""

from typing import Dict, Any, Optional

import httpx

from recap.core.exceptions import UpstreamAPIException
from .base import (
    STTProvider, AIProvider, TranscriptionResult,
    build_http_client, raise_for_upstream_status
)

CONTENT_TYPE_EXTENSIONS = {
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
}


class ElevenLabsSTTProvider(STTProvider):
    """ElevenLabs语音转录服务"""

    def __init__(self, config: Dict[str, Any], http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.base_url = (config.get("base_url") or "https://api.elevenlabs.io").rstrip("/")
        self.default_model = config.get("model", "scribe_v1")
        self.client = http_client or build_http_client(config)

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.ELEVENLABS

    async def transcribe_audio(
        self,
        audio: bytes,
        content_type: str = "application/octet-stream",
        **kwargs
    ) -> TranscriptionResult:
        """使用ElevenLabs API转录音频"""
        api_key = self._require_api_key("ElevenLabs")

        extension = CONTENT_TYPE_EXTENSIONS.get(content_type.split(";")[0].strip(), "m4a")
        data = {
            "model_id": kwargs.get("model", self.default_model),
            "diarize": "true",
            "timestamps_granularity": "word",
            "tag_audio_events": "true",
        }
        if kwargs.get("language"):
            data["language_code"] = kwargs["language"]

        try:
            response = await self.client.post(
                f"{self.base_url}/v1/speech-to-text",
                headers={"xi-api-key": api_key},
                data=data,
                files={"file": (f"audio.{extension}", audio, content_type)},
            )
        except httpx.TimeoutException as e:
            raise UpstreamAPIException(f"ElevenLabs request timed out: {e}", transient=True)
        except httpx.TransportError as e:
            raise UpstreamAPIException(f"ElevenLabs connection error: {e}", transient=True)

        raise_for_upstream_status(response, "ElevenLabs")

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamAPIException("ElevenLabs returned a non-JSON response")

        words = payload.get("words") or []
        return TranscriptionResult(
            text=(payload.get("text") or "").strip(),
            language=payload.get("language_code"),
            words=[w for w in words if w.get("type", "word") == "word"],
            raw=payload
        )

    async def close(self):
        await self.client.aclose()


# 注册ElevenLabs提供商到工厂
def register_elevenlabs_providers():
    """注册ElevenLabs服务提供商"""
    from .base import AIServiceFactory

    AIServiceFactory.register_stt_provider(
        AIProvider.ELEVENLABS,
        ElevenLabsSTTProvider
    )
