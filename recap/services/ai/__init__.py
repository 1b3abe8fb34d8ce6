"""
AI服务模块初始化
"""

from .base import AIProvider, AIConfig, AIServiceFactory, TranscriptionResult, LLMResponse
from .ai_service import (
    AIService,
    init_ai_service,
    get_ai_service,
    shutdown_ai_service
)


__all__ = [
    'AIProvider',
    'AIConfig',
    'AIServiceFactory',
    'TranscriptionResult',
    'LLMResponse',
    'AIService',
    'init_ai_service',
    'get_ai_service',
    'shutdown_ai_service'
]
