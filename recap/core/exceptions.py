"""
自定义异常类
"""

from typing import Optional

from fastapi import HTTPException, status


class RecapException(Exception):
    """Recap应用基础异常"""

    def __init__(self, message: str, code: str = "GENERAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ConfigurationException(RecapException):
    """配置错误异常（缺少密钥、数据库配置错误等）"""

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message, "CONFIGURATION_ERROR")


class ContentFetchException(RecapException):
    """上传内容无法获取"""

    def __init__(self, message: str = "Failed to fetch uploaded content"):
        super().__init__(message, "CONTENT_FETCH_ERROR")


class UnsupportedFormatException(RecapException):
    """不支持的文件格式"""

    def __init__(self, message: str = "Unsupported file format"):
        super().__init__(message, "UNSUPPORTED_FORMAT")


class UnreadableContentException(RecapException):
    """提取或转录没有得到可用文本"""

    def __init__(self, message: str = "No readable content found"):
        super().__init__(message, "UNREADABLE_CONTENT")


class UpstreamAPIException(RecapException):
    """第三方API调用失败

    transient为True表示可以重试的瞬时错误（5xx、429、超时、连接失败）
    """

    def __init__(
        self,
        message: str = "Upstream API call failed",
        status_code: Optional[int] = None,
        transient: bool = False
    ):
        self.status_code = status_code
        self.transient = transient
        super().__init__(message, "UPSTREAM_API_ERROR")


class MalformedAIResponseException(RecapException):
    """AI返回的内容无法解析为预期的JSON结构"""

    def __init__(self, message: str = "Malformed AI response"):
        super().__init__(message, "MALFORMED_AI_RESPONSE")


class PersistenceException(RecapException):
    """数据库写入失败"""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, "PERSISTENCE_ERROR")


class ValidationException(RecapException):
    """数据验证异常"""

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message, "VALIDATION_ERROR")


class ResourceNotFoundException(RecapException):
    """资源未找到异常"""

    def __init__(self, resource: str = "Resource"):
        message = f"{resource} not found"
        super().__init__(message, "RESOURCE_NOT_FOUND")


class ConflictException(RecapException):
    """资源状态冲突"""

    def __init__(self, message: str = "Resource state conflict"):
        super().__init__(message, "CONFLICT")


# HTTP异常映射
STATUS_CODE_MAPPING = {
    "CONFIGURATION_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "CONTENT_FETCH_ERROR": status.HTTP_502_BAD_GATEWAY,
    "UNSUPPORTED_FORMAT": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "UNREADABLE_CONTENT": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "UPSTREAM_API_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
    "MALFORMED_AI_RESPONSE": status.HTTP_502_BAD_GATEWAY,
    "PERSISTENCE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "RESOURCE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "CONFLICT": status.HTTP_409_CONFLICT,
}


def recap_exception_to_http_exception(exc: RecapException) -> HTTPException:
    """将Recap异常转换为HTTP异常"""

    status_code = STATUS_CODE_MAPPING.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail={
            "error": exc.message,
            "code": exc.code,
            "type": type(exc).__name__
        }
    )
