"""
上传内容获取
根据存储URL下载文件内容，不做重试
"""

import mimetypes
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from recap.core.exceptions import ContentFetchException
from recap.core.logging import pipeline_logger


@dataclass
class FetchedContent:
    """下载得到的文件"""
    content: bytes
    content_type: str
    filename: str


def describe_url(url: str) -> str:
    """日志里只保留host和路径，避免泄露签名参数"""
    parsed = urlparse(url)
    return f"{parsed.netloc}{parsed.path}"


class ContentFetcher:
    """存储内容获取器"""

    def __init__(self, timeout: float = 120.0, http_client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.http_client = http_client

    async def fetch(self, url: str) -> FetchedContent:
        """
        下载文件

        Raises:
            ContentFetchException: URL无效、网络错误、非2xx响应或内容为空
        """
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ContentFetchException(f"Invalid file URL: {url!r}")

        try:
            if self.http_client is not None:
                response = await self.http_client.get(url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise ContentFetchException(
                f"Could not retrieve uploaded file from {describe_url(url)}: {e}"
            ) from e

        if not response.is_success:
            raise ContentFetchException(
                f"Could not retrieve uploaded file from {describe_url(url)} "
                f"(HTTP {response.status_code})"
            )

        content = response.content
        if not content:
            raise ContentFetchException("The uploaded file is empty")

        filename = unquote(parsed.path.rsplit("/", 1)[-1])
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type or content_type == "application/octet-stream":
            content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        pipeline_logger.debug(
            f"Fetched {len(content)} bytes from {describe_url(url)} ({content_type})"
        )
        return FetchedContent(content=content, content_type=content_type, filename=filename)
