"""
上游调用的重试机制

只对瞬时错误（5xx、429、超时、连接失败）做有限次数的指数退避重试，
4xx、格式错误和配置错误直接抛出。
"""

import asyncio
from typing import Any, Awaitable, Callable

from recap.core.exceptions import UpstreamAPIException
from recap.core.logging import ai_logger


def is_transient(error: Exception) -> bool:
    """判断错误是否可以重试"""
    return isinstance(error, UpstreamAPIException) and error.transient


async def execute_with_retry(
    operation_name: str,
    operation_func: Callable[..., Awaitable[Any]],
    *args,
    retry_attempts: int = 3,
    retry_delay: float = 1.0,
    **kwargs
) -> Any:
    """带重试的操作执行"""
    attempts = max(1, retry_attempts)

    for attempt in range(attempts):
        try:
            return await operation_func(*args, **kwargs)
        except Exception as e:
            if not is_transient(e) or attempt == attempts - 1:
                if attempt > 0:
                    ai_logger.error(f"{operation_name} failed after {attempt + 1} attempts: {e}")
                raise

            delay = retry_delay * (2 ** attempt)  # 指数退避
            ai_logger.warning(
                f"{operation_name} failed (attempt {attempt + 1}/{attempts}): {e}, "
                f"retrying in {delay}s"
            )
            await asyncio.sleep(delay)
