"""
命令行接口 - 启动和管理命令
"""

import asyncio
import sys
from typing import Optional

import click
import uvicorn

from recap.config import settings
from recap.core.exceptions import RecapException
from recap.core.logging import setup_logging, api_logger


@click.group()
@click.version_option(version=settings.app_version)
def main():
    """Study Recap - 学习资料转录与摘要服务"""
    pass


@main.command()
@click.option('--host', default=None, help='服务器地址')
@click.option('--port', default=None, type=int, help='服务器端口')
@click.option('--reload', is_flag=True, help='开启自动重载')
@click.option('--workers', default=1, type=int, help='工作进程数')
@click.option('--log-level', default='info',
              type=click.Choice(['debug', 'info', 'warning', 'error', 'critical']),
              help='日志级别')
def server(host: Optional[str], port: Optional[int], reload: bool,
           workers: int, log_level: str):
    """启动API服务器"""
    host = host or settings.host
    port = port or settings.port

    setup_logging(level=log_level.upper())
    api_logger.info(f"Starting server on {host}:{port}")

    if reload and workers > 1:
        api_logger.warning("Reload mode does not support multiple workers, using one")
        workers = 1

    uvicorn.run(
        "recap.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
        access_log=True
    )


@main.command("init-db")
@click.option('--drop', is_flag=True, help='先删除已有的表')
def init_db_command(drop: bool):
    """创建数据库表"""
    from recap.db.session import drop_db, init_db

    setup_logging(log_to_files=False)

    async def run():
        if drop:
            await drop_db()
            api_logger.warning("Dropped existing tables")
        await init_db()

    asyncio.run(run())
    api_logger.info(f"Database initialized: {settings.database_url}")


@main.command()
@click.argument('upload_id')
@click.option('--file-type', default=None, type=click.Choice(['audio', 'document']),
              help='覆盖记录上的文件类型')
@click.option('--file-url', default=None, help='覆盖记录上的存储URL')
def process(upload_id: str, file_type: Optional[str], file_url: Optional[str]):
    """对已登记的上传记录执行处理流水线"""
    from recap.services.ai.ai_service import init_ai_service, shutdown_ai_service
    from recap.services.pipeline import create_upload_pipeline

    setup_logging(log_to_files=False)

    async def run():
        ai_service = init_ai_service(settings.ai_config)
        try:
            pipeline = create_upload_pipeline(ai_service=ai_service)
            upload = await pipeline.repository.get_upload(upload_id)
            if upload is None:
                raise click.ClickException(f"Upload {upload_id} not found")

            return await pipeline.run(
                upload_id,
                file_type or upload.file_type,
                file_url or upload.file_url
            )
        finally:
            await shutdown_ai_service()

    try:
        result = asyncio.run(run())
    except RecapException as e:
        raise click.ClickException(e.message)

    if result.skipped:
        click.echo(f"Upload {upload_id} is already processing, nothing to do")
        sys.exit(2)

    if not result.success:
        click.echo(f"Upload {upload_id} failed: {result.error_message}", err=True)
        sys.exit(1)

    click.echo(f"Upload {upload_id} completed")


if __name__ == '__main__':
    main()
