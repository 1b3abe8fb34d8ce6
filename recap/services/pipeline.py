"""
上传处理流水线

processing → 获取文件 → 转录/文本提取 → 摘要 → completed
第2-4步任何失败都把记录标记为error并停止
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from recap.core.exceptions import (
    ConfigurationException, PersistenceException, RecapException, ValidationException
)
from recap.core.logging import pipeline_logger
from recap.models import UploadKind, UploadStatus
from recap.services.content_fetcher import ContentFetcher, FetchedContent
from recap.services.extraction import DocumentExtractionService, get_extension
from recap.services.records import UploadRepository
from recap.services.summarization import SummarizationService, SummaryResult
from recap.services.transcription import TranscriptionService


class PartialSuccessPolicy(str, Enum):
    """摘要已保存但要点保存失败时的处理策略"""
    KEY_POINTS_BEST_EFFORT = "best_effort"
    STRICT = "strict"


@dataclass
class PipelineResult:
    """一次流水线运行的结果"""
    upload_id: str
    status: UploadStatus
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    skipped: bool = False

    @property
    def success(self) -> bool:
        return self.status == UploadStatus.COMPLETED


class StepFailed(Exception):
    """某一步失败，message已带上步骤前缀"""

    def __init__(self, step: str, error: Exception):
        self.step = step
        self.error = error
        detail = error.message if isinstance(error, RecapException) else str(error)
        self.message = f"{step} failed: {detail or type(error).__name__}"
        self.code = error.code if isinstance(error, RecapException) else "INTERNAL_ERROR"
        super().__init__(self.message)


class UploadPipeline:
    """上传处理流水线控制器"""

    def __init__(
        self,
        repository: UploadRepository,
        fetcher: ContentFetcher,
        transcription_service: TranscriptionService,
        extraction_service: DocumentExtractionService,
        summarization_service: SummarizationService,
        key_points_policy: PartialSuccessPolicy = PartialSuccessPolicy.KEY_POINTS_BEST_EFFORT
    ):
        self.repository = repository
        self.fetcher = fetcher
        self.transcription_service = transcription_service
        self.extraction_service = extraction_service
        self.summarization_service = summarization_service
        self.key_points_policy = PartialSuccessPolicy(key_points_policy)

    async def run(self, upload_id: str, kind, blob_url: str) -> PipelineResult:
        """
        处理一条上传记录

        Args:
            upload_id: 上传记录ID
            kind: audio 或 document
            blob_url: 文件的存储URL

        Returns:
            PipelineResult: 处理结果，第2-4步的失败以error状态返回

        Raises:
            ValidationException: kind无效
            ResourceNotFoundException: 记录不存在
            ConfigurationException: 无法更新记录状态
        """
        try:
            kind = UploadKind(kind)
        except ValueError:
            raise ValidationException(f"Invalid fileType: {kind}")

        try:
            claimed = await self.repository.claim_for_processing(upload_id)
        except PersistenceException as e:
            raise ConfigurationException(
                f"Could not update upload {upload_id}, check the database configuration: {e.message}"
            ) from e

        if not claimed:
            pipeline_logger.warning(f"Upload {upload_id} is already processing, skipping")
            return PipelineResult(
                upload_id=upload_id,
                status=UploadStatus.PROCESSING,
                skipped=True
            )

        pipeline_logger.info(f"Processing upload {upload_id} ({kind.value})")

        try:
            fetched = await self._step("Content fetch", self.fetcher.fetch(blob_url))

            if kind == UploadKind.AUDIO:
                text = await self._transcribe(upload_id, fetched)
            else:
                text = await self._extract(upload_id, fetched)

            await self._summarize(upload_id, text)
            await self._step("Finalizing", self.repository.mark_completed(upload_id))
        except StepFailed as failure:
            return await self._fail(upload_id, failure)

        pipeline_logger.info(f"Upload {upload_id} completed")
        return PipelineResult(upload_id=upload_id, status=UploadStatus.COMPLETED)

    async def _step(self, step: str, awaitable):
        """执行一步，失败时包装为StepFailed"""
        try:
            return await awaitable
        except RecapException as e:
            raise StepFailed(step, e) from e
        except Exception as e:
            pipeline_logger.exception(f"Unexpected error during {step.lower()}: {e}")
            raise StepFailed(step, e) from e

    async def _transcribe(self, upload_id: str, fetched: FetchedContent) -> str:
        result = await self._step(
            "Transcription",
            self.transcription_service.transcribe(fetched.content, fetched.content_type)
        )
        await self._step("Transcription", self.repository.save_transcription(upload_id, result))
        return result.text

    async def _extract(self, upload_id: str, fetched: FetchedContent) -> str:
        filename = fetched.filename
        if not get_extension(filename):
            # URL里没有扩展名时使用记录上的文件名
            upload = await self._step("Document extraction", self.repository.get_upload(upload_id))
            if upload is not None:
                filename = upload.original_filename or upload.file_name or filename

        document = await self._step(
            "Document extraction",
            asyncio.to_thread(self.extraction_service.extract, fetched.content, filename)
        )
        await self._step(
            "Document extraction",
            self.repository.save_document_text(upload_id, document.text)
        )
        return document.text

    async def _summarize(self, upload_id: str, text: str):
        summary: SummaryResult = await self._step(
            "Summarization",
            self.summarization_service.summarize(text)
        )
        await self._step("Summarization", self.repository.save_summary(upload_id, summary.summary))

        try:
            await self.repository.save_key_points(upload_id, summary.key_points)
        except PersistenceException as e:
            if self.key_points_policy == PartialSuccessPolicy.STRICT:
                raise StepFailed("Saving key points", e) from e
            pipeline_logger.error(f"Key points for upload {upload_id} were not saved: {e.message}")

        if summary.title:
            try:
                await self.repository.set_generated_name(upload_id, summary.title)
            except PersistenceException as e:
                pipeline_logger.warning(f"Generated name for upload {upload_id} was not saved: {e.message}")

    async def _fail(self, upload_id: str, failure: StepFailed) -> PipelineResult:
        """记录失败状态"""
        pipeline_logger.error(f"Upload {upload_id} failed: {failure.message}")
        try:
            await self.repository.mark_error(upload_id, failure.message)
        except PersistenceException as e:
            pipeline_logger.error(f"Could not record error status for upload {upload_id}: {e.message}")

        return PipelineResult(
            upload_id=upload_id,
            status=UploadStatus.ERROR,
            error_message=failure.message,
            error_code=failure.code
        )


# 全局流水线实例
upload_pipeline: Optional[UploadPipeline] = None


def create_upload_pipeline(ai_service=None, session_factory=None, settings=None) -> UploadPipeline:
    """根据配置组装流水线"""
    from recap.config import settings as default_settings
    from recap.db.session import AsyncSessionLocal
    from recap.services.ai.ai_service import get_ai_service

    settings = settings or default_settings
    ai_service = ai_service or get_ai_service()

    return UploadPipeline(
        repository=UploadRepository(session_factory or AsyncSessionLocal),
        fetcher=ContentFetcher(timeout=settings.http_timeout),
        transcription_service=TranscriptionService(ai_service),
        extraction_service=DocumentExtractionService(
            max_text_chars=settings.max_extracted_text_chars,
            unsupported_format_policy=settings.unsupported_format_policy
        ),
        summarization_service=SummarizationService(
            ai_service,
            max_input_chars=settings.summary_input_max_chars
        ),
        key_points_policy=PartialSuccessPolicy(settings.key_points_policy)
    )


def get_upload_pipeline() -> UploadPipeline:
    """获取流水线实例（FastAPI依赖项）"""
    global upload_pipeline
    if upload_pipeline is None:
        upload_pipeline = create_upload_pipeline()
    return upload_pipeline


def get_upload_repository() -> UploadRepository:
    """获取上传记录仓库（FastAPI依赖项）"""
    from recap.db.session import AsyncSessionLocal
    return UploadRepository(AsyncSessionLocal)
