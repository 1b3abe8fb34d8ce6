"""
上传记录和派生产物的持久化
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from recap.core.exceptions import (
    ConflictException, PersistenceException, ResourceNotFoundException
)
from recap.core.logging import db_logger
from recap.models import (
    DocumentText, KeyPoint, Summary, Transcription, Upload, UploadStatus
)
from recap.services.ai.base import TranscriptionResult
from recap.services.summarization import KeyPointResult


class UploadRepository:
    """上传记录仓库，每个操作使用独立会话并立即提交"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # 上传记录
    # ------------------------------------------------------------------

    async def create_upload(self, **fields: Any) -> Upload:
        """创建上传记录，初始状态为uploaded"""
        fields.setdefault("status", UploadStatus.UPLOADED.value)
        fields.setdefault("original_filename", fields.get("file_name"))
        if fields.get("id") is None:
            fields.pop("id", None)

        try:
            async with self.session_factory() as session:
                upload = Upload(**fields)
                session.add(upload)
                await session.commit()
                await session.refresh(upload)
                return upload
        except SQLAlchemyError as e:
            if isinstance(e, IntegrityError) and fields.get("id") is not None:
                db_logger.warning(f"Upload {fields['id']} already exists")
                raise ConflictException(f"Upload {fields['id']} already exists") from e
            db_logger.error(f"Failed to create upload: {e}")
            raise PersistenceException(f"Failed to create upload: {e}") from e

    async def get_upload(self, upload_id: str) -> Optional[Upload]:
        """获取上传记录"""
        async with self.session_factory() as session:
            return await session.get(Upload, upload_id)

    async def list_uploads(
        self,
        owner_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Upload]:
        """按创建时间倒序列出上传记录"""
        async with self.session_factory() as session:
            query = select(Upload)
            if owner_id is not None:
                query = query.where(Upload.owner_id == owner_id)
            query = query.order_by(Upload.created_at.desc()).limit(limit).offset(offset)

            result = await session.execute(query)
            return list(result.scalars().all())

    async def claim_for_processing(self, upload_id: str) -> bool:
        """
        把记录置为processing

        条件更新只在记录不处于processing时生效，并发的重复触发因此不会重复处理。

        Returns:
            bool: 是否成功占用；记录正在处理中时返回False

        Raises:
            ResourceNotFoundException: 记录不存在
        """
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(Upload)
                    .where(Upload.id == upload_id)
                    .where(Upload.status != UploadStatus.PROCESSING.value)
                    .values(status=UploadStatus.PROCESSING.value, error_message=None)
                )
                await session.commit()

                if result.rowcount == 1:
                    return True

                exists = await session.scalar(select(Upload.id).where(Upload.id == upload_id))
        except SQLAlchemyError as e:
            db_logger.error(f"Failed to claim upload {upload_id}: {e}")
            raise PersistenceException(f"Failed to update upload status: {e}") from e

        if exists is None:
            raise ResourceNotFoundException(f"Upload {upload_id}")
        return False

    async def _set_status(self, upload_id: str, status: UploadStatus, error_message: Optional[str] = None):
        try:
            async with self.session_factory() as session:
                await session.execute(
                    update(Upload)
                    .where(Upload.id == upload_id)
                    .values(status=status.value, error_message=error_message)
                )
                await session.commit()
        except SQLAlchemyError as e:
            db_logger.error(f"Failed to set upload {upload_id} to {status.value}: {e}")
            raise PersistenceException(f"Failed to update upload status: {e}") from e

    async def mark_completed(self, upload_id: str):
        """标记为completed"""
        await self._set_status(upload_id, UploadStatus.COMPLETED)

    async def mark_error(self, upload_id: str, error_message: str):
        """标记为error并保存错误信息"""
        await self._set_status(upload_id, UploadStatus.ERROR, error_message)

    async def set_generated_name(self, upload_id: str, generated_name: str):
        """保存AI生成的内容名称"""
        try:
            async with self.session_factory() as session:
                await session.execute(
                    update(Upload)
                    .where(Upload.id == upload_id)
                    .values(generated_name=generated_name[:500])
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceException(f"Failed to save generated name: {e}") from e

    # ------------------------------------------------------------------
    # 派生产物
    # ------------------------------------------------------------------

    async def _add(self, record):
        try:
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
                await session.refresh(record)
                return record
        except SQLAlchemyError as e:
            db_logger.error(f"Failed to save {type(record).__name__}: {e}")
            raise PersistenceException(f"Failed to save {type(record).__name__}: {e}") from e

    async def save_transcription(self, upload_id: str, result: TranscriptionResult) -> Transcription:
        """保存转录结果，原始响应完整保存"""
        return await self._add(Transcription(
            upload_id=upload_id,
            transcription_text=result.text,
            raw_payload=result.raw or {"text": result.text, "words": result.words},
            language_detected=result.language
        ))

    async def save_document_text(self, upload_id: str, text: str) -> DocumentText:
        """保存文档提取文本"""
        return await self._add(DocumentText(upload_id=upload_id, extracted_text=text))

    async def save_summary(self, upload_id: str, summary_text: str) -> Summary:
        """保存摘要"""
        return await self._add(Summary(upload_id=upload_id, summary_text=summary_text))

    async def save_key_points(self, upload_id: str, key_points: List[KeyPointResult]) -> List[KeyPoint]:
        """批量保存要点"""
        if not key_points:
            return []

        records = [
            KeyPoint(
                upload_id=upload_id,
                point_text=point.text,
                importance_level=point.importance
            )
            for point in key_points
        ]

        try:
            async with self.session_factory() as session:
                session.add_all(records)
                await session.commit()

                # 刷新以获取ID
                for record in records:
                    await session.refresh(record)
                return records
        except SQLAlchemyError as e:
            db_logger.error(f"Failed to save key points for {upload_id}: {e}")
            raise PersistenceException(f"Failed to save key points: {e}") from e

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    async def get_key_points(self, upload_id: str) -> List[KeyPoint]:
        """按重要程度倒序获取要点"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(KeyPoint)
                .where(KeyPoint.upload_id == upload_id)
                .order_by(KeyPoint.importance_level.desc(), KeyPoint.created_at)
            )
            return list(result.scalars().all())

    async def _latest(self, model, upload_id: str):
        async with self.session_factory() as session:
            result = await session.execute(
                select(model)
                .where(model.upload_id == upload_id)
                .order_by(model.created_at.desc())
                .limit(1)
            )
            return result.scalars().first()

    async def get_summary(self, upload_id: str) -> Optional[Summary]:
        """获取最新摘要"""
        return await self._latest(Summary, upload_id)

    async def get_transcription(self, upload_id: str) -> Optional[Transcription]:
        """获取最新转录"""
        return await self._latest(Transcription, upload_id)

    async def get_document_text(self, upload_id: str) -> Optional[DocumentText]:
        """获取最新文档文本"""
        return await self._latest(DocumentText, upload_id)

    async def get_source_text(self, upload_id: str) -> Optional[str]:
        """
        获取上传的原始文本（转录或文档提取文本）

        处理时的文件类型可能与登记时不同，按登记类型优先读取，没有则读取另一种产物
        """
        upload = await self.get_upload(upload_id)
        if upload is None:
            return None

        async def transcript() -> Optional[str]:
            transcription = await self.get_transcription(upload_id)
            return transcription.transcription_text if transcription else None

        async def document() -> Optional[str]:
            document_text = await self.get_document_text(upload_id)
            return document_text.extracted_text if document_text else None

        readers = (transcript, document) if upload.file_type == "audio" else (document, transcript)
        for read in readers:
            text = await read()
            if text:
                return text
        return None

    async def get_results(self, upload_id: str) -> Dict[str, Any]:
        """
        获取上传的全部处理结果

        Raises:
            ResourceNotFoundException: 记录不存在
        """
        upload = await self.get_upload(upload_id)
        if upload is None:
            raise ResourceNotFoundException(f"Upload {upload_id}")

        summary = await self.get_summary(upload_id)
        transcription = await self.get_transcription(upload_id)
        document_text = await self.get_document_text(upload_id)

        return {
            "upload": upload,
            "summary": summary.summary_text if summary else None,
            "key_points": await self.get_key_points(upload_id),
            "transcription": transcription,
            "document_text": document_text.extracted_text if document_text else None,
        }
