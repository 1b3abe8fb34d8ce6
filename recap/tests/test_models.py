"""
数据模型和记录仓库测试
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from recap.core.exceptions import (
    ConflictException, PersistenceException, ResourceNotFoundException
)
from recap.models import KeyPoint, Summary, Transcription, Upload, UploadStatus
from recap.services.ai.base import TranscriptionResult
from recap.services.summarization import KeyPointResult


class TestUploadModel:
    """上传模型测试"""

    @pytest.mark.asyncio
    async def test_create_upload_defaults(self, repository):
        upload = await repository.create_upload(
            owner_id="student-1",
            file_name="Lecture 1",
            file_type="audio",
            file_url="https://storage.test/l1.m4a"
        )

        assert upload.id is not None
        assert len(upload.id) == 36
        assert upload.status == UploadStatus.UPLOADED.value
        assert upload.original_filename == "Lecture 1"
        assert upload.file_size == 0
        assert upload.created_at is not None

    @pytest.mark.asyncio
    async def test_caller_supplied_id(self, upload_factory):
        upload = await upload_factory("U1")

        assert upload.id == "U1"
        assert repr(upload) == "<Upload U1 document uploaded>"

    @pytest.mark.asyncio
    async def test_duplicate_id_is_conflict(self, upload_factory):
        await upload_factory("dup")

        with pytest.raises(ConflictException, match="Upload dup already exists"):
            await upload_factory("dup")

    @pytest.mark.asyncio
    async def test_missing_required_column_is_persistence_error(self, repository):
        with pytest.raises(PersistenceException):
            await repository.create_upload(
                file_name="No owner",
                file_type="audio",
                file_url="https://storage.test/a.m4a"
            )

    def test_terminal_statuses(self):
        assert UploadStatus.COMPLETED.is_terminal
        assert UploadStatus.ERROR.is_terminal
        assert not UploadStatus.PROCESSING.is_terminal
        assert not UploadStatus.UPLOADED.is_terminal

    @pytest.mark.asyncio
    async def test_artifacts_cascade_on_delete(self, repository, upload_factory, session_factory):
        await upload_factory("C1", file_type="audio")
        await repository.save_transcription("C1", TranscriptionResult(text="hello", raw={"text": "hello"}))
        await repository.save_summary("C1", "A summary")
        await repository.save_key_points("C1", [KeyPointResult("Point", 4)])

        async with session_factory() as session:
            upload = await session.get(Upload, "C1")
            await session.delete(upload)
            await session.commit()

            for model in (Transcription, Summary, KeyPoint):
                rows = (await session.execute(select(model).where(model.upload_id == "C1"))).scalars().all()
                assert rows == []

    @pytest.mark.asyncio
    async def test_importance_level_check_constraint(self, upload_factory, session_factory):
        await upload_factory("C2")

        async with session_factory() as session:
            session.add(KeyPoint(upload_id="C2", point_text="Out of range", importance_level=9))
            with pytest.raises(IntegrityError):
                await session.commit()


class TestUploadRepository:
    """记录仓库测试"""

    @pytest.mark.asyncio
    async def test_claim_transitions(self, repository, upload_factory):
        await upload_factory("S1")

        assert await repository.claim_for_processing("S1") is True
        assert (await repository.get_upload("S1")).status == "processing"
        assert await repository.claim_for_processing("S1") is False

        await repository.mark_error("S1", "Content fetch failed: timeout")
        upload = await repository.get_upload("S1")
        assert upload.status == "error"
        assert upload.error_message == "Content fetch failed: timeout"

        assert await repository.claim_for_processing("S1") is True
        upload = await repository.get_upload("S1")
        assert upload.status == "processing"
        assert upload.error_message is None

        await repository.mark_completed("S1")
        assert (await repository.get_upload("S1")).status == "completed"

    @pytest.mark.asyncio
    async def test_claim_unknown_upload(self, repository):
        with pytest.raises(ResourceNotFoundException):
            await repository.claim_for_processing("ghost")

    @pytest.mark.asyncio
    async def test_transcription_keeps_raw_payload(self, repository, upload_factory):
        await upload_factory("T1", file_type="audio")
        raw = {
            "text": "Hi there",
            "language_code": "en",
            "words": [{"text": "Hi", "start": 0.0, "end": 0.2, "speaker_id": "speaker_0"}]
        }

        await repository.save_transcription("T1", TranscriptionResult(text="Hi there", language="en", raw=raw))

        transcription = await repository.get_transcription("T1")
        assert transcription.transcription_text == "Hi there"
        assert transcription.raw_payload == raw
        assert transcription.language_detected == "en"

    @pytest.mark.asyncio
    async def test_key_points_ordered_by_importance(self, repository, upload_factory):
        await upload_factory("K1")

        await repository.save_key_points("K1", [
            KeyPointResult("Minor detail", 1),
            KeyPointResult("Essential idea", 5),
            KeyPointResult("Useful fact", 3),
        ])

        points = await repository.get_key_points("K1")
        assert [p.point_text for p in points] == ["Essential idea", "Useful fact", "Minor detail"]

    @pytest.mark.asyncio
    async def test_save_no_key_points(self, repository, upload_factory):
        await upload_factory("K2")

        assert await repository.save_key_points("K2", []) == []

    @pytest.mark.asyncio
    async def test_source_text(self, repository, upload_factory):
        await upload_factory("S2", file_type="audio")
        await upload_factory("S3", file_type="document")
        await repository.save_transcription("S2", TranscriptionResult(text="Spoken words"))
        await repository.save_document_text("S3", "Written words")

        assert await repository.get_source_text("S2") == "Spoken words"
        assert await repository.get_source_text("S3") == "Written words"
        assert await repository.get_source_text("missing") is None

    @pytest.mark.asyncio
    async def test_source_text_falls_back_to_other_artifact(self, repository, upload_factory):
        await upload_factory("S4", file_type="audio")
        await upload_factory("S5", file_type="document")
        await repository.save_document_text("S4", "Processed as a document")
        await repository.save_transcription("S5", TranscriptionResult(text="Processed as audio"))

        assert await repository.get_source_text("S4") == "Processed as a document"
        assert await repository.get_source_text("S5") == "Processed as audio"

    @pytest.mark.asyncio
    async def test_source_text_without_artifacts(self, repository, upload_factory):
        await upload_factory("S6", file_type="audio")

        assert await repository.get_source_text("S6") is None

    @pytest.mark.asyncio
    async def test_results_for_unknown_upload(self, repository):
        with pytest.raises(ResourceNotFoundException):
            await repository.get_results("ghost")

    @pytest.mark.asyncio
    async def test_generated_name_is_truncated(self, repository, upload_factory):
        await upload_factory("G1")

        await repository.set_generated_name("G1", "x" * 600)

        assert len((await repository.get_upload("G1")).generated_name) == 500
