"""
上传记录相关API端点
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from recap.core.exceptions import ResourceNotFoundException
from recap.schemas.upload import (
    KeyPointAnswer,
    KeyPointQuestion,
    UploadCreate,
    UploadResponse,
    UploadResultsResponse
)
from recap.services.ai.ai_service import get_ai_service
from recap.services.pipeline import get_upload_repository
from recap.services.records import UploadRepository
from recap.services.study_assistant import StudyAssistant

router = APIRouter()


def get_study_assistant(
    repository: UploadRepository = Depends(get_upload_repository)
) -> StudyAssistant:
    """获取要点学习助手"""
    return StudyAssistant(get_ai_service(), repository)


@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="登记上传文件"
)
async def create_upload(
    request: UploadCreate,
    repository: UploadRepository = Depends(get_upload_repository)
):
    """文件存入存储后登记上传记录，状态为uploaded；ID已存在时返回409"""
    return await repository.create_upload(**request.model_dump())


@router.get("", response_model=List[UploadResponse], summary="获取上传记录列表")
async def list_uploads(
    owner_id: Optional[str] = Query(None, description="按用户筛选"),
    limit: int = Query(50, ge=1, le=200, description="返回数量"),
    offset: int = Query(0, ge=0, description="偏移量"),
    repository: UploadRepository = Depends(get_upload_repository)
):
    """按创建时间倒序返回上传记录"""
    return await repository.list_uploads(owner_id=owner_id, limit=limit, offset=offset)


@router.get("/{upload_id}", response_model=UploadResponse, summary="获取上传记录")
async def get_upload(
    upload_id: str = Path(..., description="上传记录ID"),
    repository: UploadRepository = Depends(get_upload_repository)
):
    """获取单条上传记录及其处理状态"""
    upload = await repository.get_upload(upload_id)
    if upload is None:
        raise ResourceNotFoundException(f"Upload {upload_id}")
    return upload


@router.get("/{upload_id}/results", response_model=UploadResultsResponse, summary="获取处理结果")
async def get_upload_results(
    upload_id: str = Path(..., description="上传记录ID"),
    repository: UploadRepository = Depends(get_upload_repository)
):
    """返回转录或提取文本、摘要，以及按重要程度倒序的要点"""
    return await repository.get_results(upload_id)


@router.post("/{upload_id}/ask", response_model=KeyPointAnswer, summary="就要点提问")
async def ask_about_key_point(
    request: KeyPointQuestion,
    upload_id: str = Path(..., description="上传记录ID"),
    assistant: StudyAssistant = Depends(get_study_assistant)
):
    """结合上传的原始内容解释某个要点"""
    answer = await assistant.ask(upload_id, request.key_point, request.user_message)
    return {"response": answer}
