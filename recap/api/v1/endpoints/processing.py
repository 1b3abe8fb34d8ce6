"""
上传处理触发端点
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from recap.core.exceptions import (
    ConfigurationException, RecapException, ResourceNotFoundException, ValidationException
)
from recap.core.logging import api_logger
from recap.models import UploadKind
from recap.schemas.upload import ProcessUploadRequest
from recap.services.pipeline import UploadPipeline, get_upload_pipeline

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/process-upload", summary="处理上传文件")
async def process_upload(
    request: ProcessUploadRequest,
    pipeline: UploadPipeline = Depends(get_upload_pipeline)
):
    """
    对已上传的文件执行完整处理：转录或文本提取，然后生成摘要和要点

    - **uploadId**: 上传记录ID
    - **fileType**: audio 或 document
    - **fileUrl**: 文件存储URL

    处理完成返回 `{"success": true}`，失败时记录状态为error并返回 `{"error": ...}`
    """
    if not request.upload_id or not request.file_type or not request.file_url:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required parameters")

    if request.file_type not in [kind.value for kind in UploadKind]:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid fileType: {request.file_type}")

    try:
        result = await pipeline.run(request.upload_id, request.file_type, request.file_url)
    except ValidationException as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.message)
    except ResourceNotFoundException as e:
        return _error(status.HTTP_404_NOT_FOUND, e.message)
    except ConfigurationException as e:
        api_logger.error(f"Upload {request.upload_id} could not be processed: {e.message}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)
    except RecapException as e:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    if result.skipped:
        return _error(
            status.HTTP_409_CONFLICT,
            f"Upload {request.upload_id} is already being processed"
        )

    if not result.success:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, result.error_message)

    return {"success": True}
