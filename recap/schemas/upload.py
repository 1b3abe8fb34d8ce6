"""
上传处理相关的Pydantic模式
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ProcessUploadRequest(BaseModel):
    """触发处理请求模式

    字段均为可选，缺失时由接口返回400
    """
    upload_id: Optional[str] = Field(None, alias="uploadId", description="上传记录ID")
    file_type: Optional[str] = Field(None, alias="fileType", description="文件类型: audio, document")
    file_url: Optional[str] = Field(None, alias="fileUrl", description="文件存储URL")

    class Config:
        populate_by_name = True


class ProcessUploadResponse(BaseModel):
    """触发处理响应模式"""
    success: bool = Field(default=True, description="是否处理成功")


class UploadCreate(BaseModel):
    """登记上传请求模式"""
    id: Optional[str] = Field(None, max_length=64, description="上传记录ID，不提供时自动生成")
    owner_id: str = Field(..., min_length=1, max_length=64, description="所属用户ID")
    file_name: str = Field(..., min_length=1, max_length=500, description="显示名称")
    original_filename: Optional[str] = Field(None, max_length=500, description="原始文件名")
    file_type: str = Field(..., pattern="^(audio|document)$", description="文件类型")
    file_url: str = Field(..., min_length=1, description="存储URL")
    file_size: int = Field(default=0, ge=0, description="文件大小(字节)")
    duration: Optional[float] = Field(None, ge=0, description="音频时长(秒)")


class UploadResponse(BaseModel):
    """上传记录响应模式"""
    id: str
    owner_id: str
    file_name: str
    original_filename: Optional[str] = None
    generated_name: Optional[str] = None
    file_type: str
    file_url: str
    file_size: int
    duration: Optional[float] = None
    status: str
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class KeyPointResponse(BaseModel):
    """要点响应模式"""
    id: str
    point_text: str
    importance_level: int = Field(..., ge=1, le=5)

    class Config:
        from_attributes = True


class TranscriptResponse(BaseModel):
    """转录响应模式"""
    id: str
    transcription_text: str
    language_detected: Optional[str] = None
    raw_payload: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UploadResultsResponse(BaseModel):
    """处理结果响应模式"""
    upload: UploadResponse
    summary: Optional[str] = None
    key_points: List[KeyPointResponse] = Field(default_factory=list)
    transcription: Optional[TranscriptResponse] = None
    document_text: Optional[str] = None


class KeyPointQuestion(BaseModel):
    """要点提问请求模式"""
    key_point: str = Field(..., alias="keyPoint", min_length=1, description="要点内容")
    user_message: str = Field(..., alias="userMessage", min_length=1, description="学生的问题")

    class Config:
        populate_by_name = True


class KeyPointAnswer(BaseModel):
    """要点提问响应模式"""
    response: str
