"""
上传文件数据模型
"""

import enum

from sqlalchemy import Column, String, Text, BigInteger, Float, Index
from sqlalchemy.orm import relationship

from recap.db.base import BaseModel


class UploadKind(str, enum.Enum):
    """上传文件类型"""
    AUDIO = "audio"
    DOCUMENT = "document"


class UploadStatus(str, enum.Enum):
    """上传处理状态"""
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.COMPLETED, UploadStatus.ERROR)


class Upload(BaseModel):
    """上传文件模型"""
    __tablename__ = "uploads"

    owner_id = Column(String(64), nullable=False, index=True, comment="所属用户ID")
    file_name = Column(String(500), nullable=False, comment="显示名称")
    original_filename = Column(String(500), comment="原始文件名")
    generated_name = Column(String(500), comment="AI生成的内容名称")
    file_type = Column(String(20), nullable=False, comment="文件类型: audio, document")
    file_url = Column(Text, nullable=False, comment="存储URL")
    file_size = Column(BigInteger, nullable=False, default=0, comment="文件大小(字节)")
    duration = Column(Float, comment="音频时长(秒)")
    status = Column(
        String(20),
        nullable=False,
        default=UploadStatus.UPLOADED.value,
        comment="处理状态: uploaded, processing, completed, error"
    )
    error_message = Column(Text, comment="错误信息")

    # 关系
    transcriptions = relationship(
        "Transcription", back_populates="upload", cascade="all, delete-orphan"
    )
    document_texts = relationship(
        "DocumentText", back_populates="upload", cascade="all, delete-orphan"
    )
    summaries = relationship(
        "Summary", back_populates="upload", cascade="all, delete-orphan"
    )
    key_points = relationship(
        "KeyPoint", back_populates="upload", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_uploads_owner_created", "owner_id", "created_at"),
    )

    def __repr__(self):
        return f"<Upload {self.id} {self.file_type} {self.status}>"
