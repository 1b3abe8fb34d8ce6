"""
转录数据模型
"""

from sqlalchemy import Column, String, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship

from recap.db.base import BaseModel


class Transcription(BaseModel):
    """转录模型，保存完整的转录服务响应"""
    __tablename__ = "transcriptions"

    upload_id = Column(
        String(64), ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False, index=True, comment="上传ID"
    )
    transcription_text = Column(Text, nullable=False, comment="转录纯文本")
    raw_payload = Column(JSON, nullable=False, default=dict, comment="转录服务原始响应(含逐词时间和说话人)")
    language_detected = Column(String(20), comment="检测到的语言")

    # 关系
    upload = relationship("Upload", back_populates="transcriptions")
