"""
文档提取文本数据模型
"""

from sqlalchemy import Column, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from recap.db.base import BaseModel


class DocumentText(BaseModel):
    """文档提取文本模型"""
    __tablename__ = "document_texts"

    upload_id = Column(
        String(64), ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False, index=True, comment="上传ID"
    )
    extracted_text = Column(Text, nullable=False, comment="提取的纯文本")

    # 关系
    upload = relationship("Upload", back_populates="document_texts")
