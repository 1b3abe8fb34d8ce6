"""
摘要和要点数据模型
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from recap.db.base import BaseModel


class Summary(BaseModel):
    """摘要模型"""
    __tablename__ = "summaries"

    upload_id = Column(
        String(64), ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False, index=True, comment="上传ID"
    )
    summary_text = Column(Text, nullable=False, comment="摘要内容")

    # 关系
    upload = relationship("Upload", back_populates="summaries")


class KeyPoint(BaseModel):
    """要点模型"""
    __tablename__ = "key_points"

    upload_id = Column(
        String(64), ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False, index=True, comment="上传ID"
    )
    point_text = Column(Text, nullable=False, comment="要点内容")
    importance_level = Column(Integer, nullable=False, default=3, comment="重要程度 1-5")

    # 关系
    upload = relationship("Upload", back_populates="key_points")

    __table_args__ = (
        CheckConstraint("importance_level BETWEEN 1 AND 5", name="importance_range"),
    )
