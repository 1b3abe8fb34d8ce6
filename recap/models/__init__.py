"""
数据模型包
"""

from .upload import Upload, UploadKind, UploadStatus
from .transcription import Transcription
from .document_text import DocumentText
from .summary import Summary, KeyPoint

__all__ = [
    "Upload",
    "UploadKind",
    "UploadStatus",
    "Transcription",
    "DocumentText",
    "Summary",
    "KeyPoint"
]
