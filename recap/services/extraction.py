"""
文档文本提取服务
支持PDF、DOCX和TXT，其他格式按配置返回占位文本或报错
"""

import codecs
import io
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List
from xml.etree import ElementTree

from pypdf import PdfReader

from recap.core.exceptions import UnreadableContentException, UnsupportedFormatException
from recap.core.logging import pipeline_logger
from recap.utils.text_utils import (
    collapse_blank_lines, normalize_line_endings, normalize_whitespace, truncate_text
)

SUPPORTED_FORMATS = ("pdf", "docx", "txt")
MIN_PDF_TEXT_LENGTH = 10

PLACEHOLDER_TEXT = (
    "[This document format (.{extension}) could not be processed automatically. "
    "Please convert it to PDF, DOCX, or TXT and upload it again.]"
)

_WORD_NAMESPACE = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"


@dataclass
class ExtractedDocument:
    """文档提取结果"""
    text: str
    file_format: str
    truncated: bool = False
    placeholder: bool = False


def get_extension(filename: str) -> str:
    """获取小写扩展名（不含点）"""
    return PurePosixPath(filename or "").suffix.lower().lstrip(".")


def extract_pdf_text(content: bytes) -> str:
    """逐页提取PDF文本，页与页之间以空行分隔"""
    try:
        reader = PdfReader(io.BytesIO(content))
        if reader.is_encrypted and not reader.decrypt(""):
            raise UnreadableContentException("Unreadable PDF: the file is encrypted")

        pages: List[str] = []
        for page in reader.pages:
            page_text = normalize_whitespace(page.extract_text() or "")
            if page_text:
                pages.append(page_text)
    except UnreadableContentException:
        raise
    except Exception as e:
        raise UnreadableContentException(f"Unreadable PDF: {e}") from e

    text = "\n\n".join(pages).strip()
    if len(text) < MIN_PDF_TEXT_LENGTH:
        raise UnreadableContentException(
            "Unreadable PDF: no extractable text (the file may be scanned, image-only, or encrypted)"
        )
    return text


def extract_docx_text(content: bytes) -> str:
    """从DOCX的word/document.xml提取段落文本"""
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            xml_payload = archive.read("word/document.xml")
        root = ElementTree.fromstring(xml_payload)
    except (zipfile.BadZipFile, KeyError, ElementTree.ParseError) as e:
        raise UnreadableContentException(f"Unreadable DOCX: {e}") from e

    paragraphs = []
    for paragraph in root.iter(f"{_WORD_NAMESPACE}p"):
        parts = []
        for node in paragraph.iter():
            if node.tag == f"{_WORD_NAMESPACE}t" and node.text:
                parts.append(node.text)
            elif node.tag == f"{_WORD_NAMESPACE}tab":
                parts.append("\t")
            elif node.tag in (f"{_WORD_NAMESPACE}br", f"{_WORD_NAMESPACE}cr"):
                parts.append("\n")
        paragraphs.append("".join(parts))

    text = normalize_line_endings("\n".join(paragraphs))
    return collapse_blank_lines(text).strip()


def decode_text(content: bytes) -> str:
    """解码纯文本文件，识别BOM，无法解码的字节替换"""
    if content.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return content.decode("utf-16", errors="replace")
    return content.decode("utf-8-sig", errors="replace")


class DocumentExtractionService:
    """文档文本提取服务"""

    def __init__(
        self,
        max_text_chars: int = 5_000_000,
        unsupported_format_policy: str = "error"
    ):
        if unsupported_format_policy not in ("error", "placeholder"):
            raise ValueError(f"Unknown unsupported format policy: {unsupported_format_policy}")
        self.max_text_chars = max_text_chars
        self.unsupported_format_policy = unsupported_format_policy

    def extract(self, content: bytes, filename: str) -> ExtractedDocument:
        """
        按扩展名提取文档文本

        Args:
            content: 文档二进制内容
            filename: 文件名或URL路径，用于判断格式

        Returns:
            ExtractedDocument: 提取结果

        Raises:
            UnsupportedFormatException: 不支持的格式（error策略）
            UnreadableContentException: 没有提取到文本
        """
        extension = get_extension(filename)

        if extension == "pdf":
            text = extract_pdf_text(content)
        elif extension == "docx":
            text = extract_docx_text(content)
        elif extension == "txt":
            text = normalize_line_endings(decode_text(content))
        else:
            return self._unsupported(extension)

        text = text.strip()
        if not text:
            raise UnreadableContentException(
                f"The {extension.upper()} document contains no extractable text"
            )

        truncated_text = truncate_text(text, self.max_text_chars)
        truncated = len(truncated_text) != len(text)
        if truncated:
            pipeline_logger.warning(
                f"Extracted text truncated from {len(text)} to {self.max_text_chars} characters"
            )

        return ExtractedDocument(text=truncated_text, file_format=extension, truncated=truncated)

    def _unsupported(self, extension: str) -> ExtractedDocument:
        """不支持的格式"""
        label = f".{extension}" if extension else "(no extension)"
        if self.unsupported_format_policy == "placeholder":
            pipeline_logger.warning(f"Unsupported document format {label}, using placeholder text")
            return ExtractedDocument(
                text=PLACEHOLDER_TEXT.format(extension=extension or "unknown"),
                file_format=extension,
                placeholder=True
            )

        if extension == "doc":
            message = (
                "Unsupported file format: legacy .doc files cannot be processed, "
                "please convert to .docx or PDF"
            )
        else:
            message = (
                f"Unsupported file format: {label}. "
                f"Supported formats are {', '.join(SUPPORTED_FORMATS)}"
            )
        raise UnsupportedFormatException(message)
