"""
测试配置和fixtures
"""

import io
import os
import tempfile
import zipfile
from typing import AsyncGenerator, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

# 导入应用前先指向内存数据库和临时日志目录
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="recap-test-logs-"))

import httpx
import pytest
from httpx import AsyncClient, ASGITransport

from recap.db.session import create_database_engine, create_session_factory, drop_db, init_db
from recap.services.ai.ai_service import AIService
from recap.services.ai.base import (
    AIConfig, AIProvider, LLMProvider, LLMResponse, STTProvider, TranscriptionResult
)
from recap.services.content_fetcher import ContentFetcher
from recap.services.extraction import DocumentExtractionService
from recap.services.pipeline import PartialSuccessPolicy, UploadPipeline
from recap.services.records import UploadRepository
from recap.services.summarization import SummarizationService
from recap.services.transcription import TranscriptionService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
BLOB_HOST = "https://storage.test"

DEFAULT_SUMMARY_REPLY = """Here is the study guide:

```json
{
  "title": "Cell Biology Basics",
  "summary": "The lecture covers the structure of the cell and the role of the mitochondria.",
  "keyPoints": [
    {"point": "Mitochondria produce ATP", "importance": 5},
    {"point": "The nucleus stores DNA", "importance": 4},
    {"point": "Ribosomes build proteins", "importance": 3},
  ]
}
```
"""


# ----------------------------------------------------------------------
# 测试文件构造
# ----------------------------------------------------------------------

def make_pdf(pages: List[str]) -> bytes:
    """构造每页一行文本的最小PDF"""
    page_ids = [4 + 2 * index for index in range(len(pages))]
    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for page_id, text in zip(page_ids, pages):
        escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        stream = f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET".encode("latin-1")
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>".encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    output = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(output)
    output += b"xref\n0 %d\n" % (len(objects) + 1)
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += b"%010d 00000 n \n" % offset
    output += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1, xref_offset
    )
    return bytes(output)


def make_docx(paragraphs: List[str]) -> bytes:
    """构造只含word/document.xml的最小DOCX"""
    body = "".join(
        f"<w:p><w:r><w:t xml:space=\"preserve\">{escape(text)}</w:t></w:r></w:p>"
        for text in paragraphs
    )
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("word/document.xml", document)
    return buffer.getvalue()


# ----------------------------------------------------------------------
# 假的AI提供商
# ----------------------------------------------------------------------

class FakeSTTProvider(STTProvider):
    """可配置结果的转录提供商"""

    def __init__(self, result: Optional[TranscriptionResult] = None, error: Exception = None):
        super().__init__({"api_key": "test"})
        self.result = result or TranscriptionResult(
            text="Today we talk about mitochondria and how cells make energy.",
            language="en",
            words=[{"text": "Today", "start": 0.0, "end": 0.4, "type": "word"}],
            raw={
                "text": "Today we talk about mitochondria and how cells make energy.",
                "language_code": "en",
                "words": [{"text": "Today", "start": 0.0, "end": 0.4, "type": "word"}],
            }
        )
        self.error = error
        self.calls: List[Tuple[bytes, str]] = []

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.ELEVENLABS

    async def transcribe_audio(self, audio: bytes, content_type: str = "application/octet-stream", **kwargs):
        self.calls.append((audio, content_type))
        if self.error is not None:
            raise self.error
        return self.result


class FakeLLMProvider(LLMProvider):
    """按顺序返回预设回复的大语言模型提供商"""

    def __init__(self, replies: Optional[List[str]] = None, error: Exception = None):
        super().__init__({"api_key": "test"})
        self.replies = list(replies or [DEFAULT_SUMMARY_REPLY])
        self.error = error
        self.calls: List[Dict] = []

    def _get_provider_name(self) -> AIProvider:
        return AIProvider.GEMINI

    async def chat_completion(self, messages, model=None, temperature=0.7, max_tokens=None, **kwargs):
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        if self.error is not None:
            raise self.error
        content = self.replies[0] if len(self.replies) == 1 else self.replies.pop(0)
        return LLMResponse(content=content, model=model or "fake-model")


def make_ai_config(**overrides) -> AIConfig:
    config = dict(
        stt_provider=AIProvider.ELEVENLABS,
        llm_provider=AIProvider.GEMINI,
        stt_config={"api_key": "test"},
        llm_config={"api_key": "test"},
        default_stt_model="scribe_v1",
        default_llm_model="fake-model",
        retry_attempts=3,
        retry_delay=0
    )
    config.update(overrides)
    return AIConfig(**config)


# ----------------------------------------------------------------------
# 存储
# ----------------------------------------------------------------------

class BlobStore:
    """基于httpx.MockTransport的文件存储"""

    def __init__(self):
        self.blobs: Dict[str, Tuple[bytes, str]] = {}
        self.requests: List[str] = []

    def put(self, path: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        url = f"{BLOB_HOST}/{path.lstrip('/')}"
        self.blobs[url] = (content, content_type)
        return url

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url not in self.blobs:
            return httpx.Response(404, text="Object not found")
        content, content_type = self.blobs[url]
        return httpx.Response(200, content=content, headers={"content-type": content_type})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


# ----------------------------------------------------------------------
# fixtures
# ----------------------------------------------------------------------

@pytest.fixture
async def engine():
    """每个测试使用独立的内存数据库"""
    test_engine = create_database_engine(TEST_DATABASE_URL, echo=False)
    await init_db(test_engine)
    yield test_engine
    await drop_db(test_engine)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repository(session_factory) -> UploadRepository:
    return UploadRepository(session_factory)


@pytest.fixture
def stt_provider() -> FakeSTTProvider:
    return FakeSTTProvider()


@pytest.fixture
def llm_provider() -> FakeLLMProvider:
    return FakeLLMProvider()


@pytest.fixture
def ai_service(stt_provider, llm_provider) -> AIService:
    return AIService(make_ai_config(), stt_provider=stt_provider, llm_provider=llm_provider)


@pytest.fixture
async def blob_store() -> AsyncGenerator[BlobStore, None]:
    yield BlobStore()


@pytest.fixture
async def fetcher(blob_store) -> AsyncGenerator[ContentFetcher, None]:
    client = blob_store.client()
    yield ContentFetcher(http_client=client)
    await client.aclose()


@pytest.fixture
def pipeline_factory(repository, fetcher, ai_service):
    """按需组装流水线，可替换任一组件"""

    def _factory(**overrides) -> UploadPipeline:
        components = dict(
            repository=repository,
            fetcher=fetcher,
            transcription_service=TranscriptionService(ai_service),
            extraction_service=DocumentExtractionService(),
            summarization_service=SummarizationService(ai_service),
            key_points_policy=PartialSuccessPolicy.KEY_POINTS_BEST_EFFORT
        )
        components.update(overrides)
        return UploadPipeline(**components)

    return _factory


@pytest.fixture
def pipeline(pipeline_factory) -> UploadPipeline:
    return pipeline_factory()


@pytest.fixture
def upload_factory(repository):
    """创建上传记录"""

    async def _factory(upload_id: str = None, file_type: str = "document",
                       file_url: str = f"{BLOB_HOST}/uploads/file.pdf", **fields):
        fields.setdefault("owner_id", "student-1")
        fields.setdefault("file_name", file_url.rsplit("/", 1)[-1])
        return await repository.create_upload(
            id=upload_id,
            file_type=file_type,
            file_url=file_url,
            **fields
        )

    return _factory


@pytest.fixture
async def client(pipeline, repository, ai_service) -> AsyncGenerator[AsyncClient, None]:
    """测试客户端，依赖项指向测试数据库和假提供商"""
    from recap.api.v1.endpoints.uploads import get_study_assistant
    from recap.main import app
    from recap.services.pipeline import get_upload_pipeline, get_upload_repository
    from recap.services.study_assistant import StudyAssistant

    app.dependency_overrides[get_upload_pipeline] = lambda: pipeline
    app.dependency_overrides[get_upload_repository] = lambda: repository
    app.dependency_overrides[get_study_assistant] = lambda: StudyAssistant(ai_service, repository)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
