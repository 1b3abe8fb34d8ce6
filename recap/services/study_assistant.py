"""
要点学习助手
结合上传的原始内容回答学生关于某个要点的问题
"""

from recap.core.exceptions import ResourceNotFoundException, ValidationException
from recap.core.logging import ai_logger
from recap.services.ai.ai_service import AIService
from recap.services.records import UploadRepository
from recap.utils.text_utils import truncate_text

MAX_CONTEXT_CHARS = 15000

ASSISTANT_PROMPT = """
You are an intelligent study assistant helping a student understand their learning material. The student has asked a question about a specific key point from their content.

ORIGINAL CONTENT CONTEXT:
{content}

KEY POINT BEING DISCUSSED:
{key_point}

STUDENT'S QUESTION:
{question}

Answer the question directly, refer to the key point, and use the original content for context.
Explain concepts in an easy-to-understand way. Keep the response conversational and under 200 words.
"""


class StudyAssistant:
    """要点问答"""

    def __init__(
        self,
        ai_service: AIService,
        repository: UploadRepository,
        max_context_chars: int = MAX_CONTEXT_CHARS
    ):
        self.ai_service = ai_service
        self.repository = repository
        self.max_context_chars = max_context_chars

    async def ask(self, upload_id: str, key_point: str, question: str) -> str:
        """
        回答关于要点的问题

        Raises:
            ValidationException: 要点或问题为空
            ResourceNotFoundException: 没有可用的原始内容
        """
        if not key_point or not key_point.strip() or not question or not question.strip():
            raise ValidationException("Key point and user message are required")

        content = await self.repository.get_source_text(upload_id)
        if not content:
            raise ResourceNotFoundException("Upload content")

        prompt = ASSISTANT_PROMPT.format(
            content=truncate_text(content, self.max_context_chars),
            key_point=key_point.strip(),
            question=question.strip()
        ).strip()

        response = await self.ai_service.chat_completion(
            [{"role": "user", "content": prompt}],
            temperature=0.7,
            max_tokens=300
        )

        answer = response.content.strip()
        ai_logger.info(f"Answered key point question for upload {upload_id} ({len(answer)} chars)")
        return answer
