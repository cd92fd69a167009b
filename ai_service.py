"""
AI writing helpers backed by the Generative Language API.

Two prompts are offered: a report card comment for a student and a lesson
plan for a teacher. Requests are validated with pydantic before any call is
made; every upstream failure surfaces as AIServiceError.
"""
import logging
import os
import textwrap
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)

DEFAULT_MODEL = 'gemini-2.5-flash'
DEFAULT_API_BASE = 'https://generativelanguage.googleapis.com/v1beta'
FAILURE_MESSAGE = 'Failed to communicate with the Gemini API.'


class AIServiceError(Exception):
    def __init__(self, message: str = FAILURE_MESSAGE):
        super().__init__(message)


class ReportCommentRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    student_name: str = Field(min_length=1)
    strengths: str = Field(min_length=1)
    areas_for_improvement: str = Field(min_length=1)


class LessonPlanRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    subject: str = Field(min_length=1)
    grade_level: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    duration: int = Field(gt=0)
    objectives: str = Field(min_length=1)


REPORT_COMMENT_PROMPT = textwrap.dedent("""\
        You are an experienced and caring educator. Your task is to write a thoughtful and constructive report card comment for a student.

        Student's Name: {student_name}

        Positive qualities and strengths:
        {strengths}

        Areas for improvement:
        {areas_for_improvement}

        Based on the information above, please generate a professional, encouraging, and balanced report card comment. The tone should be positive, even when addressing areas for improvement. Frame the challenges as opportunities for growth. Do not use bullet points; write it as a single, cohesive paragraph of about 4-6 sentences. Start the comment by addressing the student by name.
        """)


LESSON_PLAN_PROMPT = textwrap.dedent("""\
        You are an expert curriculum designer for K-12 education. Your task is to generate a comprehensive and engaging lesson plan based on the following details.
        The output should be well-structured, clear, and practical for a classroom setting.
        Please format the output as a single block of text, using headers like '## Learning Objectives', '## Materials Needed', '## Lesson Procedure', and '## Assessment'.
        Under '## Lesson Procedure', include sub-sections for 'Introduction', 'Main Activity', and 'Conclusion', allocating time appropriately based on the total duration provided.

        ---

        **Subject:** {subject}
        **Grade Level:** {grade_level}
        **Topic:** {topic}
        **Lesson Duration:** {duration} minutes
        **Key Objectives:**
        {objectives}

        ---

        Now, generate the lesson plan.
        """)


def report_comment_prompt(req: ReportCommentRequest) -> str:
    return REPORT_COMMENT_PROMPT.format(**req.model_dump())


def lesson_plan_prompt(req: LessonPlanRequest) -> str:
    return LESSON_PLAN_PROMPT.format(**req.model_dump())


class GeminiClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, timeout: float = 60.0, transport=None):
        self.api_key = api_key or os.getenv('GEMINI_API_KEY') or os.getenv('API_KEY')
        self.model = model or os.getenv('GEMINI_MODEL', DEFAULT_MODEL)
        self._client = httpx.Client(
            base_url=base_url or os.getenv('GEMINI_API_BASE', DEFAULT_API_BASE),
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        self._client.close()

    def generate_text(self, prompt: str) -> str:
        if not self.api_key:
            logger.error("[AI] GEMINI_API_KEY environment variable not set")
            raise AIServiceError()

        try:
            response = self._client.post(
                f'/models/{self.model}:generateContent',
                json={'contents': [{'parts': [{'text': prompt}]}]},
                headers={'x-goog-api-key': self.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("[AI] Gemini API returned %s: %s", e.response.status_code, e.response.text[:500])
            raise AIServiceError() from e
        except httpx.HTTPError as e:
            logger.error("[AI] Error communicating with Gemini API: %s", e)
            raise AIServiceError() from e
        except ValueError as e:
            logger.error("[AI] Gemini API returned invalid JSON: %s", e)
            raise AIServiceError() from e

        text = _extract_text(data)
        if not text:
            logger.error("[AI] Gemini API response had no text: %s", str(data)[:500])
            raise AIServiceError()
        return text


def _extract_text(data) -> str:
    try:
        parts = data['candidates'][0]['content']['parts']
    except (KeyError, IndexError, TypeError):
        return ''
    return ''.join(part.get('text', '') for part in parts if isinstance(part, dict))


def generate_report_card_comment(client: GeminiClient, req: ReportCommentRequest) -> str:
    return client.generate_text(report_comment_prompt(req))


def generate_lesson_plan(client: GeminiClient, req: LessonPlanRequest) -> str:
    return client.generate_text(lesson_plan_prompt(req))
