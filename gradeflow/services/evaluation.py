"""
Evaluation client for the Gemini ``generateContent`` REST endpoint.

Builds the grading request from normalized content plus assignment metadata,
posts it, and hands the candidate text to ``feedback_parser``. Anything that
prevents a usable candidate (missing key, transport error, HTTP error,
safety block, empty candidate) is raised as ``EvaluatorUnavailable``.
"""
import logging

import httpx

from gradeflow.core import config
from gradeflow.core.errors import EvaluatorUnavailable
from gradeflow.services.feedback_parser import EvaluationResult, parse_evaluation
from gradeflow.services.normalizer import NormalizedContent

logger = logging.getLogger(__name__)

BLOCKING_FINISH_REASONS = ("SAFETY", "RECITATION", "OTHER")

SYSTEM_PROMPT = """You are an expert educational evaluator specializing in comprehensive assignment assessment. Your role is to provide detailed, constructive feedback that helps students understand their strengths and areas for improvement.

EVALUATION GUIDELINES:

For TEXT-BASED ASSIGNMENTS:
- Analyze content quality, clarity, and depth of understanding
- Evaluate writing structure, grammar, and coherence
- Assess adherence to assignment requirements and instructions
- Consider creativity, originality, and critical thinking

For IMAGE-BASED ASSIGNMENTS (artwork, diagrams, charts, etc.):
- Analyze visual composition, design principles, and technical execution
- Assess creativity, originality, and clarity of visual communication
- Consider adherence to assignment requirements

For DOCUMENT-BASED ASSIGNMENTS:
- Evaluate content organization and presentation
- Assess formatting, structure, and completeness
- If only a file description is available, say so and base the assessment on the instructions and metadata

GRADING CRITERIA:
- 90-100: Exceptional work demonstrating mastery of concepts, creativity, and technical excellence
- 80-89: Strong work with minor areas for improvement
- 70-79: Good work with some notable strengths and areas needing development
- 60-69: Adequate work meeting basic requirements but needing significant improvement
- Below 60: Work that does not meet assignment requirements

RESPONSE FORMAT:
You must respond using EXACTLY this structure:

OVERALL GRADE:
[Number 0-100]

STRENGTHS:
- [Specific strength with brief explanation]
- [Specific strength with brief explanation]

AREAS FOR IMPROVEMENT:
- [Specific point needing improvement with suggestion]
- [Specific point needing improvement with suggestion]

DETAILED FEEDBACK:
[A comprehensive narrative of 2-4 paragraphs elaborating on the strengths and areas for improvement, with specific examples from the student's work.]

RECOMMENDATIONS:
- [Actionable recommendation for the student]
- [Actionable recommendation for the student]

CONCLUDING REMARKS:
[A brief, encouraging closing statement.]

IMPORTANT: Ensure each section header (e.g., "OVERALL GRADE:", "STRENGTHS:") is exactly as written and is followed by a newline.
"""


def build_user_prompt(
    content: NormalizedContent,
    assignment_title: str,
    instructions: str,
    max_points: float,
    media_type: str = "",
) -> str:
    return f"""
Assignment Title: "{assignment_title}"
Assignment Type: {media_type or "unknown"}
Original Instructions: "{instructions}"
Maximum Points: {max_points:g}

Student's Assignment Content:
---
{content.text_representation}
---

Please evaluate this assignment based on the system guidelines provided.
Give the OVERALL GRADE on a 0-100 scale, detailed feedback, and actionable recommendations.
"""


def build_request(
    content: NormalizedContent,
    assignment_title: str,
    instructions: str,
    max_points: float,
    media_type: str = "",
) -> dict:
    parts = [{"text": build_user_prompt(content, assignment_title, instructions, max_points, media_type)}]
    if content.inline_image is not None:
        parts.append(
            {
                "inline_data": {
                    "mime_type": content.inline_image.mime_type,
                    "data": content.inline_image.base64,
                }
            }
        )
    return {
        "contents": [{"role": "user", "parts": parts}],
        "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
        "generationConfig": {},
    }


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _http_error_message(response: httpx.Response) -> str:
    try:
        error = _as_dict(response.json()).get("error")
    except ValueError:
        error = None
    # some gateways send a bare string instead of {"message": ...}
    api_message = error if isinstance(error, str) else _as_dict(error).get("message")
    api_message = api_message or response.reason_phrase
    status = response.status_code

    if status == 400:
        return f"Invalid request to AI: {api_message}. Check prompt or payload."
    if status in (401, 403):
        return f"AI authentication/authorization error: {api_message}. Check API key and permissions."
    if status == 404:
        return f"AI API endpoint not found ({response.request.url.path}). Check configuration."
    if status == 429:
        return f"AI rate limit exceeded: {api_message}. Try again later."
    if status >= 500:
        return f"AI server error: {api_message}. Try again later."
    return f"AI API error: {status} - {api_message}"


def extract_candidate_text(data) -> str:
    if not isinstance(data, dict):
        raise EvaluatorUnavailable("AI server returned an unreadable response.")

    candidates = data.get("candidates")
    candidate = candidates[0] if isinstance(candidates, list) and candidates else None
    if not isinstance(candidate, dict) or not candidate:
        block_reason = _as_dict(data.get("promptFeedback")).get("blockReason")
        if block_reason:
            raise EvaluatorUnavailable(f"AI generation blocked: {block_reason}.")
        raise EvaluatorUnavailable("No valid content generated by AI.")

    finish_reason = candidate.get("finishReason")
    if finish_reason in BLOCKING_FINISH_REASONS:
        message = f"AI generation stopped due to: {finish_reason}."
        if candidate.get("safetyRatings"):
            message += f" Safety ratings: {candidate['safetyRatings']}"
        raise EvaluatorUnavailable(message)

    parts = _as_dict(candidate.get("content")).get("parts")
    first = parts[0] if isinstance(parts, list) and parts else None
    text = _as_dict(first).get("text")
    if not isinstance(text, str) or not text:
        raise EvaluatorUnavailable("No feedback text generated by AI.")
    return text


class EvaluationClient:
    def __init__(
        self,
        api_key: str = config.GEMINI_API_KEY,
        model: str = config.GEMINI_MODEL,
        api_base: str = config.GEMINI_API_BASE,
        timeout: float = config.EVALUATOR_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    async def generate(self, payload: dict) -> str:
        """Post a request and return the raw text of the first candidate."""
        if not self.api_key:
            raise EvaluatorUnavailable("Gemini API key is not configured. Set GEMINI_API_KEY.")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers={"x-goog-api-key": self.api_key},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            message = _http_error_message(e.response)
            logger.error("Gemini API HTTP error %s: %s", e.response.status_code, message)
            raise EvaluatorUnavailable(message) from e
        except httpx.RequestError as e:
            logger.error("Gemini API request error: %s", e)
            raise EvaluatorUnavailable(
                "No response from AI server. Check network connection or AI service status."
            ) from e
        except ValueError as e:
            logger.error("Gemini API returned a non-JSON body: %s", e)
            raise EvaluatorUnavailable("AI server returned an unreadable response.") from e

        return extract_candidate_text(data)

    async def evaluate(
        self,
        content: NormalizedContent,
        assignment_title: str,
        instructions: str,
        max_points: float,
        media_type: str = "",
    ) -> EvaluationResult:
        payload = build_request(content, assignment_title, instructions, max_points, media_type)
        logger.info(
            "Requesting evaluation for %r %s",
            assignment_title,
            "with image data" if content.inline_image else "with text data",
        )
        raw = await self.generate(payload)
        return parse_evaluation(raw)
