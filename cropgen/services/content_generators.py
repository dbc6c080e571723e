import logging
from typing import Any, List, Optional

from cropgen.core.languages import LanguageDescriptor, resolve_language
from cropgen.models.schemas import QUESTIONS_PER_DAY, QuestionRecord, TipRecord
from cropgen.services.fallback_content import fallback_mcq, fallback_mcqs, fallback_tips
from cropgen.services.gemini_client import GeminiClient
from cropgen.services.json_recovery import parse_records

logger = logging.getLogger("cropgen.generators")

PLACEHOLDER_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]
DEFAULT_EXPLANATION = "This is the correct answer based on agricultural best practices."


# ==============================================================================
# Prompts
# ==============================================================================

def build_tips_prompt(crop: str, lang: LanguageDescriptor, count: int = QUESTIONS_PER_DAY) -> str:
    name = lang.name
    example = ",\n".join(f'  {{"text": "Tip {i} in {name}"}}' for i in range(1, count + 1))
    return f"""You are an Indian agriculture expert specializing in {crop} farming.
{lang.instruction}

Generate exactly {count} practical farming tips for {crop} in {name}.

CRITICAL: Return ONLY a valid JSON array. No markdown, no code blocks, no explanation.

Format:
[
{example}
]

Rules:
- Write completely in {name} language
- Each tip: 1-2 lines, practical, actionable
- Focus on Indian farming conditions
- Cover: soil preparation, sowing, irrigation, fertilization, pest control, harvesting
- Return ONLY the JSON array"""


def build_mcqs_prompt(crop: str, lang: LanguageDescriptor, count: int = QUESTIONS_PER_DAY) -> str:
    name = lang.name
    return f"""You are an Indian agriculture expert. Create a quiz about {crop} farming.
{lang.instruction}

Generate exactly {count} multiple choice questions in {name}.

CRITICAL: Return ONLY a valid JSON array. No markdown, no code blocks, no extra text.

Format:
[
  {{
    "question": "Question text in {name}?",
    "options": ["Option 1 in {name}", "Option 2 in {name}", "Option 3 in {name}", "Option 4 in {name}"],
    "correctAnswer": 0,
    "explanation": "Brief explanation in {name}."
  }}
]

Rules:
- Write completely in {name} language
- correctAnswer: index (0-3) of correct option
- Exactly 4 options per question
- Questions about: cultivation, soil, water, fertilizers, pest management, harvesting
- Brief explanations (1-2 sentences)
- Focus on Indian farming context
- Return ONLY the JSON array"""


# ==============================================================================
# Per-item repair
# ==============================================================================

def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def repair_tip(item: Any, index: int, crop: str) -> TipRecord:
    if isinstance(item, dict):
        item = item.get("text")
    text = _non_empty_str(item)
    return TipRecord(text=text or f"Farming tip {index + 1} for {crop}")


def repair_question(item: Any, index: int, crop: str, backend_key: str) -> QuestionRecord:
    if not isinstance(item, dict):
        return fallback_mcq(crop, index, backend_key)

    question = _non_empty_str(item.get("question")) or f"Question {index + 1} about {crop}?"

    options = item.get("options")
    if not isinstance(options, list) or len(options) != 4:
        options = PLACEHOLDER_OPTIONS
    options = [
        _non_empty_str(opt) or f"Option {chr(65 + i)}"
        for i, opt in enumerate(options)
    ]

    correct = item.get("correctAnswer", item.get("correct_answer"))
    if isinstance(correct, bool) or not isinstance(correct, int) or not 0 <= correct <= 3:
        correct = 0

    explanation = _non_empty_str(item.get("explanation")) or DEFAULT_EXPLANATION

    return QuestionRecord(
        question=question,
        options=options,
        correct_answer=correct,
        explanation=explanation,
    )


# ==============================================================================
# Generators
# ==============================================================================

class ContentGenerator:
    """Tips and MCQs for a crop, with a guaranteed static fallback.

    `generate_tips` and `generate_mcqs` never raise: any failure along the
    way (quota, timeout, unparseable output, network) is logged and the
    curated fallback set for the language is returned instead.
    """

    def __init__(
        self,
        client: GeminiClient,
        count: int = QUESTIONS_PER_DAY,
        tips_timeout: float = 20.0,
        mcqs_timeout: float = 25.0,
    ):
        self.client = client
        self.count = count
        self.tips_timeout = tips_timeout
        self.mcqs_timeout = mcqs_timeout

    async def generate_tips(self, crop: str, language: Optional[str] = "en") -> List[TipRecord]:
        lang = resolve_language(language)
        logger.info("Generating tips for %s in %s (%s)", crop, lang.name, lang.code)
        try:
            text = await self.client.generate(build_tips_prompt(crop, lang, self.count), timeout=self.tips_timeout)
            items = parse_records(text, "Tips")
            tips = [repair_tip(t, i, crop) for i, t in enumerate(items[: self.count])]
            while len(tips) < self.count:
                tips.append(TipRecord(text=f"Practice sustainable {crop} farming techniques"))
        except Exception as e:
            logger.warning("Gemini tips failed for %s (%s); using fallback", lang.name, e)
            return fallback_tips(crop, lang.backend_key)[: self.count]

        logger.info("Generated %d tips in %s from Gemini", len(tips), lang.name)
        return tips

    async def generate_mcqs(self, crop: str, language: Optional[str] = "en") -> List[QuestionRecord]:
        lang = resolve_language(language)
        logger.info("Generating MCQs for %s in %s (%s)", crop, lang.name, lang.code)
        try:
            text = await self.client.generate(build_mcqs_prompt(crop, lang, self.count), timeout=self.mcqs_timeout)
            items = parse_records(text, "MCQs")
            mcqs = [repair_question(q, i, crop, lang.backend_key) for i, q in enumerate(items[: self.count])]
            while len(mcqs) < self.count:
                mcqs.append(fallback_mcq(crop, len(mcqs), lang.backend_key))
        except Exception as e:
            logger.warning("Gemini MCQs failed for %s (%s); using fallback", lang.name, e)
            return fallback_mcqs(crop, lang.backend_key)[: self.count]

        logger.info("Generated %d MCQs in %s from Gemini", len(mcqs), lang.name)
        return mcqs
