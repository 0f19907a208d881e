"""
LearnHub Backend: AI Coaching Service
=======================================

What:  Prompt construction and reply parsing for the speaking-practice and
       calorie-lookup features.
How:   Builds a prompt, sends it through the LLMService (Gemini by default),
       and turns the free-text reply into the shape each route returns.

Failure handling differs per feature:
    - topics / speech feedback: provider errors propagate (503 to the client)
    - calorie lookup: any AI failure yields a fixed fallback estimate, so the
      food log keeps working while the provider is down
"""

import json
import logging
import re
from typing import Any, Dict, List, Tuple

from learnhub.exceptions import LearnHubError, LLMServiceError
from learnhub.services.gemini_service import gemini_service
from learnhub.services.llm_base import LLMService
from learnhub.services.session_service import count_words

logger = logging.getLogger(__name__)

TOPIC_COUNT = 5
FALLBACK_KCAL_PER_SERVING = 100

_LEADING_NUMBER = re.compile(r"^\d+\.?\s*")
_FIRST_INTEGER = re.compile(r"(\d+)")

TOPICS_SYSTEM = (
    "Create English speaking topics for fluency practice. "
    "Focus on conversation starters."
)
TOPICS_PROMPT = """Generate {count} English speaking practice topics for "{subject}" - "{lesson}".

Focus: Help learners practice speaking fluency and real conversations.
Topics should cover: daily life, storytelling, opinions, descriptions, experiences.
Format: One topic per line, 3-8 words each.

Topics:"""

FEEDBACK_SYSTEM = (
    "You are an expert English speech coach. Provide detailed, structured feedback "
    "using markdown formatting with specific examples and concrete suggestions. "
    "Always follow the exact format requested with proper headers, bullet points, "
    "and detailed explanations."
)
FEEDBACK_PROMPT = """Analyze this English speech about "{topic}": "{speech}"

Provide detailed feedback in this EXACT format:

## Feedback on Speech: "{topic}"

### 1. Grammar and Tenses:
• [Specific grammar issue with example from the speech]
- [Correction with proper grammar rule explanation]
• [Practice recommendation for specific tense usage]
- [Example of how to use it in this context]

### 2. Vocabulary Enhancement:
• [Identify basic words used and suggest better alternatives]
- Instead of "[basic word]," use more specific terms like "[advanced word 1]," or "[advanced word 2]"
• [Topic-specific vocabulary suggestions]

### 3. Flow and Coherence:
• [Specific recommendation for better organization]
- [Example of how to structure the opening: "Start with..."]
• [Transitional phrase suggestions]
• [Logical progression advice with specific examples]

### 4. My Response:
• [Overall assessment of the speech]
- [Specific improvements needed with examples]
• [Complete rewrite example showing better structure]

Be very specific with examples from the actual speech and provide concrete suggestions for improvement."""

CALORIES_PROMPT = """You are an Indian nutrition expert familiar with both Indian and international foods. Calculate the approximate calories for the following food description written in natural language.

Food Description: "{food}"

Parse the quantity and food type from the description. Examples:
- "2 eggs" = ~140 calories total
- "1 roti" = ~80 calories
- "1 slice pizza" = ~285 calories
- "cup of rice" = ~205 calories
- "chicken breast 100g" = ~165 calories
- "1 dosa" = ~133 calories
- "bowl dal" = ~180 calories

Please respond with ONLY a JSON object in this exact format:
{{
  "calories": <total calories for the description>,
  "food": "<cleaned up food name>",
  "description": "<what you understood from the input>",
  "parsed_quantity": "<quantity you detected>",
  "parsed_food": "<food type you detected>"
}}"""


def parse_topics(raw: str, limit: int = TOPIC_COUNT) -> List[str]:
    """
    Splits a model reply into topic names.

    >>> parse_topics("1. Morning routines\\n\\n2 Travel stories")
    ['Morning routines', 'Travel stories']
    """
    topics = []
    for line in raw.split("\n"):
        name = _LEADING_NUMBER.sub("", line.strip())
        if name:
            topics.append(name)
    return topics[:limit]


def _strip_code_fence(text: str) -> str:
    # Gemini often wraps JSON in ```json fences
    text = text.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


def parse_calorie_reply(reply: str, food: str, quantity: float) -> Dict[str, Any]:
    """
    Reads the calorie JSON from a model reply.

    Unparsable replies fall back to the first integer in the text times
    `quantity` (or `quantity` servings of 100 kcal when there is none).
    """
    try:
        data = json.loads(_strip_code_fence(reply))
        if isinstance(data, dict):
            return data
    except ValueError:
        pass

    match = _FIRST_INTEGER.search(reply)
    if match:
        calories = int(match.group(1)) * quantity
    else:
        calories = quantity * FALLBACK_KCAL_PER_SERVING
    return {
        "calories": calories,
        "food": food,
        "quantity": quantity,
        "per_unit": calories / quantity,
        "description": f"Estimated calories for {food}",
    }


class CoachingService:

    def __init__(self, llm: LLMService = gemini_service):
        self.llm = llm

    async def generate_topics(self, subject: str, lesson: str) -> Tuple[List[str], str]:
        """Returns (topics, raw_reply). An empty reply is a provider failure."""
        completion = await self.llm.complete(
            TOPICS_PROMPT.format(count=TOPIC_COUNT, subject=subject, lesson=lesson),
            system=TOPICS_SYSTEM,
            max_tokens=150,
            temperature=0.7,
        )
        if not completion.text:
            raise LLMServiceError(
                message="Failed to generate topics. Please try again.",
                context={"subject": subject, "lesson": lesson},
            )

        topics = parse_topics(completion.text)
        logger.info("Generated %d topics for %s / %s", len(topics), subject, lesson)
        return topics, completion.text

    async def analyze_speech(
        self, subject: str, lesson: str, topic: str, speech_text: str
    ) -> Dict[str, Any]:
        completion = await self.llm.complete(
            FEEDBACK_PROMPT.format(topic=topic, speech=speech_text),
            system=FEEDBACK_SYSTEM,
            max_tokens=1200,
            temperature=0.5,
        )
        if not completion.text:
            raise LLMServiceError(
                message="Failed to analyze speech. Please try again.",
                context={"topic": topic},
            )

        metadata = {
            "subject": subject,
            "lesson": lesson,
            "topic": topic,
            "speechLength": len(speech_text),
            "wordCount": count_words(speech_text),
        }
        return {"formatted_feedback": completion.text, "metadata": metadata}

    async def estimate_food_calories(self, food: str, quantity: float = 1) -> Dict[str, Any]:
        try:
            completion = await self.llm.complete(
                CALORIES_PROMPT.format(food=food), max_tokens=200, temperature=0.1
            )
            if not completion.text:
                raise LLMServiceError(message="No response from AI")
        except LearnHubError as e:
            logger.warning("Calorie lookup for '%s' fell back to default: %s", food, e.message)
            return {
                "calories": quantity * FALLBACK_KCAL_PER_SERVING,
                "food": food,
                "quantity": quantity,
                "per_unit": FALLBACK_KCAL_PER_SERVING,
                "description": "Fallback estimate (AI unavailable)",
                "error": "AI service temporarily unavailable",
            }

        return parse_calorie_reply(completion.text, food, quantity)


coaching_service = CoachingService()
