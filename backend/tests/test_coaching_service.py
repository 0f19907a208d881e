"""
LearnHub Backend: Coaching Service Tests
==========================================

What:  Topic parsing, speech feedback metadata and the calorie lookup with
       its fallback, using the FakeLLM from conftest.
"""

import pytest

from learnhub.exceptions import CircuitBreakerOpenError, LLMServiceError
from learnhub.services.coaching_service import (
    CoachingService,
    parse_calorie_reply,
    parse_topics,
)


class TestParseTopics:

    def test_strips_numbering_and_blank_lines(self):
        raw = "1. Morning routines\n\n2 Travel stories\n3.Favourite food"
        assert parse_topics(raw) == ["Morning routines", "Travel stories", "Favourite food"]

    def test_keeps_at_most_five(self):
        raw = "\n".join(f"{i}. Topic {i}" for i in range(1, 9))
        assert parse_topics(raw) == [f"Topic {i}" for i in range(1, 6)]


class TestParseCalorieReply:

    def test_json_reply(self):
        reply = '{"calories": 140, "food": "Eggs", "description": "2 boiled eggs"}'
        assert parse_calorie_reply(reply, "2 eggs", 1)["calories"] == 140

    def test_fenced_json_reply(self):
        reply = '```json\n{"calories": 80, "food": "Roti"}\n```'
        assert parse_calorie_reply(reply, "1 roti", 1) == {"calories": 80, "food": "Roti"}

    def test_first_integer_times_quantity(self):
        result = parse_calorie_reply("About 133 calories per dosa.", "dosa", 2)
        assert result["calories"] == 266
        assert result["per_unit"] == 133
        assert result["description"] == "Estimated calories for dosa"

    def test_no_number_uses_default_serving(self):
        result = parse_calorie_reply("I am not sure.", "mystery", 3)
        assert result["calories"] == 300


class TestCoachingService:

    @pytest.mark.asyncio
    async def test_generate_topics(self, fake_llm):
        fake_llm.reply = "1. Morning routines\n2. Weekend plans"
        service = CoachingService(llm=fake_llm)

        topics, raw = await service.generate_topics("English", "Lesson 1")

        assert topics == ["Morning routines", "Weekend plans"]
        assert raw == fake_llm.reply
        call = fake_llm.calls[0]
        assert '"English" - "Lesson 1"' in call["prompt"]
        assert call["max_tokens"] == 150

    @pytest.mark.asyncio
    async def test_generate_topics_empty_reply(self, fake_llm):
        service = CoachingService(llm=fake_llm)
        with pytest.raises(LLMServiceError, match="Failed to generate topics"):
            await service.generate_topics("English", "Lesson 1")

    @pytest.mark.asyncio
    async def test_analyze_speech_metadata(self, fake_llm):
        fake_llm.reply = "## Feedback on Speech"
        service = CoachingService(llm=fake_llm)

        result = await service.analyze_speech("English", "L1", "Travel", "I went to Goa")

        assert result["formatted_feedback"] == "## Feedback on Speech"
        assert result["metadata"] == {
            "subject": "English",
            "lesson": "L1",
            "topic": "Travel",
            "speechLength": 13,
            "wordCount": 4,
        }
        assert fake_llm.calls[0]["temperature"] == 0.5

    @pytest.mark.asyncio
    async def test_analyze_speech_propagates_outage(self, fake_llm):
        fake_llm.error = CircuitBreakerOpenError(recovery_time=30)
        service = CoachingService(llm=fake_llm)
        with pytest.raises(CircuitBreakerOpenError):
            await service.analyze_speech("English", "L1", "Travel", "text")

    @pytest.mark.asyncio
    async def test_food_calories_from_model(self, fake_llm):
        fake_llm.reply = '{"calories": 205, "food": "Rice", "description": "cup of rice"}'
        service = CoachingService(llm=fake_llm)

        result = await service.estimate_food_calories("cup of rice")
        assert result["calories"] == 205
        assert fake_llm.calls[0]["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_food_calories_fallback_when_ai_down(self, fake_llm):
        fake_llm.error = LLMServiceError()
        service = CoachingService(llm=fake_llm)

        result = await service.estimate_food_calories("samosa", quantity=2)
        assert result == {
            "calories": 200,
            "food": "samosa",
            "quantity": 2,
            "per_unit": 100,
            "description": "Fallback estimate (AI unavailable)",
            "error": "AI service temporarily unavailable",
        }

    @pytest.mark.asyncio
    async def test_food_calories_fallback_on_empty_reply(self, fake_llm):
        service = CoachingService(llm=fake_llm)
        result = await service.estimate_food_calories("samosa")
        assert result["calories"] == 100
        assert result["error"] == "AI service temporarily unavailable"
