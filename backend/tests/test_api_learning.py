"""
LearnHub Backend: Learning Tree, Speaking and Quiz API Tests
==============================================================

What:  End-to-end requests through the FastAPI app for the notes tree,
       speaking practice and quiz/mastery endpoints.
How:   `test_client` overrides get_db_session with the in-memory engine;
       `fake_llm` replaces Gemini.
"""

import pytest
import pytest_asyncio

from learnhub.exceptions import LLMServiceError
from learnhub.models.curriculum import Lesson, Subject, Topic

TREE = "/api/ai-learning"

NOTES = (
    "Photosynthesis converts sunlight into chemical energy inside chloroplasts. "
    "Mitochondria release stored energy through cellular respiration."
)


@pytest_asyncio.fixture
async def curriculum(session_factory):
    """english / Lesson 1 / Greetings with mastery 2, committed."""
    async with session_factory() as session:
        subject = Subject(slug="english", label="English")
        session.add(subject)
        await session.flush()
        lesson = Lesson(name="Lesson 1", subject_id=subject.id)
        session.add(lesson)
        await session.flush()
        session.add(Topic(name="Greetings", lesson_id=lesson.id, mastery_count=2))
        await session.commit()


class TestLearningTreeAPI:

    @pytest.mark.asyncio
    async def test_create_and_browse(self, test_client):
        response = await test_client.post(f"{TREE}/create-node", json={"name": "Biology", "parentPath": []})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["node"]["path"] == ["Biology"]
        assert body["node"]["level"] == 0

        await test_client.post(f"{TREE}/create-node", json={"name": "Cells", "parentPath": ["Biology"]})

        response = await test_client.post(f"{TREE}/get-nodes", json={"path": ["Biology"]})
        body = response.json()
        assert body["currentNode"]["name"] == "Biology"
        assert [c["name"] for c in body["children"]] == ["Cells"]
        assert body["path"] == ["Biology"]

    @pytest.mark.asyncio
    async def test_roots_without_path(self, test_client):
        await test_client.post(f"{TREE}/create-node", json={"name": "Physics"})
        response = await test_client.post(f"{TREE}/get-nodes", json={})
        body = response.json()
        assert body["currentNode"] is None
        assert [c["name"] for c in body["children"]] == ["Physics"]

    @pytest.mark.asyncio
    async def test_duplicate_sibling_is_409(self, test_client):
        await test_client.post(f"{TREE}/create-node", json={"name": "Biology"})
        response = await test_client.post(f"{TREE}/create-node", json={"name": "Biology"})

        assert response.status_code == 409
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "conflict"
        assert body["error"] == "A node with this name already exists at this level"

    @pytest.mark.asyncio
    async def test_missing_parent_is_404(self, test_client):
        response = await test_client.post(
            f"{TREE}/create-node", json={"name": "Cells", "parentPath": ["Nope"]}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Parent node not found"

    @pytest.mark.asyncio
    async def test_non_list_path_is_400(self, test_client):
        response = await test_client.post(f"{TREE}/get-nodes", json={"path": "Biology"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_notes_then_adaptive_quiz(self, test_client):
        await test_client.post(f"{TREE}/create-node", json={"name": "Biology"})

        response = await test_client.post(
            f"{TREE}/adaptive-quiz", json={"path": ["Biology"], "previousQuestions": []}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "No notes found for this topic"

        response = await test_client.post(
            f"{TREE}/save-notes", json={"path": ["Biology"], "notes": NOTES}
        )
        assert response.json() == {"success": True, "message": "Notes saved successfully"}

        response = await test_client.post(
            f"{TREE}/adaptive-quiz",
            json={
                "path": ["Biology"],
                "previousQuestions": [],
                "wrongAnswers": [{"topic": "Respiration"}],
                "currentPerformance": 0.3,
            },
        )
        question = response.json()["question"]
        assert question["question"].startswith("What is the main concept related to:")
        assert question["focusTopics"] == ["Respiration"]

    @pytest.mark.asyncio
    async def test_over_long_name_is_400(self, test_client):
        response = await test_client.post(f"{TREE}/create-node", json={"name": "n" * 300})
        assert response.status_code == 400
        assert response.json()["details"] == {"field": "name"}

    @pytest.mark.asyncio
    async def test_adaptive_quiz_accepts_plain_wrong_answers(self, test_client):
        await test_client.post(f"{TREE}/create-node", json={"name": "Biology"})
        await test_client.post(f"{TREE}/save-notes", json={"path": ["Biology"], "notes": NOTES})

        response = await test_client.post(
            f"{TREE}/adaptive-quiz",
            json={"path": ["Biology"], "wrongAnswers": ["x", {"topic": "Cells"}], "currentPerformance": 0.2},
        )
        assert response.status_code == 200
        assert response.json()["question"]["focusTopics"] == ["Cells"]

    @pytest.mark.asyncio
    async def test_save_notes_at_root_is_400(self, test_client):
        response = await test_client.post(f"{TREE}/save-notes", json={"path": [], "notes": "x"})
        assert response.status_code == 400
        assert response.json()["error"].startswith("Cannot save notes at root level")


class TestSpeakingAPI:

    @pytest.mark.asyncio
    async def test_save_then_history(self, test_client):
        for score in (80, 60):
            response = await test_client.post(
                "/api/save-speaking-session",
                json={
                    "subject": "English",
                    "lesson": "Lesson 1",
                    "topic": "Daily Routine",
                    "speechText": "I wake up at six",
                    "aiFeedback": {"overall_score": score},
                    "duration": 30,
                },
            )
            assert response.status_code == 200
            assert response.json()["message"] == "Speaking session saved successfully"
            assert response.json()["sessionId"]

        response = await test_client.get(
            "/api/get-previous-sessions", params={"subject": "English", "lesson": "Lesson 1"}
        )
        body = response.json()
        assert body["count"] == 1
        topic = body["topics"][0]
        assert topic["id"] == "prev-daily-routine"
        assert topic["isPreviousSession"] is True
        assert topic["sessionCount"] == 2
        assert topic["avgScore"] == 70
        assert topic["avgWordCount"] == 5

    @pytest.mark.asyncio
    async def test_fractional_score_keeps_history_readable(self, test_client):
        response = await test_client.post(
            "/api/save-speaking-session",
            json={
                "subject": "English", "lesson": "L2", "topic": "Travel",
                "speechText": "I like trains", "aiFeedback": {"overall_score": 7.5},
            },
        )
        assert response.status_code == 200

        response = await test_client.get(
            "/api/get-previous-sessions", params={"subject": "English", "lesson": "L2"}
        )
        assert response.status_code == 200
        assert response.json()["topics"][0]["avgScore"] == 8

    @pytest.mark.asyncio
    async def test_non_numeric_score_is_400(self, test_client):
        response = await test_client.post(
            "/api/save-speaking-session",
            json={
                "subject": "English", "lesson": "L2", "topic": "Travel",
                "speechText": "hi", "aiFeedback": {"overall_score": "great"},
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_history_requires_lesson(self, test_client):
        response = await test_client.get("/api/get-previous-sessions", params={"subject": "English"})
        assert response.status_code == 400
        assert response.json()["error"] == "Subject and lesson are required"

    @pytest.mark.asyncio
    async def test_save_requires_feedback(self, test_client):
        response = await test_client.post(
            "/api/save-speaking-session",
            json={"subject": "E", "lesson": "L", "topic": "T", "speechText": "hi"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"

    @pytest.mark.asyncio
    async def test_generate_topics(self, test_client, fake_llm):
        fake_llm.reply = "1. Morning routines\n2. Weekend plans"
        response = await test_client.post(
            "/api/ai-generate-topics", json={"subject": "English", "lesson": "Lesson 1"}
        )
        body = response.json()
        assert body["topics"][0] == {
            "id": "ai-1",
            "name": "Morning routines",
            "lesson_id": "ai-generated",
            "isAiGenerated": True,
        }
        assert body["debug"]["parsedTopics"] == ["Morning routines", "Weekend plans"]

    @pytest.mark.asyncio
    async def test_generate_topics_ai_down_is_503(self, test_client, fake_llm):
        fake_llm.error = LLMServiceError(retry_after=60)
        response = await test_client.post(
            "/api/ai-generate-topics", json={"subject": "English", "lesson": "Lesson 1"}
        )
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "60"
        assert response.json()["code"] == "llm_service_error"

    @pytest.mark.asyncio
    async def test_analyze_speech(self, test_client, fake_llm):
        fake_llm.reply = "## Feedback"
        response = await test_client.post(
            "/api/ai-analyze-speech",
            json={"subject": "E", "lesson": "L", "topic": "Travel", "speechText": "I like trains"},
        )
        body = response.json()
        assert body["analysis"]["formatted_feedback"] == "## Feedback"
        assert body["metadata"]["wordCount"] == 3

    @pytest.mark.asyncio
    async def test_topic_content(self, test_client):
        response = await test_client.get(
            "/api/get-topic-content", params={"subject": "E", "lesson": "L", "topic": "T"}
        )
        assert response.status_code == 404

        await test_client.post(
            "/api/save-speaking-session",
            json={
                "subject": "E", "lesson": "L", "topic": "T", "speechText": "hi",
                "aiFeedback": {"overall_score": 1}, "topicContent": {"hints": ["a"]},
            },
        )
        response = await test_client.get(
            "/api/get-topic-content", params={"subject": "E", "lesson": "L", "topic": "T"}
        )
        assert response.json()["topicContent"] == {"hints": ["a"]}


class TestQuizAPI:

    @pytest.mark.asyncio
    async def test_save_and_get_quiz(self, test_client, curriculum):
        params = {"subject": "english", "lesson": "Lesson 1", "topic": "Greetings"}
        response = await test_client.post(
            "/api/save-quiz", json={**params, "question": "Hello?", "answer": "Hi", "imageBefore": "/api/files/x.png"}
        )
        assert response.json() == {"success": True}

        response = await test_client.get("/api/get-quiz", params=params)
        questions = response.json()["questions"]
        assert len(questions) == 1
        assert questions[0]["image_before"] == "/api/files/x.png"

    @pytest.mark.asyncio
    async def test_get_quiz_unknown_subject(self, test_client, curriculum):
        response = await test_client.get(
            "/api/get-quiz", params={"subject": "maths", "lesson": "Lesson 1", "topic": "Greetings"}
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Subject not found"

    @pytest.mark.asyncio
    async def test_get_quiz_missing_param(self, test_client):
        response = await test_client.get("/api/get-quiz", params={"subject": "english"})
        assert response.status_code == 400
        assert response.json()["error"] == "Missing subject, lesson, or topic"

    @pytest.mark.asyncio
    async def test_update_mastery(self, test_client, curriculum):
        params = {"subject": "english", "lesson": "Lesson 1", "topic": "Greetings"}

        response = await test_client.post("/api/update-mastery", json={**params, "increment": 0})
        assert response.status_code == 400

        response = await test_client.post("/api/update-mastery", json={**params, "increment": 2})
        body = response.json()
        assert body["updated"]["mastery_count"] == 4
        assert body["message"] == "Mastery count incremented by 2"

        response = await test_client.get("/api/get-topic-mastery", params=params)
        assert response.json()["topic"]["mastery_count"] == 4

        response = await test_client.get("/api/get-all-progress")
        assert response.json()["data"][0]["subject_slug"] == "english"

    @pytest.mark.asyncio
    async def test_sync_and_save_progress(self, test_client):
        response = await test_client.post(
            "/api/sync-progress",
            json={"english": {"Greetings": {"mastered": 3, "lastMastered": "2024-03-01T10:00:00Z"}, "Farewells": {"mastered": 1}}},
        )
        body = response.json()
        assert body["message"] == "Updated 2 progress records"
        assert len(body["updates"]) == 2

        response = await test_client.post(
            "/api/save-progress", json={"subject": "english", "topic": "Greetings", "masteryCount": 5}
        )
        assert response.json() == {"success": True}

    @pytest.mark.asyncio
    async def test_upload_and_serve_image(self, test_client, sample_image_bytes):
        response = await test_client.post(
            "/api/upload-image", files={"file": ("card.jpg", sample_image_bytes, "image/jpeg")}
        )
        assert response.status_code == 200
        url = response.json()["url"]
        assert url.startswith("/api/files/")

        response = await test_client.get(url)
        assert response.status_code == 200
        assert response.content == sample_image_bytes
        assert response.headers["Cache-Control"] == "public, max-age=86400"

    @pytest.mark.asyncio
    async def test_upload_without_file(self, test_client, sample_image_bytes):
        response = await test_client.post(
            "/api/upload-image", files={"other": ("card.jpg", sample_image_bytes, "image/jpeg")}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid or missing file"

    @pytest.mark.asyncio
    async def test_upload_rejects_non_image(self, test_client):
        response = await test_client.post(
            "/api/upload-image", files={"file": ("notes.png", b"plain text pretending", "image/png")}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
