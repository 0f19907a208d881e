"""
LearnHub Backend: Learning Node Service
=========================================

What:  Business logic for the notes tree (create, browse, save notes, quiz).
How:   Nodes are addressed by their materialized path, a list of names from
       the root. Lookups go through the unique `path_key` column, so each one
       is a single indexed equality query.

Operations:
    create_node(name, parent_path)   insert under an existing parent
    get_nodes(path)                  node at path + its children by name
    save_notes(path, notes)          overwrite a node's notes
    adaptive_question(path, ...)     one quiz question drawn from the notes
"""

import logging
import random
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from learnhub.models.node import NAME_MAX_LENGTH, LearningNode, make_path_key

logger = logging.getLogger(__name__)

SIBLING_CONFLICT = "A node with this name already exists at this level"

# ── Adaptive question generation ──────────────────────────────────────────
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_STOP_WORDS = {
    "that", "this", "with", "from", "they", "have",
    "been", "will", "would", "could", "should",
}
_MAX_DRAWS = 10
_FOCUS_THRESHOLD = 0.6

FALLBACK_QUESTION = {
    "question": "What is the main concept covered in your notes?",
    "correctAnswer": "Key concept from notes",
    "topic": "General understanding",
}


def _is_name_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(p, str) for p in value)


def extract_topic(sentence: str) -> str:
    """First three words longer than four letters that are not stop words."""
    words = [
        w for w in sentence.split(" ")
        if len(w) > 4 and w.lower() not in _STOP_WORDS
    ]
    return " ".join(words[:3]) or "Key concept"


def generate_adaptive_question(
    notes: str,
    previous_questions: Sequence[str] = (),
    wrong_answers: Sequence[Any] = (),
    performance: float = 0.5,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """
    Builds one question from a random sentence of the notes.

    Sentences of 20 characters or fewer are skipped. A sentence whose first
    20 characters already appear in a previous question is redrawn, up to ten
    draws in total. Low performance with recorded wrong answers adds their
    topics as `focusTopics`.
    """
    rng = rng or random.Random()
    sentences = [s for s in _SENTENCE_SPLIT.split(notes) if len(s.strip()) > 20]
    if not sentences:
        return dict(FALLBACK_QUESTION)

    selected = ""
    for _ in range(_MAX_DRAWS):
        selected = rng.choice(sentences).strip()
        prefix = selected[:20]
        if not any(prefix in q for q in previous_questions):
            break

    topic = extract_topic(selected)
    question: Dict[str, Any] = {
        "question": f'What is the main concept related to: "{selected[:100]}..."?',
        "correctAnswer": topic,
        "topic": topic,
    }

    if performance < _FOCUS_THRESHOLD and wrong_answers:
        question["focusTopics"] = [
            str(w["topic"]) for w in wrong_answers
            if isinstance(w, dict) and w.get("topic")
        ]
    return question


class NodeService:
    """Tree operations on `ai_learning_nodes`; all methods take the request session."""

    async def find_by_path(self, db: AsyncSession, path: Sequence[str]) -> Optional[LearningNode]:
        result = await db.execute(
            select(LearningNode).where(LearningNode.path_key == make_path_key(path))
        )
        return result.scalar_one_or_none()

    async def create_node(
        self,
        db: AsyncSession,
        name: Any,
        parent_path: Any = None,
    ) -> LearningNode:
        """
        Creates a node under the node at `parent_path` (root when empty).

        Raises:
            ValidationError: blank or over-long name, or a parent path holding
                             non-strings.
            NotFoundError:   parent path does not resolve.
            ConflictError:   a sibling already has this name.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(message="Node name is required", field="name")
        name = name.strip()
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationError(
                message=f"Node name must be at most {NAME_MAX_LENGTH} characters", field="name"
            )

        parent: Optional[LearningNode] = None
        if isinstance(parent_path, list) and parent_path:
            if not _is_name_list(parent_path):
                raise ValidationError(
                    message="Parent path must be a list of names", field="parentPath"
                )
            parent = await self.find_by_path(db, parent_path)
            if parent is None:
                logger.info("Parent not found for path %s", parent_path)
                raise NotFoundError(resource="node", message="Parent node not found")

        node = LearningNode.build(name, parent)

        if await self.find_by_path(db, node.path) is not None:
            raise ConflictError(message=SIBLING_CONFLICT, context={"path": node.path})

        try:
            db.add(node)
            await db.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent insert of the same path
            logger.warning("Concurrent insert for path %s", node.path)
            raise ConflictError(message=SIBLING_CONFLICT, context={"path": node.path}) from e
        except Exception as e:
            logger.error("Failed to create node %s: %s", node.path, str(e), exc_info=True)
            raise DatabaseError(message="Failed to create node") from e

        logger.info("Created node %s (level %d)", node.path, node.level)
        return node

    async def get_nodes(
        self, db: AsyncSession, path: Any = None
    ) -> Tuple[Optional[LearningNode], List[LearningNode], List[str]]:
        """
        Returns (current_node, children, path).

        An empty or missing path lists the roots. A path that resolves to no
        node gives (None, [], path) rather than an error.
        """
        if path is None or path == []:
            result = await db.execute(
                select(LearningNode)
                .where(LearningNode.parent_id.is_(None))
                .order_by(LearningNode.name)
            )
            return None, list(result.scalars().all()), []

        if not _is_name_list(path):
            raise ValidationError(message="Path must be a list of names", field="path")

        current = await self.find_by_path(db, path)
        if current is None:
            logger.info("No node for path %s", path)
            return None, [], path

        result = await db.execute(
            select(LearningNode)
            .where(LearningNode.parent_id == current.id)
            .order_by(LearningNode.name)
        )
        return current, list(result.scalars().all()), path

    async def save_notes(self, db: AsyncSession, path: Any, notes: Optional[str]) -> LearningNode:
        """Overwrites the notes of the node at `path`; empty notes become NULL."""
        if not isinstance(path, list):
            raise ValidationError(message="Path is required", field="path")
        if not path:
            raise ValidationError(
                message="Cannot save notes at root level. Create a subject first.",
                field="path",
            )
        if not _is_name_list(path):
            raise ValidationError(message="Path is required", field="path")

        node = await self.find_by_path(db, path)
        if node is None:
            raise NotFoundError(
                resource="node",
                message=(
                    f"Node not found for path: {' → '.join(path)}. "
                    "Please navigate to this level through the UI first."
                ),
            )

        try:
            node.notes = notes or None
            node.updated_at = datetime.now(timezone.utc)
            await db.flush()
        except Exception as e:
            logger.error("Failed to update notes for %s: %s", path, str(e), exc_info=True)
            raise DatabaseError(message="Failed to update notes") from e

        logger.info("Saved notes for %s (%d chars)", path, len(notes or ""))
        return node

    async def adaptive_question(
        self,
        db: AsyncSession,
        path: Any,
        previous_questions: Sequence[str] = (),
        wrong_answers: Sequence[Any] = (),
        current_performance: float = 0.5,
    ) -> Dict[str, Any]:
        if not _is_name_list(path):
            raise ValidationError(message="Path is required", field="path")

        node = await self.find_by_path(db, path)
        if node is None or not node.notes:
            raise NotFoundError(resource="notes", message="No notes found for this topic")

        return generate_adaptive_question(
            node.notes, previous_questions, wrong_answers, current_performance
        )


node_service = NodeService()
