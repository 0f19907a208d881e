"""
LearnHub Backend: Learning Node Model
=======================================

What:  ORM model for the `ai_learning_nodes` table, the notes tree
       (subjects → lessons → topics → notes).
How:   Each row stores its full materialized path (names from the root down
       to itself). The path is computed in Python when the node is inserted;
       there is no database trigger.

Table Design:
    - path:      JSON list of names, e.g. ["Math", "Algebra", "Quadratics"]
    - path_key:  canonical JSON text of `path`, UNIQUE. Two siblings with the
                 same name would share a path, so this one constraint enforces
                 sibling uniqueness (roots included, where parent_id IS NULL
                 would slip past a (parent_id, name) constraint) and gives an
                 indexed exact-path lookup.
    - level:     len(path) - 1, so roots are level 0
"""

import json
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.database import Base


def make_path_key(path: Sequence[str]) -> str:
    """Canonical text form of a materialized path."""
    return json.dumps(list(path), ensure_ascii=False, separators=(",", ":"))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


NAME_MAX_LENGTH = 255


class LearningNode(Base):
    """
    One node of the notes tree.

    Invariants:
        - path == parent.path + [name]; roots have parent_id NULL and [name]
        - sibling names are unique (via path_key)
        - level == len(path) - 1
    """

    __tablename__ = "ai_learning_nodes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)

    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("ai_learning_nodes.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    path: Mapped[List[str]] = mapped_column(JSON, nullable=False)

    path_key: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    level: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    # NULL until notes are saved; saving an empty string clears them back to NULL
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_ai_learning_nodes_parent_name", "parent_id", "name"),
    )

    @classmethod
    def build(cls, name: str, parent: Optional["LearningNode"] = None) -> "LearningNode":
        """Creates an unsaved node with path and level derived from `parent`."""
        path = (list(parent.path) if parent is not None else []) + [name]
        return cls(
            name=name,
            parent_id=parent.id if parent is not None else None,
            path=path,
            path_key=make_path_key(path),
            level=len(path) - 1,
        )

    def __repr__(self) -> str:
        return f"<LearningNode(id={self.id}, path={self.path!r})>"
