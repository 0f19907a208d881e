"""
LearnHub Backend: AI-Learning Tree Routes
===========================================

What:  POST endpoints under /api/ai-learning for the notes tree.
How:   Bodies are parsed into the schemas in learnhub.schemas.node and
       handed to NodeService, which owns every validation message.

Endpoints:
    POST /api/ai-learning/create-node    add a node under a parent path
    POST /api/ai-learning/get-nodes      current node + sorted children
    POST /api/ai-learning/save-notes     overwrite a node's notes
    POST /api/ai-learning/adaptive-quiz  one question generated from notes
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.database import get_db_session
from learnhub.schemas.common import ErrorResponse, MessageResponse
from learnhub.schemas.node import (
    AdaptiveQuizRequest,
    AdaptiveQuizResponse,
    CreateNodeRequest,
    CreateNodeResponse,
    GetNodesRequest,
    GetNodesResponse,
    NodeOut,
    SaveNotesRequest,
)
from learnhub.services.node_service import node_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-learning", tags=["AI Learning"])


@router.post(
    "/create-node",
    response_model=CreateNodeResponse,
    responses={
        400: {"description": "Missing node name", "model": ErrorResponse},
        404: {"description": "Parent path does not resolve", "model": ErrorResponse},
        409: {"description": "Sibling with the same name exists", "model": ErrorResponse},
    },
    summary="Create a tree node",
)
async def create_node(
    body: CreateNodeRequest,
    db: AsyncSession = Depends(get_db_session),
) -> CreateNodeResponse:
    """
    Creates a subject (empty parentPath), lesson, topic or deeper node.

    The node's path is the parent's path plus the trimmed name.
    """
    node = await node_service.create_node(db, body.name, body.parent_path)
    return CreateNodeResponse(node=NodeOut.model_validate(node))


@router.post(
    "/get-nodes",
    response_model=GetNodesResponse,
    responses={400: {"description": "Path is not a list of names", "model": ErrorResponse}},
    summary="List the children of a path",
)
async def get_nodes(
    body: GetNodesRequest,
    db: AsyncSession = Depends(get_db_session),
) -> GetNodesResponse:
    current, children, path = await node_service.get_nodes(db, body.path)
    return GetNodesResponse(
        current_node=NodeOut.model_validate(current) if current else None,
        children=[NodeOut.model_validate(c) for c in children],
        path=path,
    )


@router.post(
    "/save-notes",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing or root-level path", "model": ErrorResponse},
        404: {"description": "Path does not resolve", "model": ErrorResponse},
    },
    summary="Save notes for a node",
)
async def save_notes(
    body: SaveNotesRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await node_service.save_notes(db, body.path, body.notes)
    return MessageResponse(message="Notes saved successfully")


@router.post(
    "/adaptive-quiz",
    response_model=AdaptiveQuizResponse,
    responses={
        400: {"description": "Missing path", "model": ErrorResponse},
        404: {"description": "Node has no notes", "model": ErrorResponse},
    },
    summary="Generate a quiz question from a node's notes",
)
async def adaptive_quiz(
    body: AdaptiveQuizRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AdaptiveQuizResponse:
    question = await node_service.adaptive_question(
        db,
        body.path,
        body.previous_questions,
        body.wrong_answers,
        body.current_performance,
    )
    return AdaptiveQuizResponse(question=question)
