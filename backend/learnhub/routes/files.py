"""
LearnHub Backend: Stored File Route
=====================================

What:  GET /api/files/{file_path} serves quiz images written by FileService.
How:   FileService.resolve() keeps the lookup inside the storage root and
       raises 404 for unknown files; the media type follows the extension.

Uploaded images are never modified, so responses are cacheable for a day.
The rate limiter skips this prefix (see middleware.rate_limit).
"""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from learnhub.schemas.common import ErrorResponse
from learnhub.services.file_service import file_service

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.get(
    "/{file_path:path}",
    response_class=FileResponse,
    responses={
        200: {"description": "Image file"},
        400: {"description": "Path escapes the storage root", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve an uploaded image",
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve(file_path)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
