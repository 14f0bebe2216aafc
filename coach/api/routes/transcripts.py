"""Transcript Routes: serves exported transcripts back to their owner.

Invariants:
    - Lookups are confined to the caller's own transcripts; the file name
      carries no ownership
    - Unknown, foreign and malformed names all return 404
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from coach.api.dependencies import get_auth, get_transcript_store
from coach.core.auth_context import AuthContext
from coach.core.errors import ResourceNotFoundError
from coach.infrastructure.transcript_store import LocalTranscriptStore

router = APIRouter(prefix="/api/v1/transcripts", tags=["transcripts"])


@router.get("/{file_name}", response_class=PlainTextResponse)
async def get_transcript(
    file_name: str,
    auth: AuthContext = Depends(get_auth),
    store: LocalTranscriptStore = Depends(get_transcript_store),
):
    try:
        content = await store.read(file_name, owner=auth.user_id)
    except ValueError:
        content = None
    if content is None:
        raise ResourceNotFoundError("Transcript", file_name)
    return PlainTextResponse(content)
