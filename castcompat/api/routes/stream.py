"""
Transcode streaming route for castcompat
"""

import logging
import os
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import StreamingResponse

from ...compat import FilesystemError, StreamOptions
from ...service import get_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/stream")
async def stream_transcode(
    path: str = Query(..., description="File path relative to the media root"),
    subtitles: bool = Query(False, description="Burn in subtitles when available"),
    subtitle_path: Optional[str] = Query(None, description="Subtitle file relative to the media root"),
    audio_track: Optional[int] = Query(None, ge=0, description="Audio stream number to keep")
):
    """
    Stream a device-compatible transcode of a library file.

    The response body is ffmpeg's live output. When the client disconnects
    the transcoding process is terminated.
    """
    service = get_service()

    try:
        source = service.resolve_media_path(path)
        subtitle_source = service.resolve_media_path(subtitle_path) if subtitle_path else None
    except FilesystemError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not os.path.isfile(source):
        raise HTTPException(status_code=404, detail="File not found")

    def on_complete(error: bool, exit_code: Optional[int], diagnostic: str) -> None:
        if error:
            logger.warning(f"[Stream] {path} failed with exit code {exit_code}")
        else:
            logger.info(f"[Stream] {path} finished with exit code {exit_code}")

    options = StreamOptions(
        use_subtitles=subtitles,
        subtitle_path=subtitle_source,
        audio_track=audio_track,
    )

    try:
        session = await service.open_stream_session(source, options, on_complete=on_complete)
    except FilesystemError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return StreamingResponse(
        session.iter_output(),
        media_type=service.media_type,
        headers={"Cache-Control": "no-cache"}
    )
