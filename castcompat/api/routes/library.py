"""
Compatibility and directory listing routes for castcompat
"""

import os

from fastapi import APIRouter, HTTPException, Query

from ...compat import FilesystemError
from ...models import CompatibilityResponse, DirectoryEntryResponse, DirectoryListingResponse
from ...service import get_service

router = APIRouter()


@router.get("/api/compatibility", response_model=CompatibilityResponse)
async def get_compatibility(path: str = Query(..., description="File path relative to the media root")):
    """Check whether one file plays natively on the device."""
    service = get_service()

    try:
        source = service.resolve_media_path(path)
    except FilesystemError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not os.path.isfile(source):
        raise HTTPException(status_code=404, detail="File not found")

    try:
        result = await service.get_file_compatibility(source)
    except FilesystemError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return CompatibilityResponse.from_result(result, path=path, media_root=service.media_root)


@router.get("/api/library", response_model=DirectoryListingResponse)
async def list_directory(
    dir: str = Query("", description="Directory relative to the media root"),
    compat: bool = Query(False, description="Classify every file in the directory")
):
    """List a directory of the media library."""
    service = get_service()

    try:
        service.resolve_media_path(dir)
    except FilesystemError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        entries = await service.get_directory_listing(service.media_root, dir, compat)
    except FilesystemError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return DirectoryListingResponse(
        directory=dir,
        entries={
            name: DirectoryEntryResponse.from_entry(name, entry, service.media_root)
            for name, entry in entries.items()
        }
    )
