from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from src.utils.storage import LocalObjectStorage, StorageError, get_storage

router = APIRouter(tags=["storage"])


@router.get("/storage/{bucket}/{path:path}")
async def download_object(
    bucket: str,
    path: str,
    token: str = Query(...),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Serve a stored object to the holder of a valid signed URL"""
    if not storage.verify_signed_token(token, bucket, path):
        raise HTTPException(status_code=403, detail="Invalid or expired link")

    try:
        target = storage.resolve(bucket, path)
    except StorageError:
        raise HTTPException(status_code=403, detail="Invalid or expired link")

    if not target.is_file():
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(target, filename=target.name)
