from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
import os
import file_utils

router = APIRouter(prefix="/cdn", tags=["cdn"])

@router.get("/{bucket}/{filename}")
def serve_object(bucket: str, filename: str):
    """Serve public files from a storage bucket"""
    if bucket not in file_utils.BUCKETS or os.path.basename(filename) != filename:
        raise HTTPException(status_code=404, detail="File not found")
    file_path = os.path.join(file_utils.bucket_folder(bucket), filename)
    if not os.path.exists(file_path):
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(file_path)
