"""
Upload and Image API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse

from gims.api import deps
from gims.services.file_storage import FileStorageService

router = APIRouter()

IMAGE_CACHE_CONTROL = "public, max-age=60, stale-while-revalidate=600"


@router.post("/upload")
def upload_file(
    file: Optional[UploadFile] = File(None),
    folder: str = Form("request"),
    custom_name: Optional[str] = Form(None, alias="customName"),
    user: deps.UserContext = Depends(deps.get_user_context)
):
    path = FileStorageService().save_upload(file, folder, custom_name)
    return {"success": True, "path": path}


@router.get("/images/{path:path}")
def get_image(path: str):
    """
    Serve an uploaded file. Paths outside the upload directory are not found.
    """
    file_path, media_type = FileStorageService().resolve(path)
    return FileResponse(file_path, media_type=media_type, headers={"Cache-Control": IMAGE_CACHE_CONTROL})
