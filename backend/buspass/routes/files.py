"""
Serves stored application documents back to admins and their owners.

URLs come from StorageService.upload(); this route maps them back onto the
storage root and refuses anything that resolves outside it.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from buspass.auth import require_role
from buspass.exceptions import NotFoundError, ValidationError
from buspass.models.enums import UserRole
from buspass.services.storage_service import StorageService, storage_service

router = APIRouter(
    prefix="/files",
    tags=["Files"],
    dependencies=[Depends(require_role(UserRole.ADMIN, UserRole.PASSENGER))],
)


def get_storage_service() -> StorageService:
    return storage_service


@router.get("/{file_path:path}", summary="Download a stored document")
async def serve_file(
    file_path: str,
    storage: StorageService = Depends(get_storage_service),
) -> FileResponse:
    full_path = storage.resolve_url(storage.url_for(file_path))
    if full_path is None:
        raise ValidationError(message="Invalid file path", field="file_path")
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    # media_type is guessed from the suffix
    return FileResponse(path=str(full_path), headers={"Cache-Control": "private, max-age=3600"})
