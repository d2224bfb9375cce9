import logging

from fastapi import APIRouter, Depends, status

from app.api.models import MaterialCompleteRequest, MaterialCreateRequest, MaterialFailRequest, MaterialResponse
from app.config import Settings, get_settings
from app.core.security import get_current_user_id
from app.services import materials as material_service

router = APIRouter()
logger = logging.getLogger("app.api.routes.materials")


@router.post("", response_model=MaterialResponse, status_code=status.HTTP_201_CREATED)
async def create_material(  # noqa: B008
  request: MaterialCreateRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
) -> MaterialResponse:
  """Create a placeholder for a file upload, or a material from inline text."""
  return await material_service.create_material(request, settings, user_id=user_id)


@router.get("", response_model=list[MaterialResponse])
async def list_materials(  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
) -> list[MaterialResponse]:
  """List the caller's saved materials, newest first."""
  return await material_service.list_materials(settings, user_id=user_id)


@router.get("/{material_id}", response_model=MaterialResponse)
async def get_material(  # noqa: B008
  material_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
) -> MaterialResponse:
  """Fetch a material the caller owns."""
  return await material_service.get_material(material_id, settings, user_id=user_id)


@router.post("/{material_id}/complete", response_model=MaterialResponse)
async def complete_material(  # noqa: B008
  material_id: str,
  payload: MaterialCompleteRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
) -> MaterialResponse:
  """Save generated content and mark the material completed."""
  return await material_service.complete_material(material_id, payload, settings, user_id=user_id)


@router.post("/{material_id}/fail", response_model=MaterialResponse)
async def fail_material(  # noqa: B008
  material_id: str,
  payload: MaterialFailRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
) -> MaterialResponse:
  """Record that client-side generation failed."""
  return await material_service.fail_material(material_id, payload, settings, user_id=user_id)
