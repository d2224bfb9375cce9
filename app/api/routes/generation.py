import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from app.ai.generation import build_artifact_generator
from app.api.models import GenerateRequest, GenerateResponse
from app.config import Settings, get_settings
from app.core.security import get_current_user_id
from app.materials.params import normalize_generation_params, params_error_message

router = APIRouter()
logger = logging.getLogger("app.api.routes.generation")


@router.post("/generate", response_model=GenerateResponse, dependencies=[Depends(get_current_user_id)])
async def generate_artifact(  # noqa: B008
  request: GenerateRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> GenerateResponse:
  """Run one model call over extracted text and return a shape-validated artifact."""
  try:
    params = normalize_generation_params(request.kind, request.params)
  except ValidationError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid generation params: {params_error_message(exc)}") from exc

  generator = build_artifact_generator(settings)
  artifact = await generator.generate(request.kind, request.text, params, source_name=request.source_name)
  return GenerateResponse(kind=request.kind, artifact=artifact)
