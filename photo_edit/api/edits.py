"""Edit, inpaint, prompt improvement and analysis endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from ..core.image_editor import ImageEditor
from ..models.schemas import AnalysisResult, EditResult
from ..utils.images import base64_to_bytes, mime_type_from_data_url, prepare_image_payload, split_data_url
from ..utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class EditRequest(BaseModel):
    """Photo (base64 or data URL) plus edit instruction."""
    image: str = Field(..., min_length=1)
    mime_type: Optional[str] = None
    prompt: str = Field(..., min_length=1)


class InpaintRequest(EditRequest):
    """Edit request with a PNG mask selecting the areas to change."""
    mask: str = Field(..., min_length=1)


class ImprovePromptRequest(BaseModel):
    prompt: str = ""


class ImprovePromptResponse(BaseModel):
    prompt: str


class AnalysisRequest(BaseModel):
    image: str = Field(..., min_length=1)
    mime_type: Optional[str] = None
    language: str = "en"


def get_editor(request: Request) -> ImageEditor:
    return request.app.state.editor


def _finish(result: EditResult) -> EditResult:
    # mime_type is the caller's to set; the HTTP layer is that caller
    result.mime_type = mime_type_from_data_url(result.image)
    return result


@router.post("/edits", response_model=EditResult)
async def edit_image(payload: EditRequest, editor: ImageEditor = Depends(get_editor)):
    """Edit a photo with a text instruction."""
    image_b64, mime_type = prepare_image_payload(payload.image, payload.mime_type)
    result = await editor.edit_image(image_b64, mime_type, payload.prompt)
    return _finish(result)


@router.post("/edits/inpaint", response_model=EditResult)
async def edit_image_with_mask(payload: InpaintRequest, editor: ImageEditor = Depends(get_editor)):
    """Edit only the masked areas of a photo."""
    image_b64, mime_type = prepare_image_payload(payload.image, payload.mime_type)
    _, mask_b64 = split_data_url(payload.mask)
    base64_to_bytes(mask_b64)  # malformed mask -> 400
    result = await editor.edit_image_with_mask(image_b64, mime_type, mask_b64, payload.prompt)
    return _finish(result)


@router.post("/prompts/improve", response_model=ImprovePromptResponse)
async def improve_prompt(payload: ImprovePromptRequest, editor: ImageEditor = Depends(get_editor)):
    """Rewrite a prompt for clarity without adding new concepts."""
    return ImprovePromptResponse(prompt=await editor.improve_prompt(payload.prompt))


@router.post("/analysis", response_model=AnalysisResult)
async def analyze_image(payload: AnalysisRequest, editor: ImageEditor = Depends(get_editor)):
    """Describe a photo and suggest edits."""
    image_b64, mime_type = prepare_image_payload(payload.image, payload.mime_type)
    return await editor.analyze_image(image_b64, mime_type, payload.language)
