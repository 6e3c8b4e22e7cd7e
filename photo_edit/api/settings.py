"""Read and write the custom API endpoint settings."""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from ..models.schemas import TransportConfig
from ..utils.settings_store import SettingsStore

router = APIRouter()


class ApiSettingsIn(BaseModel):
    """Same record shape the web front end keeps: ``{url, key}``."""
    url: Optional[str] = None
    key: Optional[str] = None


class ApiSettingsOut(BaseModel):
    url: Optional[str] = None
    key_set: bool
    custom_endpoint: bool


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store


def _describe(settings: TransportConfig) -> ApiSettingsOut:
    # The key itself is never echoed back
    return ApiSettingsOut(
        url=settings.endpoint_url,
        key_set=bool(settings.api_key),
        custom_endpoint=settings.is_custom,
    )


@router.get("/api", response_model=ApiSettingsOut)
async def read_settings(store: SettingsStore = Depends(get_settings_store)):
    return _describe(store.get())


@router.put("/api", response_model=ApiSettingsOut)
async def save_settings(payload: ApiSettingsIn, store: SettingsStore = Depends(get_settings_store)):
    store.save(TransportConfig(endpoint_url=payload.url or None, api_key=payload.key or None))
    return _describe(store.get())


@router.delete("/api", response_model=ApiSettingsOut)
async def reset_settings(store: SettingsStore = Depends(get_settings_store)):
    store.reset()
    return _describe(store.get())
