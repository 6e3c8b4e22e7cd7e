"""Pytest configuration and shared fixtures."""

from typing import Optional

import pytest

from photo_edit.core import ImageEditor, RetryOrchestrator, TransportSelector
from photo_edit.providers import CustomEndpointClient
from photo_edit.utils.settings_store import InMemorySettingsStore

from helpers import FakeGeminiClient, SleepRecorder


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def retry(sleep_recorder):
    return RetryOrchestrator(max_attempts=3, base_delay_seconds=1.0, sleep=sleep_recorder)


@pytest.fixture
def settings_store():
    return InMemorySettingsStore()


@pytest.fixture
def make_editor(retry, settings_store):
    """Build an ImageEditor around a fake Gemini client."""

    def _make(gemini: FakeGeminiClient, custom_client: Optional[CustomEndpointClient] = None) -> ImageEditor:
        selector = TransportSelector(
            gemini_client=gemini,
            custom_client=custom_client or CustomEndpointClient(),
        )
        return ImageEditor(selector=selector, settings_store=settings_store, retry=retry)

    return _make


# Sample test data
@pytest.fixture
def sample_image():
    """Tiny base64 payload standing in for a JPEG photo."""
    return "/9j/4AAQSkZJRgABAQ=="


@pytest.fixture
def sample_prompt():
    """Sample edit prompt for testing."""
    return "Replace the worn-out lawn with lush sod and add a stone pathway"
