"""Turns a raw provider response into an EditResult."""

from ..models.schemas import EditResult, ProviderResponse
from ..utils.errors import NoImageReturned
from ..utils.images import to_data_url


def normalize_edit_response(response: ProviderResponse) -> EditResult:
    """
    Extract the image and accompanying note from the first candidate.

    Parts are scanned in order. When several text (or image) parts are
    present the last one wins; text is not concatenated.

    Raises:
        NoImageReturned: If no part carried inline image data
    """
    result = EditResult()

    for part in response.first_parts:
        if part.text is not None:
            result.text = part.text
        if part.inline_data is not None:
            result.image = to_data_url(part.inline_data.mime_type, part.inline_data.data)

    if result.image is None:
        raise NoImageReturned()

    return result
