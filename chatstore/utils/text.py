"""Small text and image helpers shared by the API and the lifecycle controller."""

import re

_IMAGE_DATA_URL = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,[A-Za-z0-9+/=\s]+$")


def truncate_text(text: str, max_length: int = 50) -> str:
    """Shorten ``text`` to ``max_length`` characters plus an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def is_image_data_url(value: str) -> bool:
    return bool(value) and _IMAGE_DATA_URL.match(value) is not None
