# Vendor client: store setup submission against the business API.
# Created: 2026-10-16

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Any

import httpx

from munchvendor.session.manager import SessionManager

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 2_000_000
ALLOWED_IMAGE_TYPES = ("image/png", "image/jpeg", "image/jpg")


def _check_image(path: Path) -> str:
    """Validate a store image and return its content type."""
    content_type = mimetypes.guess_type(path.name)[0] or ""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValueError("Only PNG or JPEG images are allowed.")
    if path.stat().st_size > MAX_IMAGE_BYTES:
        raise ValueError("File exceeds 2MB limit. Please select a smaller image.")
    return content_type


class VendorClient:
    """Thin wrapper over ``SessionManager.api_fetch`` for vendor endpoints."""

    def __init__(self, session: SessionManager):
        self.session = session

    async def create_business(
        self, fields: dict[str, Any], image: Path | None = None
    ) -> httpx.Response:
        """Submit the store-setup wizard as form data (multipart with an image).

        List values (store types, service operations) are sent as repeated
        form fields. Returns the API response unchanged.
        """
        data = {k: v for k, v in fields.items() if v is not None}
        files = None
        if image is not None:
            content_type = _check_image(image)
            files = {"image": (image.name, image.read_bytes(), content_type)}

        resp = await self.session.api_fetch(
            "/vendors/me/businesses", method="POST", data=data, files=files
        )
        if resp.is_success:
            logger.info("Store setup submitted")
        else:
            logger.warning("Store setup rejected: HTTP %s", resp.status_code)
        return resp
