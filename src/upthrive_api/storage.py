"""Upload request attachments and completed work to Supabase Storage."""

import re
import time
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import quote

import httpx
from loguru import logger

from upthrive_api.workflow.exceptions import UpstreamError
from upthrive_api.workflow.exceptions import ValidationError

# Images and videos only, checked against both the extension and the MIME type
ALLOWED_MEDIA_PATTERN = re.compile(r"jpeg|jpg|png|gif|mp4|mov|avi|webm")


def is_allowed_media(filename: str, content_type: Optional[str]) -> bool:
    """Return True if both the file extension and the MIME type name an allowed image/video type."""
    extension = PurePosixPath(filename or "").suffix.lower()
    return bool(ALLOWED_MEDIA_PATTERN.search(extension)) and bool(
        ALLOWED_MEDIA_PATTERN.search((content_type or "").lower())
    )


class SupabaseMediaStore:
    """
    Media collaborator used by the create and submit endpoints.

    Objects are written to ``<bucket>/<prefix><owner_id>/<millis>-<filename>`` and
    the public URL of the stored object is returned.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "request-files",
        max_bytes: int = 100 * 1024 * 1024,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.transport = transport

    def public_url(self, object_path: str) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.bucket}/{quote(object_path)}"

    async def upload(
        self,
        owner_id: str,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        prefix: str = "",
    ) -> str:
        """
        Validate and upload one file.

        Returns
        -------
        str
            Public URL of the uploaded object

        Raises
        ------
        ValidationError
            File type not allowed or file too large
        UpstreamError
            Storage rejected the upload or could not be reached
        """
        if not is_allowed_media(filename, content_type):
            raise ValidationError("Only images and videos are allowed")
        if len(content) > self.max_bytes:
            raise ValidationError(f"File exceeds the {self.max_bytes // (1024 * 1024)}MB limit")

        object_path = f"{prefix}{owner_id}/{int(time.time() * 1000)}-{PurePosixPath(filename).name}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.supabase_url}/storage/v1/object/{self.bucket}/{quote(object_path)}",
                    content=content,
                    headers={
                        "apikey": self.service_key,
                        "Authorization": f"Bearer {self.service_key}",
                        "Content-Type": content_type or "application/octet-stream",
                        "x-upsert": "false",
                    },
                )
        except httpx.RequestError as e:
            logger.error("Storage upload failed", object_path=object_path, error=str(e))
            raise UpstreamError("Failed to upload file") from e

        if response.status_code >= 400:
            logger.error(
                "Storage upload rejected",
                object_path=object_path,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError("Failed to upload file")

        url = self.public_url(object_path)
        logger.info("File uploaded", object_path=object_path, size=len(content))
        return url
