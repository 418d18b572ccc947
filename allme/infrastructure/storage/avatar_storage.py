from __future__ import annotations

import os
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from supabase import Client

from allme.domain.errors import ValidationError

MAX_AVATAR_BYTES = 5 * 1024 * 1024
AVATAR_SIZE = 400


@dataclass
class StorageResult:
    path: str
    url: str
    content_type: str
    size: int


class AvatarStorage:
    """Avatar blobs in Supabase Storage, with a local directory fallback.

    Each user has exactly one object at ``<user_id>/avatar`` so a new upload
    overwrites the previous one.
    """

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.bucket = os.getenv("SUPABASE_AVATAR_BUCKET", "avatars")
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.local_dir = Path(os.getenv("SUPABASE_STORAGE_LOCAL_DIR", ".local_storage"))

    @staticmethod
    def avatar_path(user_id: str) -> str:
        return f"{user_id}/avatar"

    def _encode_avatar(self, data: bytes) -> tuple[bytes, str]:
        """Center-crop to a square, resize, and re-encode the uploaded image."""
        if len(data) > MAX_AVATAR_BYTES:
            raise ValidationError("File too large. Max 5 MB.")
        try:
            img = Image.open(BytesIO(data))
            img = ImageOps.exif_transpose(img)
        except (UnidentifiedImageError, OSError) as exc:
            raise ValidationError(f"Invalid image file: {exc}") from exc
        img = ImageOps.fit(img, (AVATAR_SIZE, AVATAR_SIZE), method=Image.Resampling.LANCZOS)

        buf = BytesIO()
        if img.mode in ("RGBA", "LA", "P"):
            img.convert("RGBA").save(buf, format="PNG")
            return buf.getvalue(), "image/png"
        img.convert("RGB").save(buf, format="JPEG", quality=90)
        return buf.getvalue(), "image/jpeg"

    def upload_avatar(self, user_id: str, data: bytes) -> StorageResult:
        payload, content_type = self._encode_avatar(data)
        return self.put(self.avatar_path(user_id), payload, content_type)

    def put(self, path: str, data: bytes, content_type: str) -> StorageResult:
        if self.disabled or self.client is None:
            full_path = self.local_dir / path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(data)
            return StorageResult(path=path, url=self.public_url(path), content_type=content_type, size=len(data))
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).upload(
                path=path,
                file=data,
                file_options={"content-type": content_type, "upsert": "true"},
            )
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"Storage upload failed: {exc}") from exc
        return StorageResult(path=path, url=self.public_url(path), content_type=content_type, size=len(data))  # pragma: no cover

    def public_url(self, path: str) -> str:
        if self.disabled or self.client is None:
            return (self.local_dir / path).resolve().as_uri()
        return self.client.storage.from_(self.bucket).get_public_url(path)  # pragma: no cover - network

    def delete_avatar(self, user_id: str) -> None:
        self.delete(self.avatar_path(user_id))

    def delete(self, path: str) -> None:
        if self.disabled or self.client is None:
            full_path = self.local_dir / path
            if full_path.exists():
                full_path.unlink()
            return
        try:  # pragma: no cover - network
            self.client.storage.from_(self.bucket).remove([path])
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"Storage delete failed: {exc}") from exc
