"""
Object storage (Supabase Storage) uploads and downloads.

Paths are bucket-relative, e.g. `proposals/<id>/proposal-PROP-2025-0001.pdf`.
"""

from __future__ import annotations

from supabase import Client as SupabaseClient  # type: ignore[import-not-found]


def _strip_bucket_prefix(path: str, bucket: str) -> str:
    # Accept gs://-style or "<bucket>/..." references as well as plain paths.
    for prefix in (f"gs://{bucket}/", f"{bucket}/"):
        if path.startswith(prefix):
            return path[len(prefix):]
    return path


def upload_file(
    db: SupabaseClient,
    bucket: str,
    path: str,
    content: bytes,
    content_type: str,
) -> str:
    """
    Upload (or overwrite) an object and return its bucket-relative path.

    Raises:
        RuntimeError: if the storage API reports an error.
    """

    try:
        db.storage.from_(bucket).upload(
            path,
            content,
            {"content-type": content_type, "upsert": "true"},
        )
    except Exception as exc:
        raise RuntimeError(f"Failed to upload {path} to bucket {bucket}: {exc}") from exc
    return path


def download_file(db: SupabaseClient, bucket: str, path: str) -> bytes:
    object_path = _strip_bucket_prefix(path, bucket)
    try:
        return db.storage.from_(bucket).download(object_path)
    except Exception as exc:
        raise RuntimeError(f"Failed to download {object_path} from bucket {bucket}: {exc}") from exc


__all__ = ["upload_file", "download_file"]
