import re
import unicodedata
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from tratativas.logging.logger import Log
from tratativas.storage.base import BaseObjectStore, ObjectInfo
from tratativas.storage.exceptions import ObjectExistsError, StorageError

_LIST_PAGE_SIZE = 1000
_INVALID_KEY_CHARS = re.compile(r"[^\w\-/. ]")


def sanitize_key(path: str) -> str:
    """Strip diacritics and characters Supabase Storage rejects in object keys."""
    decomposed = unicodedata.normalize("NFD", path)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _INVALID_KEY_CHARS.sub("_", stripped.encode("ascii", "replace").decode("ascii"))


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


class SupabaseObjectStore(BaseObjectStore):
    """Object store backed by the Supabase Storage REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        bucket: str,
        timeout_seconds: int,
        log: Log,
        client: httpx.Client | None = None,
    ) -> None:
        self._bucket = bucket
        self._base_url = base_url.rstrip("/")
        self._log = log
        self._client = client or httpx.Client(
            base_url=f"{self._base_url}/storage/v1",
            headers={"Authorization": f"Bearer {api_key}", "apikey": api_key},
            timeout=timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        key = sanitize_key(path)
        self._log.info(
            f"Uploading {len(content)} bytes to {self._bucket}/{key}",
            size=len(content),
        )
        response = self._request(
            "POST",
            f"/object/{self._bucket}/{quote(key)}",
            content=content,
            headers={
                "Content-Type": content_type,
                "x-upsert": "false",
                "cache-control": "3600",
            },
        )
        if self._is_duplicate(response):
            raise ObjectExistsError(f"Object already exists: {self._bucket}/{key}")
        self._raise_for_status(response, f"upload {key}")
        return key

    def signed_url(self, path: str, expires_in_seconds: int) -> str:
        key = sanitize_key(path)
        response = self._request(
            "POST",
            f"/object/sign/{self._bucket}/{quote(key)}",
            json={"expiresIn": expires_in_seconds},
        )
        self._raise_for_status(response, f"sign {key}")
        signed = response.json().get("signedURL")
        if not signed:
            raise StorageError(f"No signed URL returned for {key}")
        return f"{self._base_url}/storage/v1{signed}"

    def list_objects(self, prefix: str) -> list[ObjectInfo]:
        objects: list[ObjectInfo] = []
        prefix = prefix.strip("/")
        offset = 0
        while True:
            response = self._request(
                "POST",
                f"/object/list/{self._bucket}",
                json={
                    "prefix": prefix,
                    "limit": _LIST_PAGE_SIZE,
                    "offset": offset,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
            self._raise_for_status(response, f"list {prefix}")
            entries = response.json()
            for entry in entries:
                child = f"{prefix}/{entry['name']}" if prefix else entry["name"]
                if entry.get("id") is None:
                    objects.extend(self.list_objects(child))
                    continue
                metadata = entry.get("metadata") or {}
                objects.append(
                    ObjectInfo(
                        path=child,
                        created_at=_parse_timestamp(entry.get("created_at")),
                        size_bytes=metadata.get("size"),
                    )
                )
            if len(entries) < _LIST_PAGE_SIZE:
                return objects
            offset += _LIST_PAGE_SIZE

    def delete(self, paths: list[str]) -> None:
        if not paths:
            return
        keys = [sanitize_key(path) for path in paths]
        response = self._request(
            "DELETE",
            f"/object/{self._bucket}",
            json={"prefixes": keys},
        )
        self._raise_for_status(response, f"delete {len(paths)} objects")
        self._log.info(f"Deleted {len(paths)} objects from {self._bucket}")

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage network error: {exc}") from exc

    @staticmethod
    def _is_duplicate(response: httpx.Response) -> bool:
        if response.status_code == 409:
            return True
        if response.status_code != 400:
            return False
        try:
            body = response.json()
        except ValueError:
            return False
        return isinstance(body, dict) and (
            body.get("error") == "Duplicate" or str(body.get("statusCode")) == "409"
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise StorageError(
            f"Storage {action} failed with HTTP {response.status_code}: "
            f"{response.text[:200]}"
        )
