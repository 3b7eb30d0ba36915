import json

import httpx

from tratativas.documents.exceptions import RenderError
from tratativas.documents.field_mapper import redact
from tratativas.documents.models import MappedFieldSet
from tratativas.logging.logger import Log
from tratativas.rendering.base import BaseRenderClient, RenderTemplate

_DIRECT_ENDPOINT = "/v1/template/direct"


def decode_error_payload(response: httpx.Response) -> str:
    """Best-effort human readable message from an error response body.

    The body may be binary; it is decoded as UTF-8 with replacement and the
    ``message`` member is used when the body is a JSON object.
    """
    text = response.content.decode("utf-8", errors="replace").strip()
    try:
        body = json.loads(text)
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return text[:500] or f"HTTP {response.status_code}"


class DoppioRenderClient(BaseRenderClient):
    """Renders template pages through the Doppio direct-template API.

    Doppio answers either with the PDF itself or with a JSON body pointing at
    the rendered document, which is then downloaded.
    """

    def __init__(
        self,
        *,
        api_url: str,
        timeout_seconds: int,
        log: Log,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._log = log
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        self._client.close()

    def render(self, template: RenderTemplate, fields: MappedFieldSet) -> bytes:
        page = template.page
        self._log.info(
            f"Rendering page {page} with template {template.template_id}",
            template_fields=redact(fields),
        )
        response = self._send(
            page,
            "POST",
            f"{self._api_url}{_DIRECT_ENDPOINT}",
            headers={"Authorization": f"Bearer {template.api_key}"},
            json={"templateId": template.template_id, "templateData": fields},
        )
        if not response.content:
            raise RenderError(page, "empty", "renderer returned an empty response")
        if self._is_pdf(response):
            content = response.content
        else:
            content = self._download(page, self._document_url(page, response))
        if not content:
            raise RenderError(page, "empty", "renderer returned an empty document")
        self._log.info(f"Rendered page {page}: {len(content)} bytes", size=len(content))
        return content

    def _download(self, page: int, url: str) -> bytes:
        self._log.info(f"Downloading rendered page {page}", url=url)
        return self._send(page, "GET", url).content

    def _send(self, page: int, method: str, url: str, **kwargs: object) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)  # type: ignore[arg-type]
        except httpx.HTTPError as exc:
            self._log.error(f"Renderer unreachable for page {page}: {exc}")
            raise RenderError(page, "transport", f"renderer unreachable: {exc}") from exc
        if response.is_error:
            message = decode_error_payload(response)
            self._log.error(
                f"Renderer returned HTTP {response.status_code} for page {page}: {message}"
            )
            raise RenderError(page, "service", message)
        return response

    @staticmethod
    def _is_pdf(response: httpx.Response) -> bool:
        content_type = response.headers.get("content-type", "")
        return content_type.startswith("application/pdf") or response.content.startswith(b"%PDF")

    @staticmethod
    def _document_url(page: int, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError as exc:
            raise RenderError(page, "service", "renderer returned an unreadable response") from exc
        url = (body.get("documentUrl") or body.get("url")) if isinstance(body, dict) else None
        if not url:
            raise RenderError(page, "service", "renderer returned no document URL")
        return str(url)
