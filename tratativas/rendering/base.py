from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from tratativas.documents.models import MappedFieldSet


@dataclass(frozen=True)
class RenderTemplate:
    """Template identifier and credential configured for one page."""

    page: int
    template_id: str
    api_key: str = field(repr=False)


class BaseRenderClient(ABC):
    """Contract for external template-rendering services."""

    @abstractmethod
    def render(self, template: RenderTemplate, fields: MappedFieldSet) -> bytes:
        """Render one page and return raw PDF bytes.

        Performs a single request and never retries.

        Raises:
            RenderError: on transport failure, a service-reported error, or
                an empty document.
        """
