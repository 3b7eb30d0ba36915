from tratativas.rendering.base import BaseRenderClient, RenderTemplate
from tratativas.rendering.doppio_client import DoppioRenderClient

__all__ = ["BaseRenderClient", "DoppioRenderClient", "RenderTemplate"]
