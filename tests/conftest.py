import io
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from tratativas.database.models import TratativaRecord


def _pdf_with_text(*pages: str) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    for text in pages:
        c.drawString(72, 720, text)
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def folha1_pdf_bytes() -> bytes:
    """Single-page PDF standing in for a rendered page 1."""
    return _pdf_with_text("Folha 1 content")


@pytest.fixture()
def folha2_pdf_bytes() -> bytes:
    """Single-page PDF standing in for a rendered page 2."""
    return _pdf_with_text("Folha 2 content")


_COMPLETE_RECORD = TratativaRecord(
    id=42,
    numero_tratativa="1234",
    funcionario="João da Silva",
    funcao="Motorista",
    setor="Logística",
    cpf="123.456.789-00",
    descricao_infracao="Excesso de velocidade",
    data_infracao="04/04/2025",
    data_infracao_extensa="sexta-feira, 04 de abril de 2025",
    hora_infracao="14:30",
    codigo_infracao="P2-015",
    valor_praticado="85",
    medida="km/h",
    texto_limite="60",
    grau_penalidade="P2",
    penalidade="P2 - Advertência Escrita",
    texto_infracao="Advertência por excesso de velocidade",
    imagem_evidencia1="https://example.com/evidence.jpg",
    lider="Maria Souza",
    advertido="Advertido",
    status="Pendente",
)


@pytest.fixture()
def make_record() -> Callable[..., TratativaRecord]:
    """Factory for a fully populated record; keyword overrides replace fields."""

    def factory(**overrides: Any) -> TratativaRecord:
        return replace(_COMPLETE_RECORD, **overrides)

    return factory
