"""Presence checks run before any external call."""

from collections.abc import Mapping, Sequence

REQUIRED_FOLHA1: tuple[str, ...] = (
    "DOP_NUMERO_DOCUMENTO",
    "DOP_NOME",
    "DOP_FUNCAO",
    "DOP_SETOR",
    "DOP_DESC_INFRACAO",
    "DOP_DATA_INFRACAO",
    "DOP_HORA_INFRACAO",
    "DOP_VALOR_REGISTRADO",
    "DOP_METRICA",
    "DOP_VALOR_LIMITE",
    "DOP_COD_INFRACAO",
    "DOP_GRAU_PENALIDADE",
    "DOP_DESC_PENALIDADE",
    "DOP_LIDER",
    "DOP_CPF",
)

# Markers are checked by the one-affirmative rule, a blank marker is valid.
REQUIRED_FOLHA2: tuple[str, ...] = REQUIRED_FOLHA1

REQUIRED_INTAKE: tuple[str, ...] = (
    "numero_tratativa",
    "funcionario",
    "funcao",
    "setor",
    "data_infracao",
    "hora_infracao",
    "codigo_infracao",
    "descricao_infracao",
    "penalidade",
    "texto_infracao",
    "lider",
    "valor_praticado",
    "medida",
    "texto_limite",
)


def missing_fields(fields: Mapping[str, object], required: Sequence[str]) -> list[str]:
    """Return the required keys that are absent, None, or blank after trimming.

    Keys are returned in the order given by ``required``.
    """
    missing: list[str] = []
    for key in required:
        value = fields.get(key)
        if value is None or not str(value).strip():
            missing.append(key)
    return missing
