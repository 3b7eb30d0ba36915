from collections.abc import Mapping
from typing import Any

from tratativas.database.models import TratativaRecord
from tratativas.database.repositories.tratativa_repository import TratativaRepository
from tratativas.documents.exceptions import FieldValidationError
from tratativas.documents.field_mapper import severity_rank
from tratativas.documents.field_validator import REQUIRED_INTAKE, missing_fields
from tratativas.documents.formatting import parse_form_date
from tratativas.logging.logger import Log

DEFAULT_MEDIDA = "ocorrências"
PENDING_STATUS = "Pendente"


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


class TratativaIntake:
    """Validates an intake form and creates the tratativa row."""

    def __init__(self, repo: TratativaRepository, log: Log) -> None:
        self._repo = repo
        self._log = log

    def create(self, form: Mapping[str, Any]) -> TratativaRecord:
        """Create a tratativa from the form sent by the front-end.

        Raises:
            FieldValidationError: if required values are missing or the
                infraction date is not DD/MM/YYYY.
        """
        values = self._to_columns(form)
        self._log.info(
            f"Creating tratativa {values['numero_tratativa'] or '<no number>'}",
            tratativa=dict(values, cpf="REDACTED"),
        )
        missing = missing_fields(values, REQUIRED_INTAKE)
        if missing:
            raise FieldValidationError(None, missing)
        try:
            values["data_infracao"] = parse_form_date(values["data_infracao"])
        except ValueError as exc:
            raise FieldValidationError(None, ["data_infracao"]) from exc

        record = self._repo.create(values)
        self._log.info(f"Tratativa {record.numero_tratativa} created with id {record.id}")
        return record

    @staticmethod
    def _to_columns(form: Mapping[str, Any]) -> dict[str, Any]:
        penalidade = _clean(form.get("tipo_penalidade"))
        codigo = _clean(form.get("codigo_infracao"))
        values: dict[str, Any] = {
            "numero_tratativa": _clean(form.get("numero_documento")),
            "funcionario": _clean(form.get("nome")),
            "funcao": _clean(form.get("funcao")),
            "setor": _clean(form.get("setor")),
            "cpf": _clean(form.get("cpf")),
            "data_infracao": _clean(form.get("data_infracao")),
            "hora_infracao": _clean(form.get("hora_infracao")),
            "codigo_infracao": codigo,
            "descricao_infracao": _clean(form.get("descricao_infracao")),
            "penalidade": penalidade,
            "texto_infracao": _clean(form.get("descricao_penalidade")),
            "lider": _clean(form.get("lider")),
            "valor_praticado": _clean(form.get("valor_registrado")) or "0",
            "medida": _clean(form.get("metrica")) or DEFAULT_MEDIDA,
            "texto_limite": _clean(form.get("valor_limite")) or "0",
            "imagem_evidencia1": _clean(form.get("url_imagem")),
            "advertido": _clean(form.get("advertido")),
            "status": PENDING_STATUS,
        }
        values["grau_penalidade"] = severity_rank(penalidade, codigo) or ""
        return values
