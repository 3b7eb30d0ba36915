from collections.abc import Callable
from datetime import date
from typing import Any, TypeVar

import psycopg
from psycopg.rows import dict_row

from tratativas.database.connection import Database
from tratativas.database.models import TratativaRecord
from tratativas.documents.exceptions import RecordStoreError, TratativaNotFoundError
from tratativas.documents.formatting import (
    format_display_date,
    format_display_time,
    format_long_date,
    parse_form_date,
)

T = TypeVar("T")

_COLUMNS = """
    id, numero_tratativa, funcionario, funcao, setor, cpf,
    descricao_infracao, data_infracao, hora_infracao, codigo_infracao,
    valor_praticado, medida, texto_limite, grau_penalidade, penalidade,
    texto_infracao, imagem_evidencia1, lider, advertido, status,
    url_documento_enviado, created_at
"""

_INSERT_COLUMNS = (
    "numero_tratativa",
    "funcionario",
    "funcao",
    "setor",
    "cpf",
    "data_infracao",
    "hora_infracao",
    "codigo_infracao",
    "descricao_infracao",
    "grau_penalidade",
    "penalidade",
    "texto_infracao",
    "lider",
    "valor_praticado",
    "medida",
    "texto_limite",
    "imagem_evidencia1",
    "advertido",
    "status",
)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _as_date(value: Any) -> date | None:
    if isinstance(value, str):
        return parse_form_date(value) if value.strip() else None
    return value


def row_to_record(row: dict[str, Any]) -> TratativaRecord:
    """Map a tratativas row to the domain record, formatting dates for display."""
    infraction_date = _as_date(row.get("data_infracao"))
    return TratativaRecord(
        id=row["id"],
        numero_tratativa=_text(row.get("numero_tratativa")),
        funcionario=_text(row.get("funcionario")),
        funcao=_text(row.get("funcao")),
        setor=_text(row.get("setor")),
        cpf=_text(row.get("cpf")),
        descricao_infracao=_text(row.get("descricao_infracao")),
        data_infracao=format_display_date(infraction_date),
        data_infracao_extensa=format_long_date(infraction_date),
        hora_infracao=format_display_time(row.get("hora_infracao")),
        codigo_infracao=_text(row.get("codigo_infracao")),
        valor_praticado=_text(row.get("valor_praticado")),
        medida=_text(row.get("medida")),
        texto_limite=_text(row.get("texto_limite")),
        grau_penalidade=_text(row.get("grau_penalidade")),
        penalidade=_text(row.get("penalidade")),
        texto_infracao=_text(row.get("texto_infracao")),
        imagem_evidencia1=_text(row.get("imagem_evidencia1")),
        lider=_text(row.get("lider")),
        advertido=_text(row.get("advertido")),
        status=_text(row.get("status")),
        document_url=row.get("url_documento_enviado") or None,
        created_at=row.get("created_at"),
    )


class TratativaRepository:
    """Database operations for the tratativas table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find_by_id(self, tratativa_id: int) -> TratativaRecord:
        """Find a tratativa by ID.

        Raises:
            TratativaNotFoundError: if no tratativa with this ID exists.
            RecordStoreError: if the database cannot be queried.
        """

        def query(conn: psycopg.Connection[Any]) -> dict[str, Any] | None:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM tratativas WHERE id = %s",
                    (tratativa_id,),
                )
                return cur.fetchone()

        row = self._run(query)
        if row is None:
            raise TratativaNotFoundError(f"Tratativa {tratativa_id} not found")
        return row_to_record(row)

    def list_all(self) -> list[TratativaRecord]:
        """All tratativas, newest first."""
        return self._list(f"SELECT {_COLUMNS} FROM tratativas ORDER BY created_at DESC")

    def list_without_document(self) -> list[TratativaRecord]:
        """Tratativas whose document URL is null or empty, newest first."""
        return self._list(
            f"""
            SELECT {_COLUMNS} FROM tratativas
            WHERE url_documento_enviado IS NULL OR url_documento_enviado = ''
            ORDER BY created_at DESC
            """
        )

    def update_document_url(self, tratativa_id: int, url: str) -> TratativaRecord:
        """Set url_documento_enviado on exactly one tratativa.

        Raises:
            TratativaNotFoundError: if the ID matches no row.
            RecordStoreError: if the database cannot be updated, or the ID
                matches more than one row.
        """

        def update(conn: psycopg.Connection[Any]) -> tuple[int, dict[str, Any] | None]:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE tratativas
                    SET url_documento_enviado = %s
                    WHERE id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (url, tratativa_id),
                )
                rows = cur.fetchall()
                if len(rows) != 1:
                    conn.rollback()
                    return len(rows), None
            conn.commit()
            return 1, rows[0]

        count, row = self._run(update)
        if count == 0:
            raise TratativaNotFoundError(f"Tratativa {tratativa_id} not found")
        if row is None:
            raise RecordStoreError(f"Tratativa id {tratativa_id} matched {count} rows")
        return row_to_record(row)

    def create(self, values: dict[str, Any]) -> TratativaRecord:
        """Insert a tratativa from already-validated intake values."""
        columns = [column for column in _INSERT_COLUMNS if column in values]
        column_list = ", ".join(columns)
        placeholders = ", ".join(["%s"] * len(columns))

        def insert(conn: psycopg.Connection[Any]) -> dict[str, Any] | None:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO tratativas ({column_list})
                    VALUES ({placeholders})
                    RETURNING {_COLUMNS}
                    """,
                    tuple(values[column] for column in columns),
                )
                row = cur.fetchone()
            conn.commit()
            return row

        row = self._run(insert)
        if row is None:
            raise RecordStoreError("Insert into tratativas returned no row")
        return row_to_record(row)

    def _list(self, sql: str) -> list[TratativaRecord]:
        def query(conn: psycopg.Connection[Any]) -> list[dict[str, Any]]:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql)
                return cur.fetchall()

        return [row_to_record(row) for row in self._run(query)]

    def _run(self, operation: Callable[[psycopg.Connection[Any]], T]) -> T:
        try:
            with self._db.connection() as conn:
                return operation(conn)
        except psycopg.Error as exc:
            raise RecordStoreError(f"Database error: {exc}") from exc
