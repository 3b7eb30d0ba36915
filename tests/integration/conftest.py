import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from tratativas.config.settings import Settings
from tratativas.database.connection import Database


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "tratativas_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_db(test_settings: Settings) -> Generator[Database, None, None]:
    db = Database(test_settings)
    try:
        db.open()
        with db.connection() as conn:
            conn.execute("SELECT 1 FROM tratativas LIMIT 1")
    except Exception as e:
        db.close()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to a database with a tratativas table"
        )
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db_conn(integration_db: Database) -> Generator[psycopg.Connection[Any], None, None]:
    with integration_db.connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_db: Database) -> Generator[list[int], None, None]:
    created: list[int] = []
    yield created
    if not created:
        return
    with integration_db.connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM tratativas WHERE id = ANY(%s)", (created,))
        conn.commit()


@pytest.fixture
def intake_values() -> dict[str, Any]:
    return {
        "numero_tratativa": "IT-0001",
        "funcionario": "Ana Souza",
        "funcao": "Operadora",
        "setor": "Produção",
        "cpf": "123.456.789-00",
        "data_infracao": "04/04/2025",
        "hora_infracao": "14:30",
        "codigo_infracao": "P3-010",
        "descricao_infracao": "Uso indevido de EPI",
        "grau_penalidade": "P3",
        "penalidade": "P3 - Suspensão",
        "texto_infracao": "Suspensão de um dia",
        "lider": "Carlos Lima",
        "valor_praticado": "2",
        "medida": "ocorrências",
        "texto_limite": "1",
        "imagem_evidencia1": "",
        "advertido": "",
        "status": "Pendente",
    }
