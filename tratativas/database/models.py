from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TratativaRecord:
    """Represents a row from the tratativas table.

    Dates are held in display form: ``data_infracao`` is ``DD/MM/YYYY`` and
    ``data_infracao_extensa`` is the Portuguese long form. The conversion from
    the stored calendar date happens once, in the repository.
    """

    id: int
    numero_tratativa: str
    funcionario: str = ""
    funcao: str = ""
    setor: str = ""
    cpf: str = ""
    descricao_infracao: str = ""
    data_infracao: str = ""
    data_infracao_extensa: str = ""
    hora_infracao: str = ""
    codigo_infracao: str = ""
    valor_praticado: str = ""
    medida: str = ""
    texto_limite: str = ""
    grau_penalidade: str = ""
    penalidade: str = ""
    texto_infracao: str = ""
    imagem_evidencia1: str = ""
    lider: str = ""
    advertido: str = ""
    status: str = ""
    document_url: str | None = None
    created_at: datetime | None = None
