#recurrence/domain/entities.py

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional


class Frequencia(str, Enum):
    SEMANAL = "Semanal"
    MENSAL = "Mensal"
    ANUAL = "Anual"

    @property
    def intervalo_dias(self) -> int:
        return {"Semanal": 7, "Mensal": 30, "Anual": 365}[self.value]


@dataclass
class Recorrencia:
    id: str
    user_id: str
    descricao: str
    valor: float
    categoria: str
    metodo_pagamento: str
    frequencia: Frequencia
    data_inicio: str
    ultima_execucao: Optional[str] = None
    ativo: bool = True
    observacoes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Gasto:
    id: str
    user_id: str
    descricao: str
    valor: float
    data: str
    categoria: str
    metodo_pagamento: str
    observacoes: Optional[str] = None
    recorrente_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
