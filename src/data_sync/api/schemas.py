# data_sync/api/schemas.py

from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from utils.datas import normalizar_data

# aceita "YYYY-MM-DD" ou timestamp ISO; guarda só a data
DataISO = Annotated[str, AfterValidator(normalizar_data)]


class _Registro(BaseModel):
    # campos extras enviados pelo app (ex.: pessoa_nome) são ignorados
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PessoaSync(_Registro):
    nome: str
    telefone: Optional[str] = None
    observacoes: Optional[str] = None


class ParcelaSync(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: int = Field(..., ge=1)
    due_date: DataISO
    is_paid: bool = False
    paid_date: Optional[str] = None


class CartaoSync(_Registro):
    pessoa_id: str
    descricao: str
    valor_total: float = Field(..., ge=0)
    parcelas_totais: int = Field(..., ge=1)
    parcelas_pagas: int = 0
    valor_pago: Optional[float] = None
    data_compra: DataISO
    dia_vencimento: Optional[int] = Field(None, ge=1, le=31)
    observacoes: Optional[str] = None
    tipo_cartao: str = "credito"
    parcelas: Optional[list[ParcelaSync]] = None


class GastoSync(_Registro):
    descricao: str
    valor: float
    data: DataISO
    categoria: str
    metodo_pagamento: str
    observacoes: Optional[str] = None
    recorrente_id: Optional[str] = None


class RecorrenciaSync(_Registro):
    descricao: str
    valor: float
    categoria: str
    metodo_pagamento: str
    frequencia: Literal["Semanal", "Mensal", "Anual"]
    data_inicio: DataISO
    ultima_execucao: Optional[DataISO] = None
    ativo: bool = True
    observacoes: Optional[str] = None


class SyncRequest(BaseModel):
    pessoas: list[PessoaSync] = []
    cartoes: list[CartaoSync] = []
    gastos: list[GastoSync] = []
    recorrencias: list[RecorrenciaSync] = []
    settings: dict = {}
