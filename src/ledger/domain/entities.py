#ledger/domain/entities.py

from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass
class Parcela:
    id: str
    cartao_id: str
    number: int
    amount: float
    due_date: str
    is_paid: bool = False
    paid_date: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Cartao:
    id: str
    user_id: str
    pessoa_id: str
    descricao: str
    valor_total: float
    parcelas_totais: int
    data_compra: str
    parcelas_pagas: int = 0
    valor_pago: float = 0.0
    dia_vencimento: Optional[int] = None
    observacoes: Optional[str] = None
    tipo_cartao: str = "credito"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    parcelas: list[Parcela] = field(default_factory=list)

    def to_dict(self, com_parcelas: bool = True) -> dict:
        dados = asdict(self)
        if com_parcelas:
            dados["parcelas"] = sorted(dados["parcelas"], key=lambda p: p["number"])
        else:
            dados.pop("parcelas")
        return dados
