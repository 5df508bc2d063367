#data_sync/domain/entities.py

from dataclasses import asdict, dataclass, field
from enum import Enum


class ModoSync(str, Enum):
    MERGE = "merge"
    FULL_REPLACE = "fullReplace"


@dataclass
class LoteSync:
    """Conjunto de registros enviado pelo cliente em um push."""
    pessoas: list[dict] = field(default_factory=list)
    cartoes: list[dict] = field(default_factory=list)
    gastos: list[dict] = field(default_factory=list)
    recorrencias: list[dict] = field(default_factory=list)
    settings: dict = field(default_factory=dict)

    @classmethod
    def de_snapshot(cls, dados: dict) -> "LoteSync":
        return cls(
            pessoas=list(dados.get("pessoas") or []),
            cartoes=list(dados.get("cartoes") or []),
            gastos=list(dados.get("gastos") or []),
            recorrencias=list(dados.get("recorrencias") or []),
            settings=dict(dados.get("settings") or {}),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ContagemSync:
    inseridos: int = 0
    atualizados: int = 0
    inalterados: int = 0

    def registrar(self, resultado: str) -> None:
        setattr(self, resultado, getattr(self, resultado) + 1)


@dataclass
class ResultadoSync:
    modo: ModoSync
    pessoas: ContagemSync = field(default_factory=ContagemSync)
    cartoes: ContagemSync = field(default_factory=ContagemSync)
    gastos: ContagemSync = field(default_factory=ContagemSync)
    recorrencias: ContagemSync = field(default_factory=ContagemSync)
    settings: ContagemSync = field(default_factory=ContagemSync)

    def to_dict(self) -> dict:
        dados = asdict(self)
        dados["modo"] = self.modo.value
        return dados
