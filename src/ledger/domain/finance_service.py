#ledger/domain/finance_service.py

from datetime import date

from ledger.domain.entities import Cartao
from ledger.domain.ledger_engine import LedgerEngine


class FinanceService:
    """Resumos financeiros de cartões; atraso usa os vencimentos reais."""

    def __init__(self, engine: LedgerEngine):
        self.engine = engine

    @staticmethod
    def valor_recebido(cartao: Cartao) -> float:
        return LedgerEngine.valor_por_parcela(cartao) * cartao.parcelas_pagas

    def saldo(self, cartao: Cartao) -> float:
        return cartao.valor_total - self.valor_recebido(cartao)

    @staticmethod
    def esta_quitado(cartao: Cartao) -> bool:
        return cartao.parcelas_pagas >= cartao.parcelas_totais

    @staticmethod
    def percentual_pago(cartao: Cartao) -> float:
        return min(cartao.parcelas_pagas / cartao.parcelas_totais * 100, 100.0)

    def esta_atrasado(self, cartao: Cartao, hoje: date) -> bool:
        return self.engine.parcelas_atrasadas(cartao, hoje) > 0

    def resumo(self, cartoes: list[Cartao], hoje: date) -> dict:
        total_emprestado = sum(c.valor_total for c in cartoes)
        total_recebido = sum(self.valor_recebido(c) for c in cartoes)
        quitados = sum(1 for c in cartoes if self.esta_quitado(c))
        return {
            "totalLent": total_emprestado,
            "totalReceived": total_recebido,
            "totalOutstanding": total_emprestado - total_recebido,
            "completedCards": quitados,
            "activeCards": len(cartoes) - quitados,
            "overdueCards": sum(1 for c in cartoes if self.esta_atrasado(c, hoje)),
        }

    def resumo_por_pessoa(self, pessoas: list[dict], cartoes: list[Cartao], hoje: date) -> list[dict]:
        """Um resumo por pessoa, ordenado pelo saldo devedor (maior primeiro)."""
        resultado = []
        for pessoa in pessoas:
            da_pessoa = [c for c in cartoes if c.pessoa_id == pessoa["id"]]
            resumo = self.resumo(da_pessoa, hoje)
            resumo.update({"id": pessoa["id"], "name": pessoa["nome"], "cardsCount": len(da_pessoa)})
            resultado.append(resumo)
        return sorted(resultado, key=lambda r: r["totalOutstanding"], reverse=True)
