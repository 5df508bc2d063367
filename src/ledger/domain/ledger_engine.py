#ledger/domain/ledger_engine.py

"""
Regras puras do livro de parcelas.

Invariante mantida por todas as mutações:
``valor_pago == valor_total / parcelas_totais * parcelas_pagas`` e
``0 <= parcelas_pagas <= parcelas_totais``. O ``valor_pago`` é sempre
recalculado a partir da fórmula, nunca somado/subtraído incrementalmente.
"""

from datetime import date, datetime
from typing import Optional

from ledger.domain.entities import Cartao, Parcela
from utils.datas import para_data, para_iso, somar_meses
from utils.exceptions import ValidationError

DIA_VENCIMENTO_PADRAO = 5


def id_parcela(cartao_id: str, numero: int) -> str:
    return f"{cartao_id}-parcela-{numero}"


class LedgerEngine:
    def __init__(self, dia_padrao: int = DIA_VENCIMENTO_PADRAO):
        self.dia_padrao = dia_padrao

    # ------------------------------------------------------------------
    # Valores derivados
    # ------------------------------------------------------------------
    @staticmethod
    def valor_por_parcela(cartao: Cartao) -> float:
        return cartao.valor_total / cartao.parcelas_totais

    @classmethod
    def recalcular_valor_pago(cls, cartao: Cartao) -> float:
        cartao.valor_pago = cls.valor_por_parcela(cartao) * cartao.parcelas_pagas
        return cartao.valor_pago

    @staticmethod
    def validar_cartao(cartao: Cartao) -> None:
        if cartao.parcelas_totais < 1:
            raise ValidationError("O cartão deve ter pelo menos 1 parcela")
        if not 0 <= cartao.parcelas_pagas <= cartao.parcelas_totais:
            raise ValidationError(
                f"Parcelas pagas ({cartao.parcelas_pagas}) fora do intervalo 0..{cartao.parcelas_totais}"
            )
        if cartao.valor_total < 0:
            raise ValidationError("O valor total não pode ser negativo")
        if cartao.dia_vencimento is not None and not 1 <= cartao.dia_vencimento <= 31:
            raise ValidationError("Dia de vencimento deve estar entre 1 e 31")

    # ------------------------------------------------------------------
    # Parcelas
    # ------------------------------------------------------------------
    def prever_parcelas(self, cartao: Cartao) -> list[Parcela]:
        """Calcula as parcelas do cartão sem tocar nele (determinístico)."""
        base = para_data(cartao.data_compra)
        dia = cartao.dia_vencimento or self.dia_padrao
        valor = self.valor_por_parcela(cartao)
        return [
            Parcela(
                id=id_parcela(cartao.id, n),
                cartao_id=cartao.id,
                number=n,
                amount=valor,
                due_date=somar_meses(base, n - 1, dia).isoformat(),
                is_paid=n <= cartao.parcelas_pagas,
                paid_date=None,
            )
            for n in range(1, cartao.parcelas_totais + 1)
        ]

    def gerar_parcelas(self, cartao: Cartao) -> list[Parcela]:
        """
        Backfill: cria as linhas de parcela de um cartão que não tem nenhuma.

        Retorna só as parcelas criadas; lista vazia quando o cartão já tinha
        linhas, o que torna a operação idempotente.
        """
        if cartao.parcelas:
            return []
        cartao.parcelas = self.prever_parcelas(cartao)
        return list(cartao.parcelas)

    def _parcela(self, cartao: Cartao, numero: int) -> Parcela:
        if not 1 <= numero <= cartao.parcelas_totais:
            raise ValidationError(f"Parcela {numero} fora do intervalo 1..{cartao.parcelas_totais}")
        self.gerar_parcelas(cartao)
        for parcela in cartao.parcelas:
            if parcela.number == numero:
                return parcela
        raise ValidationError(f"Parcela {numero} não encontrada no cartão {cartao.id}")

    def pagar_parcela(self, cartao: Cartao, numero: int, agora: datetime) -> Parcela:
        parcela = self._parcela(cartao, numero)
        if cartao.parcelas_pagas >= cartao.parcelas_totais:
            raise ValidationError("Todas as parcelas já foram pagas")
        if parcela.is_paid:
            raise ValidationError(f"Parcela {numero} já está paga")

        parcela.is_paid = True
        parcela.paid_date = para_iso(agora)
        cartao.parcelas_pagas += 1
        self.recalcular_valor_pago(cartao)
        return parcela

    def desfazer_pagamento(self, cartao: Cartao, numero: int) -> Parcela:
        parcela = self._parcela(cartao, numero)
        if cartao.parcelas_pagas <= 0:
            raise ValidationError("Nenhuma parcela paga para desfazer")
        if not parcela.is_paid:
            raise ValidationError(f"Parcela {numero} não está paga")

        parcela.is_paid = False
        parcela.paid_date = None
        cartao.parcelas_pagas -= 1
        self.recalcular_valor_pago(cartao)
        return parcela

    def _parcelas_ou_previstas(self, cartao: Cartao) -> list[Parcela]:
        return sorted(cartao.parcelas or self.prever_parcelas(cartao), key=lambda p: p.number)

    def proxima_parcela(self, cartao: Cartao) -> Optional[Parcela]:
        for parcela in self._parcelas_ou_previstas(cartao):
            if not parcela.is_paid:
                return parcela
        return None

    def parcelas_atrasadas(self, cartao: Cartao, hoje: date) -> int:
        """Quantidade de parcelas em aberto com vencimento anterior a ``hoje``."""
        return sum(
            1
            for p in self._parcelas_ou_previstas(cartao)
            if not p.is_paid and para_data(p.due_date) < hoje
        )
