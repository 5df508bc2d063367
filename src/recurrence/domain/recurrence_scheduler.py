#recurrence/domain/recurrence_scheduler.py

import uuid
from datetime import date

from recurrence.domain.entities import Gasto, Recorrencia
from utils.datas import para_data


def id_gasto_recorrente(recorrencia_id: str, dia: date) -> str:
    # mesmo (recorrência, dia) gera sempre o mesmo id, em qualquer dispositivo
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"recorrencia:{recorrencia_id}:{dia.isoformat()}"))


class RecurrenceScheduler:
    """Decide quando uma recorrência dispara e materializa o gasto correspondente."""

    @staticmethod
    def deve_executar(recorrencia: Recorrencia, hoje: date) -> bool:
        if not recorrencia.ativo:
            return False

        if recorrencia.ultima_execucao is None:
            return para_data(recorrencia.data_inicio) <= hoje

        ultima = para_data(recorrencia.ultima_execucao)
        if ultima >= hoje:
            # já disparou hoje (ou numa data futura): nunca duplica no mesmo dia
            return False
        return (hoje - ultima).days >= recorrencia.frequencia.intervalo_dias

    @staticmethod
    def materializar(recorrencia: Recorrencia, hoje: date) -> Gasto:
        recorrencia.ultima_execucao = hoje.isoformat()
        return Gasto(
            id=id_gasto_recorrente(recorrencia.id, hoje),
            user_id=recorrencia.user_id,
            descricao=f"[Recorrente] {recorrencia.descricao}",
            valor=recorrencia.valor,
            data=hoje.isoformat(),
            categoria=recorrencia.categoria,
            metodo_pagamento=recorrencia.metodo_pagamento,
            observacoes=f"Gerado automaticamente de recorrência: {recorrencia.descricao}",
            recorrente_id=recorrencia.id,
        )

    def processar(self, recorrencias: list[Recorrencia], hoje: date) -> list[Gasto]:
        return [self.materializar(r, hoje) for r in recorrencias if self.deve_executar(r, hoje)]
