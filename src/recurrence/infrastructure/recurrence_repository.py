#recurrence/infrastructure/recurrence_repository.py

from recurrence.domain.entities import Frequencia, Gasto, Recorrencia
from utils.database import CursorBanco


class RecurrenceRepository:
    def __init__(self, cur: CursorBanco):
        self.cur = cur

    def listar_ativas(self, user_id: str) -> list[Recorrencia]:
        rows = self.cur.execute(
            """
            SELECT id, user_id, descricao, valor, categoria, metodo_pagamento, frequencia,
                   data_inicio, ultima_execucao, ativo, observacoes, created_at, updated_at
            FROM recorrencias
            WHERE user_id = %s AND ativo = %s
            ORDER BY created_at, id
            """ + self.cur.para_update,
            (user_id, True),
        ).fetchall()
        return [
            Recorrencia(
                id=r["id"],
                user_id=r["user_id"],
                descricao=r["descricao"],
                valor=float(r["valor"]),
                categoria=r["categoria"],
                metodo_pagamento=r["metodo_pagamento"],
                frequencia=Frequencia(r["frequencia"]),
                data_inicio=r["data_inicio"],
                ultima_execucao=r["ultima_execucao"],
                ativo=bool(r["ativo"]),
                observacoes=r["observacoes"],
                created_at=r["created_at"],
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def registrar_execucao(self, recorrencia: Recorrencia, agora: str) -> None:
        self.cur.execute(
            "UPDATE recorrencias SET ultima_execucao = %s, updated_at = %s WHERE id = %s AND user_id = %s",
            (recorrencia.ultima_execucao, agora, recorrencia.id, recorrencia.user_id),
        )

    def inserir_gasto_se_ausente(self, gasto: Gasto) -> bool:
        if self.cur.execute("SELECT id FROM gastos WHERE id = %s", (gasto.id,)).fetchone():
            return False
        self.cur.execute(
            """
            INSERT INTO gastos (
                id, user_id, descricao, valor, data, categoria, metodo_pagamento,
                observacoes, recorrente_id, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                gasto.id, gasto.user_id, gasto.descricao, gasto.valor, gasto.data,
                gasto.categoria, gasto.metodo_pagamento, gasto.observacoes,
                gasto.recorrente_id, gasto.created_at, gasto.updated_at,
            ),
        )
        return True
