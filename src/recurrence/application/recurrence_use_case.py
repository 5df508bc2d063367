#recurrence/application/recurrence_use_case.py

from datetime import date, datetime
from typing import Callable, Optional

from recurrence.domain.entities import Gasto
from recurrence.domain.recurrence_scheduler import RecurrenceScheduler
from recurrence.infrastructure.recurrence_repository import RecurrenceRepository
from utils.database import Banco
from utils.datas import agora_utc, para_iso
from utils.exceptions import ValidationError
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("recurrence")


class RecurrenceUseCase:
    def __init__(
        self,
        banco: Banco,
        scheduler: Optional[RecurrenceScheduler] = None,
        relogio: Callable[[], datetime] = agora_utc,
    ):
        self.banco = banco
        self.scheduler = scheduler or RecurrenceScheduler()
        self.relogio = relogio

    def processar(self, user_id: str, hoje: Optional[date] = None) -> list[Gasto]:
        """Um ciclo de atualização: dispara as recorrências vencidas em uma transação."""
        agora = self.relogio()
        if hoje is not None and hoje > agora.date():
            raise ValidationError(f"Data de processamento no futuro: {hoje.isoformat()}")
        hoje = hoje or agora.date()
        criados = []

        with self.banco.transacao() as cur:
            cur.bloquear_usuario(user_id)
            repo = RecurrenceRepository(cur)
            for recorrencia in repo.listar_ativas(user_id):
                try:
                    if not self.scheduler.deve_executar(recorrencia, hoje):
                        continue
                except ValueError as e:
                    logger.warning(f"⚠️ Recorrência {recorrencia.id} de {user_id} ignorada: data inválida ({e})")
                    continue
                gasto = self.scheduler.materializar(recorrencia, hoje)
                gasto.created_at = gasto.updated_at = para_iso(agora)
                if repo.inserir_gasto_se_ausente(gasto):
                    criados.append(gasto)
                repo.registrar_execucao(recorrencia, para_iso(agora))

        if criados:
            logger.info(f"✅ {len(criados)} gasto(s) recorrente(s) gerado(s) para {user_id} em {hoje}.")
        return criados
