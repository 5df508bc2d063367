# recurrence/api/routes.py

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from authentication.middleware.jwt_middleware import get_current_user_id
from recurrence.application.recurrence_use_case import RecurrenceUseCase

router = APIRouter(tags=["Recorrências"])


def get_recurrence(request: Request) -> RecurrenceUseCase:
    return request.app.state.recurrence


@router.post("/recorrencias/processar", summary="Gerar gastos das recorrências vencidas")
def processar(
    hoje: Optional[date] = Query(None, description="Data de referência (YYYY-MM-DD), até hoje; padrão: hoje"),
    user_id: str = Depends(get_current_user_id),
    use_case: RecurrenceUseCase = Depends(get_recurrence),
):
    gastos = use_case.processar(user_id, hoje)
    return {"gerados": len(gastos), "gastos": [g.to_dict() for g in gastos]}
