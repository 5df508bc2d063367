# data_sync/api/routes.py

from fastapi import APIRouter, Depends, Query, Request

from authentication.middleware.jwt_middleware import get_current_user_id
from data_sync.api.schemas import SyncRequest
from data_sync.application.sync_engine import SyncEngine
from data_sync.domain.entities import LoteSync, ModoSync

router = APIRouter(tags=["Sincronização"])


def get_sync_engine(request: Request) -> SyncEngine:
    return request.app.state.sync_engine


@router.post("/sync", summary="Enviar dados do cliente (merge ou fullReplace)")
def push(
    body: SyncRequest,
    full_replace: bool = Query(False, alias="fullReplace", description="⚠️ apaga os dados do usuário antes de inserir"),
    user_id: str = Depends(get_current_user_id),
    engine: SyncEngine = Depends(get_sync_engine),
):
    lote = LoteSync.de_snapshot(body.model_dump())
    modo = ModoSync.FULL_REPLACE if full_replace else ModoSync.MERGE
    resultado = engine.push(user_id, lote, modo)
    return {"message": "Dados sincronizados com sucesso", "synced": resultado.to_dict()}


@router.get("/sync", summary="Baixar snapshot completo do usuário")
def pull(user_id: str = Depends(get_current_user_id), engine: SyncEngine = Depends(get_sync_engine)):
    return engine.pull(user_id)
