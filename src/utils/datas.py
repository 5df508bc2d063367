# utils/datas.py

import calendar
from datetime import date, datetime, timezone


def agora_utc() -> datetime:
    return datetime.now(timezone.utc)


def para_iso(momento: datetime) -> str:
    if momento.tzinfo is None:
        momento = momento.replace(tzinfo=timezone.utc)
    return momento.astimezone(timezone.utc).isoformat()


def de_iso(texto: str) -> datetime:
    """Lê um timestamp ISO-8601; valores sem fuso são tratados como UTC."""
    momento = datetime.fromisoformat(texto.replace("Z", "+00:00"))
    if momento.tzinfo is None:
        momento = momento.replace(tzinfo=timezone.utc)
    return momento


def para_data(valor: date | str) -> date:
    # aceita "YYYY-MM-DD" e também timestamps completos vindos do cliente
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    return date.fromisoformat(str(valor)[:10])


def normalizar_data(valor) -> str:
    """Data do cliente como ``YYYY-MM-DD``; ``ValueError`` quando não é uma data."""
    try:
        return para_data(valor).isoformat()
    except (TypeError, ValueError):
        raise ValueError(f"Data inválida: {valor!r}")


def somar_meses(base: date, meses: int, dia: int) -> date:
    """Avança ``meses`` a partir de ``base`` fixando o dia, limitado ao fim do mês."""
    indice = base.month - 1 + meses
    ano = base.year + indice // 12
    mes = indice % 12 + 1
    ultimo_dia = calendar.monthrange(ano, mes)[1]
    return date(ano, mes, min(dia, ultimo_dia))
