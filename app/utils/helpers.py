"""
Utilidades y helpers para la aplicación
"""

import calendar
import json
import re
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from bson import ObjectId


_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def generate_id(prefix: str, length: int = 12) -> str:
    """Genera un ID legible con prefijo (ej: rep-1a2b3c4d5e6f)"""
    return f"{prefix}-{uuid.uuid4().hex[:length]}"


def utcnow() -> datetime:
    """Obtiene datetime UTC actual (naive, como lo devuelve MongoDB)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convierte un datetime con zona horaria a UTC naive"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def month_key(value: Optional[datetime] = None) -> str:
    """Clave de mes YYYY-MM usada en el contador de uso"""
    return (value or utcnow()).strftime("%Y-%m")


def serialize_objectid(obj: Any) -> Any:
    """Serializa ObjectId (y datetime) a string para JSON"""
    if isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {key: serialize_objectid(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [serialize_objectid(item) for item in obj]
    return obj


def truncate(text: Optional[str], max_chars: int) -> str:
    """Recorta texto a un máximo de caracteres"""
    if not text:
        return ""
    return text[:max_chars]


def extract_json(content: Optional[str]) -> Dict[str, Any]:
    """
    Parsea el JSON devuelto por un LLM

    Acepta el objeto tal cual, envuelto en bloque ```json o rodeado de texto.

    Raises:
        ValueError: si no hay un objeto JSON válido
    """
    if not content or not content.strip():
        raise ValueError("Respuesta vacía")

    text = content.strip()
    fenced = _CODE_FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise ValueError(f"JSON inválido: {text[:200]}")
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON inválido: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Se esperaba un objeto JSON")
    return data


def to_int(value: Any, default: int = 0) -> int:
    """Convierte a int de forma segura"""
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return default


def clamp(value: int, lower: int, upper: int) -> int:
    """Limita un valor a un rango"""
    return max(lower, min(upper, value))


def safe_get_nested(data: Dict[str, Any], path: str, default=None) -> Any:
    """
    Obtiene valor anidado de un diccionario usando dot notation

    Example:
        safe_get_nested({'a': {'b': {'c': 1}}}, 'a.b.c') -> 1
    """
    keys = path.split('.')
    current = data

    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return default

    return current


def add_months(value: datetime, months: int = 1) -> datetime:
    """Suma meses a una fecha, ajustando el día al largo del mes destino"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
