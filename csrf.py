from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.csrf_secret, salt="csrf-token")


def generate_csrf_token(user_id: int) -> str:
    return _serializer().dumps({"u": user_id})


def validate_csrf_token(
    token: Optional[str], user_id: int, max_age_secs: Optional[int] = None
) -> bool:
    if not token:
        return False
    if max_age_secs is None:
        max_age_secs = get_settings().csrf_max_age_secs
    try:
        data = _serializer().loads(token, max_age=max_age_secs)
    except BadSignature:
        return False
    return isinstance(data, dict) and data.get("u") == user_id
