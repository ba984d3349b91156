from dataclasses import asdict, dataclass
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings


@dataclass(frozen=True)
class Identity:
    external_id: str
    email: str = ""
    name: str = ""
    image_url: Optional[str] = None


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.identity_secret, salt="identity")


def issue_identity_token(identity: Identity) -> str:
    payload = asdict(identity)
    payload["sub"] = payload.pop("external_id")
    return _serializer().dumps(payload)


def read_identity_token(token: str, max_age_secs: Optional[int] = None) -> Optional[Identity]:
    if not token:
        return None
    if max_age_secs is None:
        max_age_secs = get_settings().identity_max_age_secs
    try:
        data = _serializer().loads(token, max_age=max_age_secs)
    except BadSignature:
        return None

    if not isinstance(data, dict):
        return None
    external_id = data.get("sub")
    if not isinstance(external_id, str) or not external_id.strip():
        return None

    return Identity(
        external_id=external_id.strip(),
        email=str(data.get("email") or ""),
        name=str(data.get("name") or "").strip(),
        image_url=data.get("image_url") or None,
    )


def identity_from_authorization(header: Optional[str]) -> Optional[Identity]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return read_identity_token(token.strip())
