import hashlib
import secrets

SESSION_TOKEN_PREFIX = "adm_"


def generate_session_token() -> str:
    return f"{SESSION_TOKEN_PREFIX}{secrets.token_urlsafe(32)}"


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()
