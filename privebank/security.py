"""Tokens bearer assinados (HMAC) e comparação de segredos em tempo constante."""

import hashlib
import hmac
from typing import Optional


# --- Token HMAC simples: "<user_id>.<assinatura>" ---
def make_token(user_id: str, secret: str) -> str:
    sig = hmac.new(secret.encode(), str(user_id).encode(), hashlib.sha256).hexdigest()
    return f"{user_id}.{sig}"


def parse_token(token: str, secret: str) -> Optional[str]:
    """Retorna o user_id se a assinatura confere, senão None."""
    user_id, sep, sig = token.rpartition(".")
    if not sep or not user_id or not sig:
        return None
    expected = hmac.new(secret.encode(), user_id.encode(), hashlib.sha256).hexdigest()
    if hmac.compare_digest(expected, sig):
        return user_id
    return None


def secrets_match(received: Optional[str], expected: str) -> bool:
    if not received or not expected:
        return False
    return hmac.compare_digest(received.encode(), expected.encode())
