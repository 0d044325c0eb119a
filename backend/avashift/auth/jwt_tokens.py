from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

import jwt  # PyJWT

from avashift.core.config import settings


@dataclass(frozen=True)
class JwtConfig:
    secret: str
    issuer: str
    audience: str
    ttl_seconds: int


def jwt_config_from_settings() -> JwtConfig:
    return JwtConfig(
        secret=settings.JWT_SECRET,
        issuer=settings.JWT_ISS,
        audience=settings.JWT_AUD,
        ttl_seconds=settings.ACCESS_TOKEN_TTL_SECONDS,
    )


def create_access_token(cfg: JwtConfig, user_id: int, role: str | None = None) -> str:
    """Mint a session token. Production tokens come from the auth service; tests and tooling use this."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + cfg.ttl_seconds,
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "typ": "access",
    }
    if role:
        payload["role"] = role
    return jwt.encode(payload, cfg.secret, algorithm="HS256")


def decode_access_token(cfg: JwtConfig, token: str) -> dict[str, Any]:
    payload = jwt.decode(
        token,
        cfg.secret,
        algorithms=["HS256"],
        issuer=cfg.issuer,
        audience=cfg.audience,
        options={"require": ["exp", "iat", "iss", "aud", "sub"]},
    )
    if payload.get("typ", "access") != "access":
        raise jwt.InvalidTokenError("not an access token")
    return payload
