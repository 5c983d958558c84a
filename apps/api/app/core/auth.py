from dataclasses import dataclass

from fastapi import Depends
from jose import JWTError, jwt
from starlette.requests import Request

from app.core.config import get_settings


SYSTEM_ACTOR = "system"


@dataclass
class AuthUser:
    sub: str
    roles: list[str]


async def get_current_user(request: Request) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header.replace("Bearer ", "") if auth_header.startswith("Bearer ") else ""

    if not token:
        return AuthUser(sub="anonymous", roles=["guest"])

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return AuthUser(sub="anonymous", roles=["guest"])

    subject = str(payload.get("sub", "anonymous"))
    roles = payload.get("roles", ["user"])
    if not isinstance(roles, list):
        roles = ["user"]
    return AuthUser(sub=subject, roles=[str(role) for role in roles])


async def get_actor_name(request: Request, user: AuthUser = Depends(get_current_user)) -> str:
    """Name recorded on archive snapshots: ``x-user-name``, then the token subject."""
    header_value = request.headers.get("x-user-name", "").strip()
    if header_value:
        return header_value
    if user.sub and user.sub != "anonymous":
        return user.sub
    return SYSTEM_ACTOR
