from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from passlib.context import CryptContext
from pydantic import ValidationError

from config import Settings
from schemas import Identity, Role


class InvalidToken(Exception):
    pass


# ----------------------------------------------------------------------------
# Passwords
# ----------------------------------------------------------------------------

def make_password_context(rounds: int = 12) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(context: CryptContext, password: str) -> str:
    return context.hash(password)


def verify_password(context: CryptContext, plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        # burn the same time as a real check so unknown emails are not detectable
        context.dummy_verify()
        return False
    return context.verify(plain, hashed)


# ----------------------------------------------------------------------------
# Tokens
# ----------------------------------------------------------------------------

class TokenService:
    """Issues and verifies signed, time-limited access tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_minutes: int = 60 * 8):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_delta = timedelta(minutes=expires_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.signing_secret,
            algorithm=settings.jwt_algorithm,
            expires_minutes=settings.access_token_expire_minutes,
        )

    def issue(self, identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "id": identity.id,
            "email": identity.email,
            "role": identity.role.value,
            "iat": now,
            "exp": now + (expires_delta or self.expires_delta),
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise InvalidToken("Missing token")
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "id", "email", "role"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Token expired")
        except jwt.InvalidTokenError:
            raise InvalidToken("Invalid token")
        try:
            return Identity(id=payload["id"], email=payload["email"], role=payload["role"])
        except ValidationError:
            raise InvalidToken("Invalid token claims")


# ----------------------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------------------

def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_password_context(request: Request) -> CryptContext:
    return request.app.state.pwd_context


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    scheme, _, token = (authorization or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    try:
        return tokens.verify(token)
    except InvalidToken as exc:
        raise HTTPException(status_code=401, detail=str(exc), headers={"WWW-Authenticate": "Bearer"})


def get_current_admin(identity: Identity = Depends(get_current_user)) -> Identity:
    if identity.role is not Role.ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity
