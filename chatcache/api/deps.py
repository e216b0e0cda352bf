from fastapi import HTTPException, Request, status

from chatcache.core.chat import ChatHandler
from chatcache.core.ratelimit import RateLimiter
from chatcache.core.store import SessionStore


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_chat_handler(request: Request) -> ChatHandler:
    return request.app.state.chat_handler


def enforce_rate_limit(request: Request) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    client_key = request.client.host if request.client else "unknown"
    if not limiter.allow(client_key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests, please try again later.",
        )
