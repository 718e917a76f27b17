from __future__ import annotations

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool

from core.deps import SessionDep
from providers.storage import ConnectionConfig
from schemas import ConnectRequest, MessageResponse, StatusResponse

# No connection guard: these endpoints manage the connection itself.
router = APIRouter(tags=["connection"])


@router.post("/connect", response_model=MessageResponse)
async def connect(body: ConnectRequest, session: SessionDep):
    """
    Validate credentials by listing buckets, then replace the active
    connection. A failed attempt leaves the previous connection in place.
    """
    config = ConnectionConfig(
        endpoint=body.endpoint,
        port=body.port,
        access_key=body.accessKey,
        secret_key=body.secretKey,
        use_tls=body.useTLS,
        region=body.region,
    )
    await run_in_threadpool(session.connect, config)
    return MessageResponse(message="Connected")


@router.post("/disconnect", response_model=MessageResponse)
async def disconnect(session: SessionDep):
    session.disconnect()
    return MessageResponse(message="Disconnected")


@router.get("/status", response_model=StatusResponse)
async def status(session: SessionDep):
    return session.status()
