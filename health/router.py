from fastapi import APIRouter

from core.deps import SessionDep

router = APIRouter(tags=["health"])


@router.get("/health")
def health(session: SessionDep):
    # Always unauthenticated; reports whether a storage server is attached
    return {"ok": True, "connected": session.connected}
