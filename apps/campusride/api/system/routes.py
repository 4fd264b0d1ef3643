from fastapi import APIRouter, Depends

from campusride.core.dependencies import get_connection_registry
from campusride.services.connection_registry import ConnectionRegistry

router = APIRouter(prefix="/healthz", tags=["health"])


@router.get("")
def health(registry: ConnectionRegistry = Depends(get_connection_registry)):
    return {"ok": True, "connections": len(registry)}
