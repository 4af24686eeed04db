from fastapi import APIRouter, Depends

from app.core.config import Settings, get_settings

router = APIRouter()


@router.get("/health", summary="Liveness plus the configured store backend and lock mode")
async def health_check(settings: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "store": settings.STORE_BACKEND,
        "ticket_lock": "enabled" if settings.TICKET_LOCK_ENABLED else "disabled",
    }
