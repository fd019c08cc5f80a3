from fastapi import APIRouter

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/liveness/")
async def liveness() -> bool:
    """
    Liveness probe: is the process alive and responsive?
    """
    return True
