from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.chat import router as chat_router
from app.api.friends import router as friends_router
from app.api.notifications import router as notifications_router
from app.api.posts import router as posts_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(chat_router)
router.include_router(posts_router)
router.include_router(friends_router)
router.include_router(notifications_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Huddle API"}
