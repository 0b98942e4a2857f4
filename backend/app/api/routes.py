from fastapi import APIRouter

from app.api.auth import router as auth_router
from app.api.chat import router as chat_router
from app.api.chat_settings import router as chat_settings_router
from app.api.messages import router as messages_router
from app.api.stream import router as stream_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(chat_router, prefix="/chat")
router.include_router(stream_router, prefix="/chat")
router.include_router(messages_router, prefix="/chat")
router.include_router(chat_settings_router, prefix="/chat")


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Workhub chat API"}
