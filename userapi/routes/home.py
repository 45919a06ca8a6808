"""Users API — plain-text welcome page at GET /."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["Home"])

WELCOME_MESSAGE = "Welcome to the Users API"


@router.get("/", response_class=PlainTextResponse, summary="Welcome message")
async def home() -> str:
    return WELCOME_MESSAGE
