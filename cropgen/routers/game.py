# cropgen/routers/game.py
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from cropgen.core.config import Settings
from cropgen.core.languages import supported_languages
from cropgen.models.schemas import AnswerIn, LanguageOut
from cropgen.services.game_service import GameService

router = APIRouter(prefix="/api/game", tags=["Game"])


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_game(request: Request) -> GameService:
    return request.app.state.game


def get_session_id(request: Request, response: Response, settings: Settings = Depends(get_settings)) -> str:
    """Read the session cookie, issuing a new one on first contact."""
    sid = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not sid:
        sid = str(uuid4())
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            sid,
            max_age=settings.SESSION_TTL_HOURS * 3600,
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
        )
    return sid


def dev_only(settings: Settings = Depends(get_settings)) -> None:
    if settings.is_production:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not available in production")


@router.get("/start")
@router.get("/daily")
async def start_game(
    language: str = Query("en"),
    session_id: str = Depends(get_session_id),
    game: GameService = Depends(get_game),
):
    view = await game.start(session_id, language)
    if view.is_new_game:
        message = f"Today's tips are about {view.crop} farming! Answer questions to unlock tips."
    else:
        message = "You have already started today's game. Come back tomorrow for new tips!"
    return {"success": True, "message": message, "data": view.model_dump(mode="json")}


@router.post("/answer")
async def submit_answer(
    payload: AnswerIn,
    session_id: str = Depends(get_session_id),
    game: GameService = Depends(get_game),
):
    result = await game.answer(session_id, payload.question_index, payload.selected_option)
    return {"success": True, "data": result.model_dump(mode="json")}


@router.get("/status")
async def game_status(
    session_id: str = Depends(get_session_id),
    game: GameService = Depends(get_game),
):
    view = await game.status(session_id)
    message = None if view.has_active_game else "No active game. Start a new game!"
    return {"success": True, "message": message, "data": view.model_dump(mode="json")}


@router.delete("/reset")
async def reset_game(
    response: Response,
    request: Request,
    game: GameService = Depends(get_game),
    settings: Settings = Depends(get_settings),
):
    sid = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if sid:
        await game.reset(sid)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True, "message": "Game reset successfully. Start a new game!"}


@router.get("/stats")
async def player_stats(
    session_id: str = Depends(get_session_id),
    game: GameService = Depends(get_game),
):
    stats = await game.stats(session_id)
    return {"success": True, "data": stats.model_dump()}


@router.get("/languages")
def list_languages():
    langs = [
        LanguageOut(code=lang.code, name=lang.name, backend_key=lang.backend_key, supported=lang.supported).model_dump()
        for lang in supported_languages()
    ]
    return {"success": True, "data": langs}


# ------------------------------------------------------------------------------
# Dev only
# ------------------------------------------------------------------------------

@router.post("/regenerate", dependencies=[Depends(dev_only)])
async def force_regenerate(
    language: str = Query("en"),
    game: GameService = Depends(get_game),
):
    bundle = await game.regenerate(language)
    return {
        "success": True,
        "message": f"Regenerated content for {bundle.crop} ({bundle.language})",
        "data": {"date": bundle.date, "crop": bundle.crop, "language": bundle.language},
    }


@router.delete("/content", dependencies=[Depends(dev_only)])
async def clear_content(game: GameService = Depends(get_game)):
    deleted = await game.clear_content()
    return {"success": True, "data": {"deleted": deleted}}
