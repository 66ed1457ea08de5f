from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from structlog import get_logger

from app.config import settings
from app.dependencies.rate_limit import rate_limit
from app.dependencies.services import get_match_service
from app.errors import UnexpectedError
from app.schemas.match import MatchActionRequest
from app.services.matching import MatchService

logger = get_logger()
router = APIRouter(prefix="/api/matches", tags=["matches"])


def _dump(items) -> list:
    return [item.model_dump(by_alias=True, mode="json") for item in items]


@router.get("/roommate-matches/{user_id}", response_model=dict)
async def get_roommate_matches(user_id: str, service: MatchService = Depends(get_match_service)):
    try:
        matches = await service.roommate_matches(user_id)
    except SQLAlchemyError as e:
        logger.error("Fetching roommate matches failed", identifier=user_id, error=str(e))
        raise UnexpectedError(str(e))
    if matches is None:
        return {"success": True, "matches": [], "message": "No roommate profile found"}
    return {"success": True, "matches": _dump(matches)}


@router.get("/resident-matches/{user_id}", response_model=dict)
async def get_resident_matches(user_id: str, service: MatchService = Depends(get_match_service)):
    try:
        matches = await service.resident_matches(user_id)
    except SQLAlchemyError as e:
        logger.error("Fetching resident matches failed", identifier=user_id, error=str(e))
        raise UnexpectedError(str(e))
    if matches is None:
        return {"success": True, "matches": [], "message": "No resident profile found"}
    return {"success": True, "matches": _dump(matches)}


@router.get("/mutual-matches/{user_id}", response_model=dict)
async def get_mutual_matches(user_id: str, service: MatchService = Depends(get_match_service)):
    try:
        matches = await service.mutual_matches(user_id)
    except SQLAlchemyError as e:
        logger.error("Fetching mutual matches failed", identifier=user_id, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "matches": _dump(matches)}


@router.post(
    "/action",
    response_model=dict,
    dependencies=[Depends(rate_limit(settings.ACTION_RATE_LIMIT, settings.ACTION_RATE_WINDOW_SECONDS))],
)
async def match_action(request: MatchActionRequest, service: MatchService = Depends(get_match_service)):
    try:
        return await service.apply_action(request.user_id, request.match_id, request.action)
    except SQLAlchemyError as e:
        logger.error("Match action failed", user_id=request.user_id, match_id=request.match_id, error=str(e))
        raise UnexpectedError(str(e))


@router.get("/", response_model=dict)
async def list_matches(service: MatchService = Depends(get_match_service)):
    try:
        matches = await service.all_matches()
    except SQLAlchemyError as e:
        logger.error("Listing matches failed", error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "matches": matches}
