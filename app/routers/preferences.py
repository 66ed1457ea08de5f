from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from structlog import get_logger

from app.dependencies.services import get_preference_service
from app.errors import UnexpectedError
from app.schemas.preference import SavePreferencesRequest
from app.services.preferences import PreferenceService

logger = get_logger()
router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@router.post("/save-resident-preferences", response_model=dict)
async def save_resident_preferences(request: SavePreferencesRequest, service: PreferenceService = Depends(get_preference_service)):
    try:
        user_id = await service.save_resident(request.user_id, request.preferences)
    except SQLAlchemyError as e:
        logger.error("Saving resident preferences failed", identifier=request.user_id, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "userId": user_id}


@router.post("/save-roommate-preferences", response_model=dict)
async def save_roommate_preferences(request: SavePreferencesRequest, service: PreferenceService = Depends(get_preference_service)):
    try:
        user_id = await service.save_roommate(request.user_id, request.preferences)
    except SQLAlchemyError as e:
        logger.error("Saving roommate preferences failed", identifier=request.user_id, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "userId": user_id}


@router.get("/get-resident-preferences/{identifier}", response_model=dict)
async def get_resident_preferences(identifier: str, service: PreferenceService = Depends(get_preference_service)):
    try:
        preferences = await service.get_resident(identifier)
    except SQLAlchemyError as e:
        logger.error("Reading resident preferences failed", identifier=identifier, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "preferences": preferences}


@router.get("/get-roommate-preferences/{identifier}", response_model=dict)
async def get_roommate_preferences(identifier: str, service: PreferenceService = Depends(get_preference_service)):
    try:
        preferences = await service.get_roommate(identifier)
    except SQLAlchemyError as e:
        logger.error("Reading roommate preferences failed", identifier=identifier, error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "preferences": preferences}
