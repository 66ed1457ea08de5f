from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from structlog import get_logger

from app.database import probe_columns, probe_tables
from app.dependencies.services import get_identifier_resolver, get_user_repository
from app.errors import NotFoundError, UnexpectedError, ValidationError
from app.repositories.users import UserRepository
from app.schemas.user import CreateUserRequest
from app.services.identity import IdentifierResolver, normalize_identifier

logger = get_logger()
router = APIRouter(prefix="/api/debug", tags=["debug"])

SCHEMA_TABLES = ("users", "residents", "roommates", "matches", "chat_rooms", "messages")


@router.get("/schema-health", response_model=dict)
async def schema_health():
    try:
        tables = await probe_tables(*SCHEMA_TABLES)
        user_columns = await probe_columns("users", "email", "firebase_uid")
    except SQLAlchemyError as e:
        logger.error("Schema probe failed", error=str(e))
        raise UnexpectedError(str(e))
    report = {
        "tables": tables,
        "columns": {f"users_{name}": present for name, present in user_columns.items()},
    }
    return {"success": True, "report": report}


@router.get("/user-info/{identifier}", response_model=dict)
async def user_info(
    identifier: str,
    resolver: IdentifierResolver = Depends(get_identifier_resolver),
    users: UserRepository = Depends(get_user_repository),
):
    if normalize_identifier(identifier) is None:
        raise ValidationError("Missing identifier")
    try:
        user_id = await resolver.resolve(identifier)
        user = await users.get_info(user_id) if user_id is not None else None
    except SQLAlchemyError as e:
        logger.error("User lookup failed", identifier=identifier, error=str(e))
        raise UnexpectedError(str(e))
    if user is None:
        raise NotFoundError("User not found")
    return {"success": True, "user": user}


@router.get("/list-users", response_model=dict)
async def list_users(users: UserRepository = Depends(get_user_repository)):
    try:
        rows = await users.list_recent(limit=200)
    except SQLAlchemyError as e:
        logger.error("Listing users failed", error=str(e))
        raise UnexpectedError(str(e))
    return {"success": True, "count": len(rows), "users": rows}


@router.post("/create-user", response_model=dict)
async def create_user(request: CreateUserRequest, users: UserRepository = Depends(get_user_repository)):
    """Insert a test user from whichever user columns the body carries."""
    if not request.aadhar_no:
        raise ValidationError(
            "This DB requires aadhar_no for users. Provide aadhar_no in the request body to create a test user."
        )
    if not request.name:
        raise ValidationError("This DB requires name for users. Provide name in the request body to create a test user.")
    values = request.model_dump(exclude_none=True)
    try:
        user_id = await users.create(values)
    except IntegrityError as e:
        logger.warning("Test user rejected", error=str(e.orig))
        raise ValidationError("A user with this email, external uid or aadhar_no already exists")
    except SQLAlchemyError as e:
        logger.error("Creating test user failed", error=str(e))
        raise UnexpectedError(str(e))
    logger.info("Test user created", user_id=user_id)
    return {"success": True, "user_id": user_id}
