from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import IdentityCapabilities, identity_capabilities, settings
from app.database import get_session
from app.repositories.chat import ChatRepository
from app.repositories.matches import MatchRepository
from app.repositories.profiles import ProfileRepository
from app.repositories.users import UserRepository
from app.services.chat import ChatService
from app.services.identity import IdentifierResolver
from app.services.matching import MatchService
from app.services.preferences import PreferenceService
from app.services.realtime import ConnectionManager, manager


async def get_user_repository(db: AsyncSession = Depends(get_session)) -> UserRepository:
    return UserRepository(db)


async def get_match_repository(db: AsyncSession = Depends(get_session)) -> MatchRepository:
    return MatchRepository(db)


async def get_profile_repository(db: AsyncSession = Depends(get_session)) -> ProfileRepository:
    return ProfileRepository(db)


async def get_chat_repository(db: AsyncSession = Depends(get_session)) -> ChatRepository:
    return ChatRepository(db)


def get_identity_capabilities() -> IdentityCapabilities:
    return identity_capabilities


def get_allow_placeholders() -> bool:
    return settings.ALLOW_PLACEHOLDER_USERS


def get_notifier() -> ConnectionManager:
    return manager


def get_chat_available(request: Request) -> bool:
    # Set once by the startup probe
    return getattr(request.app.state, "chat_available", False)


def get_identifier_resolver(
    users=Depends(get_user_repository),
    capabilities: IdentityCapabilities = Depends(get_identity_capabilities),
    allow_placeholders: bool = Depends(get_allow_placeholders),
) -> IdentifierResolver:
    return IdentifierResolver(users, capabilities, allow_placeholders=allow_placeholders)


def get_match_service(
    matches=Depends(get_match_repository),
    resolver: IdentifierResolver = Depends(get_identifier_resolver),
    notifier=Depends(get_notifier),
) -> MatchService:
    return MatchService(matches, resolver, notifier=notifier)


def get_preference_service(
    profiles=Depends(get_profile_repository),
    resolver: IdentifierResolver = Depends(get_identifier_resolver),
) -> PreferenceService:
    return PreferenceService(profiles, resolver)


def get_chat_service(
    chat=Depends(get_chat_repository),
    users=Depends(get_user_repository),
    resolver: IdentifierResolver = Depends(get_identifier_resolver),
    notifier=Depends(get_notifier),
    available: bool = Depends(get_chat_available),
) -> ChatService:
    return ChatService(chat, users, resolver, notifier=notifier, available=available)
