"""
Resolution of user identifiers (numeric id, email or external auth UID) to
numeric user ids.

``resolve`` never writes. ``get_or_create`` falls back to creating a
placeholder user when the deployment allows it.
"""
import secrets
import time
from typing import Any, Optional
from urllib.parse import unquote

from sqlalchemy.exc import IntegrityError
from structlog import get_logger

from app.config import IdentityCapabilities
from app.errors import NotFoundError, UnexpectedError, ValidationError
from app.utils.params import parse_int
from app.utils.retry import PlaceholderConflict, retry_on_conflict

logger = get_logger()

PLACEHOLDER_NAME = "Pending User"


def normalize_identifier(identifier: Any) -> Optional[str]:
    if identifier is None or isinstance(identifier, bool):
        return None
    text = str(identifier)
    try:
        text = unquote(text, errors="strict")
    except UnicodeDecodeError:
        pass
    text = text.strip()
    return text or None


def as_user_id(identifier: str) -> Optional[int]:
    return parse_int(identifier) if isinstance(identifier, str) else None


def placeholder_national_id() -> str:
    # 12 characters: "P", six clock digits, five random digits
    millis = int(time.time() * 1000) % 10**6
    return f"P{millis:06d}{secrets.randbelow(10**5):05d}"


def placeholder_password() -> str:
    return f"p_{int(time.time() * 1000)}"


class IdentifierResolver:
    def __init__(self, users, capabilities: IdentityCapabilities, allow_placeholders: bool = True):
        self.users = users
        self.capabilities = capabilities
        self.allow_placeholders = allow_placeholders

    async def resolve(self, identifier: Any) -> Optional[int]:
        ident = normalize_identifier(identifier)
        if ident is None:
            return None

        numeric = as_user_id(ident)
        if numeric is not None:
            found = await self.users.get_id(numeric)
            if found is not None:
                return found

        if "@" in ident and self.capabilities.email:
            found = await self.users.get_id_by_email(ident)
            if found is not None:
                return found

        if self.capabilities.external_uid:
            found = await self.users.get_id_by_external_uid(ident)
            if found is not None:
                return found

        return None

    async def get_or_create(self, identifier: Any, name: Optional[str] = None) -> int:
        ident = normalize_identifier(identifier)
        if ident is None:
            raise ValidationError("Missing user identifier")

        found = await self.resolve(ident)
        if found is not None:
            return found

        # Numeric ids are primary keys and are never fabricated
        if not self.allow_placeholders or as_user_id(ident) is not None:
            raise NotFoundError("User not found")

        try:
            user_id = await self._create_placeholder(ident, name)
        except (IntegrityError, PlaceholderConflict) as e:
            logger.error("Auto-create user failed", identifier=ident, error=str(e))
            user_id = None
        if user_id is None:
            raise UnexpectedError("Failed to create user automatically.")
        return user_id

    @retry_on_conflict(tries=2)
    async def _create_placeholder(self, ident: str, name: Optional[str]) -> Optional[int]:
        # A concurrent request may have created the user since the last lookup
        found = await self.resolve(ident)
        if found is not None:
            return found

        caps = self.capabilities
        email = external_uid = None
        if "@" in ident and caps.email:
            email = ident
            display_name = name or ident.split("@")[0] or PLACEHOLDER_NAME
        elif caps.external_uid:
            external_uid = ident
            display_name = name or ident[:20] or PLACEHOLDER_NAME
        elif caps.email:
            email = f"pending_{secrets.token_hex(6)}@example.invalid"
            display_name = name or ident[:20] or PLACEHOLDER_NAME
        else:
            display_name = name or ident[:20] or PLACEHOLDER_NAME

        user_id = await self.users.insert_placeholder(
            name=display_name,
            password=placeholder_password(),
            national_id=placeholder_national_id(),
            email=email,
            external_uid=external_uid,
        )
        if user_id is not None:
            logger.warning("Auto-created placeholder user", user_id=user_id, identifier=ident)
            return user_id

        # The insert lost an ON CONFLICT race; the winner's row is there now
        found = None
        if email is not None and email == ident:
            found = await self.users.get_id_by_email(ident)
        elif external_uid is not None:
            found = await self.users.get_id_by_external_uid(ident)
        if found is None:
            # Only the synthetic values collided; try again with fresh ones
            raise PlaceholderConflict(f"Placeholder values for {ident} already taken")
        return found
