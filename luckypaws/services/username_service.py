import re

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from luckypaws.core.config import settings
from luckypaws.core.database import store_errors
from luckypaws.core.errors import ConflictError, ValidationError
from luckypaws.models.username import Username
from luckypaws.schemas import GeneratedUsername

PREFIX_LENGTH = 5
# 'i' and 'l' are easily confused with '1' when customers read them back
ALPHABET = "abcdefghjkmnopqrstuvwxyz"


def sanitize_name(name: str) -> str:
    return re.sub(r"[il]", "", re.sub(r"[^a-z]", "", name.lower()))


def candidate_prefixes(sanitized: str) -> list[str]:
    """The leading five letters first, then every other five-letter window."""
    prefixes = [sanitized[:PREFIX_LENGTH]]
    for start in range(1, len(sanitized) - PREFIX_LENGTH + 1):
        window = sanitized[start:start + PREFIX_LENGTH]
        if window not in prefixes:
            prefixes.append(window)
    return prefixes


def mutate_prefix(prefix: str, attempt: int) -> str:
    """Overwrite the tail of `prefix` with `attempt` written in base 24."""
    chars = list(prefix)
    position = len(chars) - 1
    while attempt and position >= 0:
        attempt, digit = divmod(attempt, len(ALPHABET))
        chars[position] = ALPHABET[digit]
        position -= 1
    return "".join(chars)


class UsernameService:
    def __init__(self, session: AsyncSession, max_attempts: int = None):
        self.session = session
        self.max_attempts = max_attempts or settings.USERNAME_MAX_ATTEMPTS

    async def _exists(self, username: str) -> bool:
        async with store_errors(self.session, "check username"):
            result = await self.session.execute(select(Username.id).where(Username.username == username))
        return result.first() is not None

    async def _first_free(self, prefixes, suffix: str) -> str | None:
        for prefix in prefixes:
            proposed = f"{prefix}{suffix}"
            if not await self._exists(proposed):
                return proposed
        return None

    async def generate_username(self, facebook_name: str, page_code: str) -> GeneratedUsername:
        if not isinstance(facebook_name, str) or not facebook_name.strip():
            raise ValidationError("Facebook name is required.")
        if not isinstance(page_code, str) or not page_code.strip():
            raise ValidationError("Page Code is required.")

        sanitized = sanitize_name(facebook_name)
        if not sanitized:
            raise ValidationError(
                'Could not generate a base username from the provided Facebook name '
                '(no alphabetic characters found after removing "i" and "l").'
            )
        suffix = page_code.strip().lower()

        username = await self._first_free(candidate_prefixes(sanitized), suffix)
        if username is None:
            base = sanitized[:PREFIX_LENGTH].ljust(PREFIX_LENGTH, "a")
            mutations = (mutate_prefix(base, attempt) for attempt in range(1, self.max_attempts))
            username = await self._first_free(mutations, suffix)

        if username is None:
            logger.error(f"Username space exhausted for {facebook_name!r} / {page_code!r}")
            raise ConflictError(
                "Failed to generate a unique username. Please try a different Facebook name."
            )

        async with store_errors(self.session, "store username"):
            self.session.add(Username(username=username, facebook_name=facebook_name, page_code=page_code))
            await self.session.commit()

        logger.info(f"Generated username {username} for {facebook_name!r}")
        return GeneratedUsername(username=username, facebook_name=facebook_name)
