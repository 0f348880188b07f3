"""One-time code generation, storage and single-use consumption."""

import enum
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from authsome.common.models import as_utc, utcnow
from authsome.otp.models import OtpModel

logger = logging.getLogger(__name__)


class OtpType(str, enum.Enum):
    NUMERIC = "NUMERIC"
    ALPHABETIC = "ALPHABETIC"
    ALPHANUMERIC = "ALPHANUMERIC"


@dataclass(frozen=True)
class OtpConstraints:
    """Character-class bounds for ALPHANUMERIC codes. ``None`` means unbounded."""

    min_digits: Optional[int] = None
    min_letters: Optional[int] = None
    max_digits: Optional[int] = None
    max_letters: Optional[int] = None


_DIGITS = string.digits
_LETTERS = string.ascii_uppercase


def _pick(alphabet: str, count: int) -> list[str]:
    return [secrets.choice(alphabet) for _ in range(count)]


def generate_code(
    otp_type: OtpType,
    length: int,
    constraints: Optional[OtpConstraints] = None,
) -> str:
    """Generate a random code of ``length`` characters."""
    if length < 1:
        raise ValueError("OTP length must be at least 1")

    if otp_type == OtpType.NUMERIC:
        return "".join(_pick(_DIGITS, length))
    if otp_type == OtpType.ALPHABETIC:
        return "".join(_pick(_LETTERS, length))

    c = constraints or OtpConstraints()
    min_digits = c.min_digits or 0
    min_letters = c.min_letters or 0
    max_digits = length if c.max_digits is None else c.max_digits
    max_letters = length if c.max_letters is None else c.max_letters

    if (
        min_digits > max_digits
        or min_letters > max_letters
        or min_digits + min_letters > length
        or max_digits + max_letters < length
    ):
        raise ValueError(f"OTP constraints {c} cannot be satisfied for length {length}")

    # Choose how many digits the code will hold, then fill the rest with letters.
    low = max(min_digits, length - max_letters)
    high = min(max_digits, length - min_letters)
    digit_count = low + secrets.randbelow(high - low + 1)

    chars = _pick(_DIGITS, digit_count) + _pick(_LETTERS, length - digit_count)
    # Fisher-Yates with a CSPRNG so digit positions are not predictable.
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)


class OtpService:
    """OTP store operations."""

    async def generate_and_save(
        self,
        session: AsyncSession,
        otp_type: OtpType,
        length: int,
        ttl_seconds: int,
        context: str,
        metadata: dict[str, Any] | None = None,
        constraints: Optional[OtpConstraints] = None,
    ) -> OtpModel:
        """Generate a code and persist it. Returns the stored record."""
        now = utcnow()
        record = OtpModel(
            code=generate_code(otp_type, length, constraints),
            context=context,
            expires_at=now + timedelta(seconds=ttl_seconds),
            metadata_=metadata or {},
            created_at=now,
            updated_at=now,
        )
        session.add(record)
        await session.flush()
        logger.debug("Stored OTP %s for context %s", record.id, context)
        return record

    async def get_by_id(
        self, session: AsyncSession, otp_id: str
    ) -> OtpModel | None:
        """Return the record, or None when missing or expired."""
        record = await session.get(OtpModel, otp_id)
        if record is None:
            return None
        if as_utc(record.expires_at) <= utcnow():
            return None
        return record

    async def consume(
        self, session: AsyncSession, otp_id: str, code: str
    ) -> bool:
        """Delete the record iff it still exists, matches and is unexpired.

        A single conditional DELETE, so of several concurrent callers at
        most one sees ``True``.
        """
        result = await session.execute(
            delete(OtpModel)
            .where(
                OtpModel.id == otp_id,
                OtpModel.code == code,
                OtpModel.expires_at > utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def purge_expired(self, session: AsyncSession) -> int:
        result = await session.execute(
            delete(OtpModel)
            .where(OtpModel.expires_at <= utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
