"""SQLAlchemy models for tenants, their identities and API keys."""

import enum

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authsome.common.models import Base, TimestampMixin, generate_uuid


class IdentityType(str, enum.Enum):
    EMAIL = "EMAIL"
    USERNAME = "USERNAME"
    USER_ID = "USER_ID"


class TenantModel(Base, TimestampMixin):
    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    identities: Mapped[list["TenantIdentityModel"]] = relationship(
        back_populates="tenant", cascade="all, delete-orphan"
    )


class TenantIdentityModel(Base, TimestampMixin):
    __tablename__ = "tenant_identities"
    __table_args__ = (
        UniqueConstraint(
            "identity_type", "identity_value", name="uq_tenant_identity_type_value"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    identity_type: Mapped[IdentityType] = mapped_column(
        Enum(IdentityType, native_enum=False, length=20), nullable=False
    )
    identity_value: Mapped[str] = mapped_column(String(320), nullable=False)

    tenant: Mapped["TenantModel"] = relationship(back_populates="identities")


class TenantApiKeyModel(Base, TimestampMixin):
    __tablename__ = "tenant_api_keys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    tenant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    key_prefix: Mapped[str] = mapped_column(String(12), nullable=False)
