"""SQLAlchemy ORM models for the Division catalog and task log."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from division.providers.base import ProviderDescriptor, RoleDescriptor


def _new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Provider(Base):
    """An AI model endpoint."""

    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    api_base_url: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    api_type: Mapped[str] = mapped_column(String(64), nullable=False)
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    assignments: Mapped[list["RoleAssignmentRow"]] = relationship(
        back_populates="provider",
        cascade="all, delete-orphan",
    )

    def to_descriptor(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            id=self.id,
            name=self.name,
            display_name=self.display_name,
            api_base_url=self.api_base_url,
            api_type=self.api_type,
            model_id=self.model_id,
            description=self.description,
            is_enabled=self.is_enabled,
        )

    def __repr__(self) -> str:
        return f"Provider(name={self.name}, model_id={self.model_id}, enabled={self.is_enabled})"


class Role(Base):
    """A named capability category."""

    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    slug: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    assignments: Mapped[list["RoleAssignmentRow"]] = relationship(
        back_populates="role",
        cascade="all, delete-orphan",
    )

    def to_descriptor(self) -> RoleDescriptor:
        return RoleDescriptor(
            id=self.id,
            slug=self.slug,
            name=self.name,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"Role(slug={self.slug})"


class RoleAssignmentRow(Base):
    """Provider bound to a role within a project."""

    __tablename__ = "role_assignments"
    __table_args__ = (
        UniqueConstraint("project_id", "role_id", "provider_id", name="uq_assignment"),
        Index("ix_role_assignments_project", "project_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    priority: Mapped[int] = mapped_column(Integer, default=0)

    role: Mapped["Role"] = relationship(back_populates="assignments")
    provider: Mapped["Provider"] = relationship(back_populates="assignments")

    def __repr__(self) -> str:
        return (
            f"RoleAssignmentRow(project_id={self.project_id}, role_id={self.role_id}, "
            f"provider_id={self.provider_id}, priority={self.priority})"
        )


class TaskLog(Base):
    """A completed sub-task."""

    __tablename__ = "task_logs"
    __table_args__ = (Index("ix_task_logs_project", "project_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role_id: Mapped[str] = mapped_column(String(64), ForeignKey("roles.id"), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(64), nullable=False)
    input: Mapped[str] = mapped_column(Text, nullable=False)
    output: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    error_msg: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"TaskLog(id={self.id}, role_id={self.role_id}, status={self.status})"
