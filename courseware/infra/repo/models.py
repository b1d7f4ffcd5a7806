"""Modèles SQLAlchemy de la couche de persistance (ressources, contenus, versions)."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class ResourceORM(Base):
    """Ressource pédagogique, avec rétro-référence optionnelle vers un contenu."""

    __tablename__ = "resources"

    id = Column(String(64), primary_key=True)
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    url = Column(String(2048), nullable=True)
    file_path = Column(String(1024), nullable=True)
    subject_id = Column(String(64), nullable=False)
    created_by = Column(String(64), nullable=False)
    content_id = Column(String(64), ForeignKey("contents.id"), nullable=True)
    link_type = Column(String(16), nullable=True)
    row_version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    __mapper_args__ = {"version_id_col": row_version}


class ContentORM(Base):
    """Contenu éditable; la liste ordonnée des ressources vit dans `content_resources`."""

    __tablename__ = "contents"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    subject_id = Column(String(64), nullable=False)
    created_by = Column(String(64), nullable=False)
    syllabus_data = Column(JSON, nullable=True)
    current_version_number = Column(Integer, nullable=False, default=0)
    row_version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_now)
    updated_at = Column(DateTime, nullable=False, default=_now, onupdate=_now)

    resource_links = relationship(
        "ContentResourceORM",
        order_by="ContentResourceORM.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": row_version}


class ContentResourceORM(Base):
    """Association ordonnée contenu -> ressource (une ligne par référence)."""

    __tablename__ = "content_resources"

    content_id = Column(String(64), ForeignKey("contents.id"), primary_key=True)
    resource_id = Column(String(64), ForeignKey("resources.id"), primary_key=True)
    position = Column(Integer, nullable=False)


class VersionORM(Base):
    """Instantané immuable d'un contenu (registre append-only)."""

    __tablename__ = "content_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content_id = Column(String(64), ForeignKey("contents.id"), nullable=False)
    version_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    resource_ids = Column(JSON, nullable=False, default=list)
    syllabus_data = Column(JSON, nullable=True)
    changes = Column(JSON, nullable=False, default=list)
    created_by = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("content_id", "version_number", name="uq_content_version_number"),
    )
