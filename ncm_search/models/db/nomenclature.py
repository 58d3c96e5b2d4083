from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ncm_search.config import settings
from ncm_search.models.db.base import Base
from ncm_search.models.dto.nomenclature import NomenclatureEntryDTO


class NomenclatureEntry(Base):
    """
    Database entity representing a tariff nomenclature (NCM) position.

    The embedding is computed from ``description`` and must be refreshed
    whenever the description changes.
    """

    __tablename__ = "ncm_nomenclator"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(length=32), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    section: Mapped[str] = mapped_column(String(length=8), nullable=False, default="")
    chapter: Mapped[str] = mapped_column(String(length=2), nullable=False, default="")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(dim=settings.embedding.dimension),
        nullable=True,
    )
    embedding_model: Mapped[str | None] = mapped_column(String(length=128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def to_dto(self) -> NomenclatureEntryDTO:
        """
        Convert database model to DTO.

        :return: DTO representation of the nomenclature entry
        """

        return NomenclatureEntryDTO(
            code=self.code,
            description=self.description,
            section=self.section or "",
            chapter=self.chapter or "",
            notes=self.notes,
            has_embedding=self.has_embedding,
        )

    def __repr__(self) -> str:
        return f"NomenclatureEntry(code={self.code})"
