from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class LocalizedText:
    """
    Bilingual label: primary (English) and secondary (Arabic) text.

    Mapped as a SQLAlchemy composite over a model's name / name_ar columns,
    so presentation code picks the language instead of the model carrying
    duplicated fields.
    """
    primary: str
    secondary: str | None = None

    def for_language(self, language: str) -> str:
        if language == "ar" and self.secondary:
            return self.secondary
        return self.primary

    def to_dict(self) -> dict:
        return {"primary": self.primary, "secondary": self.secondary}


def as_number(value: Decimal | None) -> float | None:
    """JSON-friendly view of a Numeric column."""
    if value is None:
        return None
    return float(value)
