"""
AI Collaborator Models

Results returned by the receipt scanner and the insight generator.

CRITICAL: A ReceiptExtraction is PROPOSED data. It is shown to the user,
who decides whether to log it. Nothing here is written to the budget
document automatically.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from zenbudget.models.budget import FixedExpenseCategory


class ReceiptImageQuality(str, Enum):
    """Image quality assessment result."""
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"
    UNUSABLE = "unusable"  # Hard reject


class ReceiptImage(BaseModel):
    """An uploaded receipt photo before it is sent to the model."""

    upload_id: UUID = Field(default_factory=uuid4)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    original_filename: str = ""
    file_size_bytes: int = Field(ge=0)
    mime_type: str

    @field_validator("mime_type")
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types."""
        allowed = {"image/jpeg", "image/png", "image/webp"}
        if v.lower() not in allowed:
            raise ValueError(f"Unsupported image type: {v}. Allowed: {allowed}")
        return v.lower()


class ReceiptExtraction(BaseModel):
    """
    Structured entry extracted from a receipt photo.

    Matches the `{amount, category, note}` contract of the scanner.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    extraction_id: UUID = Field(default_factory=uuid4)
    extracted_at: datetime = Field(default_factory=datetime.utcnow)

    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Total paid"
    )
    category: FixedExpenseCategory = Field(
        default=FixedExpenseCategory.OTHER,
        description="Best-guess category"
    )
    note: str = Field(
        default="",
        max_length=200,
        description="Short description (merchant, items)"
    )


class SpendingInsight(BaseModel):
    """
    A natural-language spending tip.

    `generated` is False when the text is a fallback message rather
    than model output.
    """

    text: str
    generated: bool = False
    year: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
