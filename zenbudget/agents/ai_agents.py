"""
AI Agents for ZenBudget

Two optional collaborators backed by Gemini:

1. RECEIPT SCAN AGENT:
   - CAN: Read a receipt photo and propose {amount, category, note}
   - CANNOT: Write anything to the budget document
   - CANNOT: Guess an amount it cannot read (returns nothing instead)

2. INSIGHT AGENT:
   - CAN: Turn recent spending into one short, actionable tip
   - CANNOT: Change budgets or expenses

CRITICAL: Neither agent sits on the calculation path. A missing API key,
a network failure or an unparseable answer produces a fallback message;
the budget numbers never depend on model output.
"""

import json
import re
from decimal import Decimal, InvalidOperation
from io import BytesIO
from typing import Any, Optional

import google.generativeai as genai
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from zenbudget.audit.logger import AuditLogger
from zenbudget.config import AppSettings, get_settings
from zenbudget.engine.calendar import month_key_for_date
from zenbudget.models.budget import BudgetState, FixedExpenseCategory
from zenbudget.models.receipt import ReceiptExtraction, ReceiptImageQuality, SpendingInsight


MISSING_API_KEY_MESSAGE = "Please configure the API_KEY in the environment to use AI features."
INSIGHT_FAILED_MESSAGE = "Could not generate insights at the moment."
SCAN_FAILED_MESSAGE = "Could not read this receipt. Please enter the amount manually."

CENTS = Decimal("0.01")

_MIME_BY_FORMAT = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class ReceiptScanError(Exception):
    """The uploaded image cannot be used (size, format or quality)."""
    pass


# =============================================================================
# SHARED HELPERS
# =============================================================================

def _load_model(temperature: Optional[float] = None) -> Optional[Any]:
    """Build a Gemini model from settings, or None when no API key is set."""
    try:
        gemini = get_settings().gemini
    except ValidationError:
        return None

    genai.configure(api_key=gemini.api_key)
    return genai.GenerativeModel(
        model_name=gemini.model_name,
        generation_config={
            "temperature": gemini.temperature if temperature is None else temperature,
            "max_output_tokens": gemini.max_tokens,
        },
    )


def _extract_json(text: str) -> dict:
    """Find the first JSON object in a model answer (tolerates code fences)."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in model response")
    return json.loads(text[start:end])


def parse_amount(value: Any) -> Decimal:
    """Turn '₹1,234.5' / 1234.5 / '1234' into Decimal('1234.50')."""
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = re.sub(r"[^\d.\-]", "", str(value or ""))
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not an amount: {value!r}")
    # json.loads accepts Infinity and NaN
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    if amount < 0:
        raise ValueError(f"Negative amount: {value!r}")
    try:
        return amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"Amount out of range: {value!r}")


def parse_category(value: Any) -> FixedExpenseCategory:
    """Map a free-text category onto the fixed categories; unknown -> Other."""
    wanted = str(value or "").strip().lower()
    for category in FixedExpenseCategory:
        if category.value.lower() == wanted:
            return category
    return FixedExpenseCategory.OTHER


def assess_receipt_image(
    image_bytes: bytes,
    min_dimension: int = 300,
) -> tuple[ReceiptImageQuality, float, list[str]]:
    """
    Assess image quality using PIL.

    Returns: (quality_enum, quality_score, list_of_issues)

    Simple heuristics: resolution, aspect ratio, exposure and contrast
    from the grayscale histogram.
    """
    issues = []
    score = 1.0

    try:
        img = Image.open(BytesIO(image_bytes))
        width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        return ReceiptImageQuality.UNUSABLE, 0.0, [f"Could not open image: {e}"]

    # Check resolution
    smallest = min(width, height)
    if smallest < min_dimension:
        issues.append(f"Image resolution too low (minimum {min_dimension}px on smallest side)")
        score -= 0.4
    elif smallest < min_dimension * 5 // 3:
        issues.append("Image resolution is low, text may be hard to read")
        score -= 0.2

    # Receipts are long, but not that long
    if smallest and max(width, height) / smallest > 6:
        issues.append("Unusual aspect ratio - image may be cropped incorrectly")
        score -= 0.2

    gray = img if img.mode == "L" else img.convert("L")
    histogram = gray.histogram()
    total_pixels = sum(histogram) or 1

    if sum(histogram[:50]) / total_pixels > 0.7:
        issues.append("Image is very dark - please take photo in better lighting")
        score -= 0.3

    if sum(histogram[200:]) / total_pixels > 0.7:
        issues.append("Image is overexposed - please reduce lighting or angle")
        score -= 0.3

    # Range of pixel values holding the middle 90% of pixels
    cumsum = 0
    low_percentile = None
    high_percentile = 255
    for i, count in enumerate(histogram):
        cumsum += count
        if low_percentile is None and cumsum >= total_pixels * 0.05:
            low_percentile = i
        if cumsum >= total_pixels * 0.95:
            high_percentile = i
            break
    if high_percentile - (low_percentile or 0) < 50:
        issues.append("Image has very low contrast - text may be hard to read")
        score -= 0.25

    score = max(0.0, min(1.0, score))

    if score >= 0.7:
        quality = ReceiptImageQuality.GOOD
    elif score >= 0.5:
        quality = ReceiptImageQuality.ACCEPTABLE
    elif score >= 0.3:
        quality = ReceiptImageQuality.POOR
    else:
        quality = ReceiptImageQuality.UNUSABLE

    return quality, score, issues


# =============================================================================
# RECEIPT SCAN AGENT
# =============================================================================

class ReceiptScanAgent:
    """
    Proposes an expense entry from a receipt photo.

    The result is shown to the user, who decides where (and whether)
    to log it.
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        app_settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._app = app_settings or get_settings().app
        # Low temperature: we want the number on the receipt, not a creative one
        self._model = model if model is not None else _load_model(temperature=0.1)
        self._audit = audit_logger

    @property
    def is_configured(self) -> bool:
        return self._model is not None

    def check_image(self, image_bytes: bytes, mime_type: str) -> list[str]:
        """
        Reject images we should not send to the model.

        Returns the (non-fatal) quality issues.

        Raises:
            ReceiptScanError: wrong format, too large, or unusable quality
        """
        allowed = {_MIME_BY_FORMAT[f] for f in self._app.supported_formats_list if f in _MIME_BY_FORMAT}
        if mime_type.lower() not in allowed:
            raise ReceiptScanError(
                f"Unsupported image type: {mime_type}. "
                f"Please upload one of: {', '.join(self._app.supported_formats_list)}"
            )

        if not image_bytes:
            raise ReceiptScanError("The uploaded file is empty")

        if len(image_bytes) > self._app.max_upload_size_bytes:
            raise ReceiptScanError(
                f"Image is too large ({len(image_bytes) / 1024 / 1024:.1f} MB). "
                f"Maximum is {self._app.max_upload_size_mb} MB"
            )

        quality, _, issues = assess_receipt_image(
            image_bytes,
            min_dimension=self._app.min_receipt_dimension_px,
        )
        if quality == ReceiptImageQuality.UNUSABLE:
            raise ReceiptScanError("Image quality too low: " + "; ".join(issues))
        return issues

    def _build_prompt(self) -> str:
        categories = ", ".join(c.value for c in FixedExpenseCategory)
        symbol = self._app.currency_symbol
        return f"""You are reading a shopping or bill receipt for a personal budget app.

Extract:
- amount: the TOTAL paid, as a plain number (no currency symbol)
- category: one of {categories}
- note: a short description, e.g. the shop name and main items (max 60 characters)

Amounts are in {symbol}. If the total is not readable, use null for amount.
Do not guess.

Respond with ONLY a JSON object in this exact format:
{{"amount": 123.45, "category": "Grocery", "note": "Fresh Mart - vegetables"}}"""

    async def scan(
        self,
        image_bytes: bytes,
        mime_type: str,
    ) -> tuple[Optional[ReceiptExtraction], str]:
        """
        Extract {amount, category, note} from a receipt photo.

        Returns (extraction, message). extraction is None when the model
        is not configured, fails, or cannot read a total.

        Raises:
            ReceiptScanError: the image itself is unusable
        """
        issues = self.check_image(image_bytes, mime_type)

        if self._model is None:
            return None, MISSING_API_KEY_MESSAGE

        try:
            response = await self._model.generate_content_async([
                self._build_prompt(),
                {"mime_type": mime_type.lower(), "data": image_bytes},
            ])
            data = _extract_json(response.text.strip())
        except Exception as e:
            if self._audit:
                await self._audit.log_external_service_error("gemini", str(e))
            return None, SCAN_FAILED_MESSAGE

        if data.get("amount") is None:
            return None, SCAN_FAILED_MESSAGE

        try:
            extraction = ReceiptExtraction(
                amount=parse_amount(data["amount"]),
                category=parse_category(data.get("category")),
                note=str(data.get("note") or "")[:200],
            )
        except (ValueError, ValidationError):
            return None, SCAN_FAILED_MESSAGE

        message = "Receipt read. Please check the values before saving."
        if issues:
            message += " Note: " + "; ".join(issues)
        return extraction, message


# =============================================================================
# INSIGHT AGENT
# =============================================================================

class InsightAgent:
    """
    Generates a two-sentence spending tip from the year's recent expenses.

    The model only sees the user's own logged amounts. It is asked for
    advice, never for numbers to store.
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        app_settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._app = app_settings or get_settings().app
        self._model = model if model is not None else _load_model()
        self._audit = audit_logger

    @property
    def is_configured(self) -> bool:
        return self._model is not None

    def recent_expenses(self, state: BudgetState, year: int) -> list[tuple[str, str]]:
        """Last N logged days of the year, oldest first, as (date, amount)."""
        prefix = f"{year}-"
        keys = sorted(k for k in state.expenses if k.startswith(prefix))
        recent = keys[-self._app.insight_recent_days:]
        return [(k, format(state.expenses[k].normalize(), "f")) for k in recent]

    def build_prompt(self, state: BudgetState, year: int) -> str:
        expenses = self.recent_expenses(state, year)
        name = state.display_name.strip() or "the user"
        symbol = self._app.currency_symbol
        if expenses:
            budget = state.monthly_budget_for(month_key_for_date(expenses[-1][0]))
        else:
            budget = state.default_monthly_budget
        budget_text = format(budget.normalize(), "f")

        return f"""You are a financial advisor for {name}.
Here is their recent daily expense data as [date, amount in {symbol}] pairs,
for a monthly budget of roughly {symbol}{budget_text}:
{json.dumps(expenses)}

Daily expenses cover food, travel and leisure only; rent and bills are tracked separately.
Analyze the spending pattern. Are they on track to stay under {symbol}{budget_text} this month?
Give 1 short, actionable tip in 2 sentences max. Address them by name.
Prefix any monetary value in your answer with {symbol}."""

    async def generate_insight(self, state: BudgetState, year: int) -> SpendingInsight:
        """Ask the model for a tip; fall back to a fixed message on any failure."""
        if self._model is None:
            return SpendingInsight(text=MISSING_API_KEY_MESSAGE, generated=False, year=year)

        try:
            response = await self._model.generate_content_async(self.build_prompt(state, year))
            text = response.text.strip()
            if not text:
                raise ValueError("Empty response")
        except Exception as e:
            if self._audit:
                await self._audit.log_external_service_error("gemini", str(e))
            return SpendingInsight(text=INSIGHT_FAILED_MESSAGE, generated=False, year=year)

        return SpendingInsight(text=text, generated=True, year=year)
