"""
Tests for the receipt scanner and insight generator.

No real Gemini calls: a fake model returns canned text and records the
prompts it was given.
"""

import asyncio
import pytest
from decimal import Decimal
from io import BytesIO

from PIL import Image

from zenbudget.agents import ai_agents
from zenbudget.agents import (
    INSIGHT_FAILED_MESSAGE,
    MISSING_API_KEY_MESSAGE,
    SCAN_FAILED_MESSAGE,
    InsightAgent,
    ReceiptScanAgent,
    ReceiptScanError,
    assess_receipt_image,
    parse_amount,
    parse_category,
)
from zenbudget.audit import AuditLogger
from zenbudget.config import AppSettings
from zenbudget.models.audit import AuditEventType
from zenbudget.models.budget import FixedExpenseCategory, initial_state
from zenbudget.models.receipt import ReceiptImageQuality
from zenbudget.services.storage import InMemoryAuditStorage
from zenbudget.state.mutations import set_expense


class FakeResponse:

    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content_async(self, contents):
        self.calls.append(contents)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


def png_bytes(image):
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def receipt_photo():
    # Full grey range gives normal exposure and contrast
    return png_bytes(Image.linear_gradient("L").resize((600, 900)))


class TestParsing:
    """Tests for model-answer parsing helpers."""

    def test_parse_amount(self):
        assert parse_amount("₹1,234.5") == Decimal("1234.50")
        assert parse_amount(12.3) == Decimal("12.30")
        assert parse_amount(450) == Decimal("450.00")

    def test_parse_amount_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_amount("total unreadable")
        with pytest.raises(ValueError):
            parse_amount("-5")

    def test_parse_amount_rejects_non_finite(self):
        """Test Infinity / NaN (valid JSON numbers) and huge values are rejected."""
        for value in (float("inf"), float("-inf"), float("nan"), Decimal("1e40")):
            with pytest.raises(ValueError):
                parse_amount(value)

    def test_parse_category(self):
        assert parse_category("grocery") == FixedExpenseCategory.GROCERY
        assert parse_category(" Rent ") == FixedExpenseCategory.RENT
        assert parse_category("Electronics") == FixedExpenseCategory.OTHER
        assert parse_category(None) == FixedExpenseCategory.OTHER


class TestImageAssessment:
    """Tests for the PIL quality heuristics."""

    def test_good_photo(self):
        quality, score, issues = assess_receipt_image(receipt_photo())
        assert quality == ReceiptImageQuality.GOOD
        assert score == 1.0
        assert issues == []

    def test_dark_flat_photo_is_poor(self):
        quality, _, issues = assess_receipt_image(png_bytes(Image.new("L", (600, 900), 10)))
        assert quality == ReceiptImageQuality.POOR
        assert any("dark" in issue for issue in issues)

    def test_tiny_dark_photo_is_unusable(self):
        quality, _, _ = assess_receipt_image(png_bytes(Image.new("L", (100, 100), 10)))
        assert quality == ReceiptImageQuality.UNUSABLE

    def test_not_an_image(self):
        quality, score, issues = assess_receipt_image(b"definitely not a png")
        assert quality == ReceiptImageQuality.UNUSABLE
        assert score == 0.0
        assert issues[0].startswith("Could not open image")


class TestReceiptScanAgent:
    """Tests for receipt scanning."""

    def test_scan_extracts_entry(self):
        """Test a fenced JSON answer becomes a proposed entry."""
        model = FakeModel('```json\n{"amount": "₹450.00", "category": "grocery", "note": "Fresh Mart"}\n```')
        agent = ReceiptScanAgent(model=model, app_settings=AppSettings())
        photo = receipt_photo()

        extraction, message = asyncio.run(agent.scan(photo, "image/PNG"))

        assert extraction.amount == Decimal("450.00")
        assert extraction.category == FixedExpenseCategory.GROCERY
        assert extraction.note == "Fresh Mart"
        assert message.startswith("Receipt read")

        prompt, image_part = model.calls[0]
        assert "Grocery, Travel, Rent, Bills, Other" in prompt
        assert image_part == {"mime_type": "image/png", "data": photo}

    def test_unreadable_total(self):
        model = FakeModel('{"amount": null, "category": "Other", "note": ""}')
        agent = ReceiptScanAgent(model=model, app_settings=AppSettings())

        extraction, message = asyncio.run(agent.scan(receipt_photo(), "image/png"))
        assert extraction is None
        assert message == SCAN_FAILED_MESSAGE

    def test_infinite_total_falls_back(self):
        """Test an 'Infinity' amount in the answer gives the fallback message."""
        model = FakeModel('{"amount": Infinity, "category": "Bills", "note": "?"}')
        agent = ReceiptScanAgent(model=model, app_settings=AppSettings())

        extraction, message = asyncio.run(agent.scan(receipt_photo(), "image/png"))
        assert extraction is None
        assert message == SCAN_FAILED_MESSAGE

    def test_model_failure_is_logged(self):
        """Test a failing model call yields the fallback and an audit event."""
        audit = InMemoryAuditStorage()
        agent = ReceiptScanAgent(
            model=FakeModel(error=RuntimeError("deadline exceeded")),
            app_settings=AppSettings(),
            audit_logger=AuditLogger(audit),
        )

        extraction, message = asyncio.run(agent.scan(receipt_photo(), "image/png"))

        assert extraction is None
        assert message == SCAN_FAILED_MESSAGE
        assert audit.events[0].event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
        assert audit.events[0].error_message == "deadline exceeded"

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(ai_agents, "_load_model", lambda temperature=None: None)
        agent = ReceiptScanAgent(app_settings=AppSettings())

        assert agent.is_configured is False
        extraction, message = asyncio.run(agent.scan(receipt_photo(), "image/png"))
        assert extraction is None
        assert message == MISSING_API_KEY_MESSAGE

    def test_rejects_unsupported_type(self):
        agent = ReceiptScanAgent(model=FakeModel(), app_settings=AppSettings())
        with pytest.raises(ReceiptScanError):
            agent.check_image(receipt_photo(), "image/gif")

    def test_rejects_large_upload(self):
        agent = ReceiptScanAgent(model=FakeModel(), app_settings=AppSettings(max_upload_size_mb=1))
        with pytest.raises(ReceiptScanError):
            agent.check_image(b"x" * (1024 * 1024 + 1), "image/png")

    def test_rejects_empty_and_unusable(self):
        """Test an unusable photo never reaches the model."""
        model = FakeModel('{"amount": 1}')
        agent = ReceiptScanAgent(model=model, app_settings=AppSettings())

        with pytest.raises(ReceiptScanError):
            agent.check_image(b"", "image/png")
        with pytest.raises(ReceiptScanError):
            asyncio.run(agent.scan(png_bytes(Image.new("L", (100, 100), 10)), "image/png"))
        assert model.calls == []


class TestInsightAgent:
    """Tests for spending tips."""

    def sample_state(self):
        state = initial_state("Asha")
        state = set_expense(state, "2024-12-30", 999)
        for day, amount in ((1, 120), (2, 80), (3, "45.50")):
            state = set_expense(state, f"2025-01-0{day}", amount)
        return state

    def test_recent_expenses_limited_to_year_and_window(self):
        agent = InsightAgent(model=FakeModel(), app_settings=AppSettings(insight_recent_days=2))
        assert agent.recent_expenses(self.sample_state(), 2025) == [
            ("2025-01-02", "80"),
            ("2025-01-03", "45.5"),
        ]

    def test_prompt_contents(self):
        """Test the prompt names the user, the budget and the currency."""
        agent = InsightAgent(model=FakeModel(), app_settings=AppSettings())
        prompt = agent.build_prompt(self.sample_state(), 2025)

        assert "Asha" in prompt
        assert "₹3100" in prompt
        assert '["2025-01-01", "120"]' in prompt
        assert "2024-12-30" not in prompt
        assert "2 sentences" in prompt

    def test_generate_insight(self):
        model = FakeModel("  Asha, you are on track. Keep lunches under ₹100.  ")
        agent = InsightAgent(model=model, app_settings=AppSettings())

        insight = asyncio.run(agent.generate_insight(self.sample_state(), 2025))

        assert insight.generated is True
        assert insight.text == "Asha, you are on track. Keep lunches under ₹100."
        assert insight.year == 2025
        assert len(model.calls) == 1

    def test_failure_falls_back(self):
        agent = InsightAgent(model=FakeModel(error=RuntimeError("quota")), app_settings=AppSettings())
        insight = asyncio.run(agent.generate_insight(self.sample_state(), 2025))
        assert insight.generated is False
        assert insight.text == INSIGHT_FAILED_MESSAGE

    def test_empty_answer_falls_back(self):
        agent = InsightAgent(model=FakeModel("   "), app_settings=AppSettings())
        insight = asyncio.run(agent.generate_insight(self.sample_state(), 2025))
        assert insight.text == INSIGHT_FAILED_MESSAGE

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(ai_agents, "_load_model", lambda temperature=None: None)
        agent = InsightAgent(app_settings=AppSettings())

        insight = asyncio.run(agent.generate_insight(initial_state(), 2025))
        assert insight.text == MISSING_API_KEY_MESSAGE
        assert insight.generated is False
