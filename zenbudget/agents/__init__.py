"""AI Agents package."""

from zenbudget.agents.ai_agents import (
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

__all__ = [
    "INSIGHT_FAILED_MESSAGE",
    "MISSING_API_KEY_MESSAGE",
    "SCAN_FAILED_MESSAGE",
    "InsightAgent",
    "ReceiptScanAgent",
    "ReceiptScanError",
    "assess_receipt_image",
    "parse_amount",
    "parse_category",
]
