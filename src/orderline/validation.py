"""
Input validation utilities.
"""

from datetime import datetime
from decimal import Decimal

from orderline.constants import CUSTOMER_NAME_MAX_LENGTH, NOTE_MAX_LENGTH


class ValidationError(Exception):
    """Raised when validation fails. Nothing has been mutated when this is raised."""

    def __init__(self, message: str, code: str = "VAL_000") -> None:
        super().__init__(message)
        self.code = code


def validate_clock_time(value: str) -> None:
    try:
        datetime.strptime(value, "%H:%M")
    except ValueError:
        raise ValidationError(f"Time must use the HH:MM format, got '{value}'")


def validate_customer_name(name: str | None) -> str:
    """Return the trimmed customer name or raise."""
    if not name or not name.strip():
        raise ValidationError("Customer name is required", code="VAL_004")
    name = name.strip()
    if len(name) > CUSTOMER_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Customer name cannot be more than {CUSTOMER_NAME_MAX_LENGTH} characters",
            code="VAL_004",
        )
    return name


def validate_note(content: str | None) -> str:
    if not content or not content.strip():
        raise ValidationError("Note content is required", code="VAL_005")
    content = content.strip()
    if len(content) > NOTE_MAX_LENGTH:
        raise ValidationError(
            f"Note cannot be more than {NOTE_MAX_LENGTH} characters", code="VAL_005"
        )
    return content


def validate_justification(justification: str | None) -> str:
    """A justification must contain something other than whitespace."""
    if not justification or not justification.strip():
        raise ValidationError(
            "Please provide a reason for deleting this item.", code="VAL_003"
        )
    return justification.strip()


def validate_split_amounts(
    cash_amount: Decimal,
    gcash_amount: Decimal,
    amount_to_settle: Decimal,
    amount_received: Decimal,
) -> None:
    """
    Check a manual split settlement.

    Requirements:
    - Both portions are non-negative
    - The portions add up to exactly the amount being settled
    - The amount received covers the amount being settled
    """
    if cash_amount < 0 or gcash_amount < 0:
        raise ValidationError("Split amounts cannot be negative", code="VAL_002")

    if cash_amount + gcash_amount != amount_to_settle:
        raise ValidationError(
            f"Cash ({cash_amount}) and GCash ({gcash_amount}) must add up to "
            f"{amount_to_settle}",
            code="VAL_002",
        )

    if amount_received < amount_to_settle:
        raise ValidationError(
            f"Amount received ({amount_received}) must cover {amount_to_settle}",
            code="VAL_002",
        )
