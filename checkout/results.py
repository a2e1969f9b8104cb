from enum import Enum
from typing import NamedTuple, Optional
from urllib.parse import urlencode

# Stripe and legacy names are both listed: the show page classifies mapped
# statuses while other callers pass the raw intent status.
TRANSACTION_SUCCESS_STATUSES = frozenset(
    {
        "succeeded",
        "processing",
        "requires_capture",
        "Settled",
        "Authorized",
        "SubmittedForSettlement",
    }
)


class ResultBanner(NamedTuple):
    header: str
    icon: str
    message: str


def is_success(status: str) -> bool:
    return status in TRANSACTION_SUCCESS_STATUSES


def build_result(status: str) -> ResultBanner:
    if is_success(status):
        return ResultBanner(
            header="Sweet Success!",
            icon="success",
            message=(
                "Your test transaction has been successfully processed. "
                "See the Stripe API response and try again."
            ),
        )
    return ResultBanner(
        header="Transaction Failed",
        icon="fail",
        message=(
            f"Your test transaction has a status of {status}. "
            "See the Stripe API response and try again."
        ),
    )


class Notice(str, Enum):
    """Error notices shown on the new checkout page after a redirect."""

    PAYMENT_NOT_COMPLETED = "payment_not_completed"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    PAYMENT_INTENT_REQUIRED = "payment_intent_required"
    REQUIRES_VERIFICATION = "requires_verification"
    PAYMENT_FAILED = "payment_failed"
    PROCESSING_FAILED = "processing_failed"

    def message(self, status: Optional[str] = None) -> str:
        if self is Notice.PAYMENT_FAILED and status is not None:
            return f"Payment failed with status: {status}"
        return NOTICE_MESSAGES[self]

    def location(self, status: Optional[str] = None) -> str:
        """URL of the new checkout page carrying this notice."""
        params = {"error": self.value}
        if status is not None:
            params["status"] = status
        return f"/checkouts/new?{urlencode(params)}"


NOTICE_MESSAGES = {
    Notice.PAYMENT_NOT_COMPLETED: "Payment was not completed",
    Notice.TRANSACTION_NOT_FOUND: "Transaction not found",
    Notice.PAYMENT_INTENT_REQUIRED: "Payment intent ID is required",
    Notice.PAYMENT_FAILED: "Payment failed",
    Notice.REQUIRES_VERIFICATION: "Payment requires additional verification",
    Notice.PROCESSING_FAILED: "Payment processing failed",
}


def resolve_notices(error: Optional[str], status: Optional[str] = None) -> list[str]:
    """Turn the query parameters of a notice redirect back into messages; unknown codes are ignored."""
    if not error:
        return []
    try:
        notice = Notice(error)
    except ValueError:
        return []
    return [notice.message(status)]
