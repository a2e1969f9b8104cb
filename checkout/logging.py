import logging
import sys

import structlog


def get_log_renderer(environment: str):
    """JSON lines for tests and production, pretty console output locally."""
    if environment in ("test", "production"):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)


def configure_logging(environment: str = "development", level: str = "INFO"):
    """Route structlog through stdlib logging with a single handler."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            get_log_renderer(environment),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if environment == "test":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level.upper())

    # uvicorn access lines would otherwise be printed twice
    logging.getLogger("uvicorn.access").handlers.clear()


class CheckoutEvents:
    """Standard names for checkout log events"""

    PAYMENT_INTENT_CREATE = "payment_intent.create"
    PAYMENT_INTENT_CREATE_FAILED = "payment_intent.create_failed"
    CHECKOUT_COMPLETE = "checkout.complete"
    CHECKOUT_FAILED = "checkout.failed"
    TRANSACTION_LOOKUP_FAILED = "transaction.lookup_failed"
    GATEWAY_ERROR = "gateway.error"
    WEBHOOK_SECRET_MISSING = "webhook.secret_missing"
    WEBHOOK_VERIFICATION_FAILED = "webhook.verification_failed"
    WEBHOOK_RECEIVED = "webhook.received"
    WEBHOOK_UNHANDLED = "webhook.unhandled"
    WEBHOOK_HANDLER_FAILED = "webhook.handler_failed"
