"""Shared validation utilities for the application layer.

Wraps the pure domain validators with logging so rejected input shows up in
the logs with enough context to diagnose client bugs.
"""

from ..domain.entities import validate_id, validate_required_text
from ..domain.exceptions import BadRequestError
from ..logging_config import get_logger

logger = get_logger(__name__)


def validate_text_with_logging(
    value: str, field: str, max_length: int, operation: str
) -> None:
    """Validate a required text field, logging the failure.

    Raises:
        BadRequestError: If the value is empty, too long, or contains control
            characters
    """
    try:
        validate_required_text(value, field, max_length)
    except BadRequestError as e:
        logger.warning(
            f"{operation} rejected - invalid {field}",
            field=field,
            value_length=len(value) if value else 0,
            reason=str(e),
        )
        raise


def validate_ids_with_logging(operation: str, **ids: int) -> None:
    """Validate that every given id is a positive integer."""
    for field, value in ids.items():
        try:
            validate_id(value, field)
        except BadRequestError:
            logger.warning(
                f"{operation} rejected - invalid id", field=field, value=value
            )
            raise
