"""
Input validation functions for mdpublish.

Provides validation for document titles and content to
ensure they meet requirements before making remote calls.
"""


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Title")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_title(title: str, max_length: int = 255) -> tuple[bool, str]:
    """
    Validate a document title.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not title or not title.strip():
        return (False, format_validation_error("Title", "cannot be empty"))

    if len(title) > max_length:
        return (
            False,
            format_validation_error(
                "Title", f"exceeds maximum length of {max_length} characters"
            ),
        )

    return (True, "")


def validate_content(
    content: str, max_size: int = 1_000_000
) -> tuple[bool, str]:
    """
    Validate document content before it is sent to the remote.

    Args:
        content: The content to validate
        max_size: Maximum size in bytes (default: 1,000,000)

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not content or not content.strip():
        return (
            False,
            format_validation_error("Content", "cannot be empty"),
        )

    content_bytes = len(content.encode("utf-8"))
    if content_bytes > max_size:
        return (
            False,
            format_validation_error(
                "Content", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")
