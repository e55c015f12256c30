"""
Utility functions for logging upstream transport failures.
"""

import logging


def _safe_str(obj) -> str:
    """str(), then repr(), then the bare type name."""
    for convert in (str, repr):
        try:
            return convert(obj)
        except Exception:
            continue
    return f"<{type(obj).__name__}>"


def format_transport_error(exception: Exception) -> str:
    """
    Format the message of a transport exception for callers and logs.

    Some httpx exceptions (read timeouts in particular) carry an empty message;
    the exception class name is used instead so the caller still sees a reason.
    This function never raises.

    Args:
        exception: The exception to format

    Returns:
        A non-empty description of the exception
    """
    if exception is None:
        return "None"
    message = _safe_str(exception).strip()
    if message:
        return message
    return type(exception).__name__


def log_transport_failure(
    logger: logging.Logger,
    method: str,
    url: str,
    exception: Exception,
    level: int = logging.ERROR,
) -> None:
    """
    Log a failed upstream call with method, target URL and error message.
    Logger failures are swallowed; the request path must not depend on them.

    Args:
        logger: The logger instance to use
        method: HTTP method of the outbound request
        url: Target URL of the outbound request
        exception: The transport exception
        level: The logging level to use (default: ERROR)
    """
    message = f"[Proxy] Upstream {method} {url} failed: {format_transport_error(exception)}"
    try:
        logger.log(level, message, exc_info=exception)
    except Exception:
        try:
            logger.log(level, message)
        except Exception:
            pass
