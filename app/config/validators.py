"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    dispatch = config_dict.get("dispatch", {})
    if isinstance(dispatch, dict):
        # Short intervals mostly produce empty runs against the store
        interval = dispatch.get("interval")
        if isinstance(interval, str):
            try:
                if parse_duration(interval) < 120:
                    warning_messages.append(
                        f"Short dispatch interval ({interval}) will query the store very often"
                    )
            except DurationParseError:
                pass  # reported by model validation

        batch_size = dispatch.get("batch_size")
        if isinstance(batch_size, int) and batch_size > 100:
            warning_messages.append(
                f"Large dispatch batch_size ({batch_size}) makes a single run slow to finish"
            )

        max_sends = dispatch.get("max_concurrent_sends")
        if isinstance(max_sends, int) and max_sends > 16:
            warning_messages.append(
                f"High max_concurrent_sends ({max_sends}) may trip push service rate limits"
            )

    audience = config_dict.get("audience", {})
    if isinstance(audience, dict) and audience.get("include_admins_in_event_audience"):
        warning_messages.append(
            "Administrators will receive every scheduled event notification"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
