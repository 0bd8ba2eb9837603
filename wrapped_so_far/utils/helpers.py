"""
Utility functions and helpers for Wrapped-So-Far
Formatting helpers shared by the insight derivations and the CLI report
"""

from datetime import datetime
from typing import Union


def format_duration(seconds: Union[int, float]) -> str:
    """Clock-style duration, m:ss below an hour and h:mm:ss above; negatives clamp to 0:00"""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_duration_ms(milliseconds: Union[int, float]) -> str:
    """Format a millisecond duration such as a track length"""
    return format_duration(milliseconds / 1000)


def format_hour_label(hour: int) -> str:
    """
    Twelve-hour clock label for an hour of the day

    Args:
        hour: Hour in 0..23

    Returns:
        Label such as "12 AM", "9 AM", "12 PM" or "5 PM"
    """
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


def format_percentage(value: Union[int, float], decimals: int = 1) -> str:
    """Format a value already on a 0-100 scale, without renormalizing it"""
    return f"{value:.{decimals}f}%"


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """Shorten text to max_length characters, suffix included"""
    if len(text) <= max_length:
        return text
    keep = max_length - len(suffix)
    return text[:keep] + suffix if keep > 0 else suffix[:max_length]


def format_timestamp(timestamp: datetime) -> str:
    """
    Format a timestamp for display in local time

    Args:
        timestamp: Aware or naive datetime

    Returns:
        Formatted timestamp string
    """
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone()
    return timestamp.strftime("%Y-%m-%d %H:%M:%S")
