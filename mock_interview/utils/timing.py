"""
Time and progress helpers shared by the controller and prompts.
"""
import time


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def seconds_to_minutes(seconds: float) -> float:
    return seconds / 60.0


def format_duration(minutes: float) -> str:
    """Format a duration in minutes as M:SS."""
    minutes = max(0.0, float(minutes))
    mins = int(minutes)
    secs = int((minutes - mins) * 60)
    return f"{mins}:{secs:02d}"


def progress_percentage(current_index: int, total_sections: int) -> float:
    """Percentage of sections reached, counting the current one."""
    if total_sections <= 0:
        return 0.0
    return min(100.0, (current_index + 1) / total_sections * 100.0)


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))
