#!/usr/bin/env python3
"""
Console output helpers shared by the GCVE admin scripts
Purpose: Coloured status lines with an optional timestamped log file
"""

from datetime import datetime
from pathlib import Path
from typing import Optional


# Color output
# pylint: disable=too-few-public-methods
class Colors:
    """ANSI color codes for terminal output"""

    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[0;34m"
    NC = "\033[0m"  # No Color


_log_file: Optional[Path] = None


def set_log_file(path: Optional[Path]) -> None:
    """Enable (or disable with None) appending messages to a log file"""
    global _log_file
    _log_file = Path(path) if path else None


def log(message: str):
    """Write message to log file if logging is enabled"""
    if _log_file:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        try:
            with open(_log_file, "a", encoding="utf-8") as f:
                f.write(f"[{timestamp}] {message}\n")
        except (IOError, OSError):
            pass  # Silently ignore log write failures


def print_message(color: str, message: str):
    """Print colored message and log it"""
    print(f"{color}{message}{Colors.NC}")
    log(message)

