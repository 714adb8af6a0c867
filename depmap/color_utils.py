#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Colorama wrapper utilities for colored terminal output."""

import os
import sys
from typing import Optional, TextIO

from colorama import Fore, Style, init

from .scoring import Category

# Keep escape codes when stdout is piped, color can be switched off explicitly
init(autoreset=False, strip=False)


class Colors:
    """Color codes for terminal output."""

    RED = Fore.RED
    GREEN = Fore.GREEN
    YELLOW = Fore.YELLOW
    BLUE = Fore.BLUE
    MAGENTA = Fore.MAGENTA
    CYAN = Fore.CYAN
    WHITE = Fore.WHITE

    RESET = Style.RESET_ALL
    BRIGHT = Style.BRIGHT
    DIM = Style.DIM


CATEGORY_COLORS = {
    Category.EASY: Colors.GREEN,
    Category.MEDIUM: Colors.YELLOW,
    Category.HARD: Colors.RED,
}

_color_enabled = "NO_COLOR" not in os.environ


def set_color_enabled(enabled: bool) -> None:
    """Switch colored output on or off for the whole process."""
    global _color_enabled  # pylint: disable=global-statement
    _color_enabled = enabled


def is_color_enabled() -> bool:
    return _color_enabled


def colored(text: str, color: str = "", style: str = "") -> str:
    """Return colored text string.

    Args:
        text: Text to colorize
        color: Color code (e.g., Colors.RED)
        style: Style code (e.g., Colors.BRIGHT)

    Returns:
        Formatted string with color codes, or text unchanged when color is disabled
    """
    if not _color_enabled or not (color or style):
        return text
    return f"{style}{color}{text}{Colors.RESET}"


def colored_category(category: Category, text: Optional[str] = None) -> str:
    """Text (default: the category name) in the color of an extraction category."""
    return colored(text if text is not None else category.value, CATEGORY_COLORS[category])


def print_colored(text: str, color: str = "", style: str = "", file: Optional[TextIO] = None) -> None:
    if file is None:
        file = sys.stdout
    print(colored(text, color, style), file=file)


def print_success(text: str, file: Optional[TextIO] = None) -> None:
    """Print success message in green."""
    print_colored(text, Colors.GREEN, file=file)


def print_error(text: str, file: Optional[TextIO] = None, prefix: bool = True) -> None:
    """Print error message in red to stderr.

    Args:
        text: Error message to print
        file: File object (default: sys.stderr)
        prefix: If True, prepend "Error: " to message
    """
    if file is None:
        file = sys.stderr
    print_colored(f"Error: {text}" if prefix else text, Colors.RED, file=file)


def print_warning(text: str, file: Optional[TextIO] = None, prefix: bool = True) -> None:
    """Print warning message in yellow to stderr."""
    if file is None:
        file = sys.stderr
    print_colored(f"Warning: {text}" if prefix else text, Colors.YELLOW, file=file)


def print_info(text: str, file: Optional[TextIO] = None) -> None:
    """Print info message in cyan."""
    print_colored(text, Colors.CYAN, file=file)


def print_highlight(text: str, file: Optional[TextIO] = None) -> None:
    """Print highlighted text in bright white."""
    print_colored(text, Colors.WHITE, Colors.BRIGHT, file=file)
