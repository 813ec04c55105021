"""
UI preferences: theme, language and sidebar state
"""

from typing import Tuple

LANGUAGES: Tuple[str, ...] = ("en", "es", "fr")


class UIStore:
    def __init__(self):
        self.is_dark_mode = False
        self.language = "en"
        self.sidebar_collapsed = False

    def toggle_dark_mode(self) -> None:
        self.is_dark_mode = not self.is_dark_mode

    def set_language(self, language: str) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        self.language = language

    def toggle_sidebar(self) -> None:
        self.sidebar_collapsed = not self.sidebar_collapsed
