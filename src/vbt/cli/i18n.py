"""Internationalization module for VBT CLI.

Provides locale detection and help message localization.
Help messages are displayed in Polish for Polish locales,
and in English for all other locales.
"""

import os
from typing import Literal

Locale = Literal["pl", "en"]


def get_locale() -> Locale:
    """Detect locale from environment variables.

    Priority: LC_ALL > LANG
    Returns "pl" for Polish locales (pl_PL, pl), "en" otherwise.
    """
    # LC_ALL takes priority over LANG
    locale_str = os.environ.get("LC_ALL") or os.environ.get("LANG") or ""
    locale_str = locale_str.lower()

    if locale_str.startswith("pl"):
        return "pl"

    return "en"


def get_help(key: str) -> str:
    """Get localized help message for the given key.

    Args:
        key: The message key (e.g., "cli.description")

    Returns:
        Localized help message string

    Raises:
        KeyError: If the key is not found in HELP_MESSAGES
    """
    locale = get_locale()
    return HELP_MESSAGES[key][locale]


# Help messages dictionary with Polish and English translations
HELP_MESSAGES: dict[str, dict[Locale, str]] = {
    # Main CLI
    "cli.description": {
        "pl": "Video Batch Transcoder - lokalna konwersja wideo WebM do MP4",
        "en": "Video Batch Transcoder - local WebM to MP4 video conversion",
    },
    "cli.verbose": {
        "pl": "Wyświetlaj szczegółowe logi (w tym logi silnika)",
        "en": "Show detailed logs (including engine logs)",
    },
    # convert command
    "convert.description": {
        "pl": "Konwertuj pliki wideo do MP4 (H.264/AAC)\n\n"
        "Pliki są konwertowane kolejno, jeden po drugim.\n"
        "Błąd jednego pliku nie przerywa konwersji pozostałych.",
        "en": "Convert video files to MP4 (H.264/AAC)\n\n"
        "Files are converted one after another.\n"
        "A failure of one file does not stop the others.",
    },
    "convert.quality": {
        "pl": "Profil jakości (high, mid, low)",
        "en": "Quality preset (high, mid, low)",
    },
    "convert.output": {
        "pl": "Katalog wyjściowy",
        "en": "Output directory",
    },
    "convert.json": {
        "pl": "Wynik w formacie JSON",
        "en": "Output in JSON format",
    },
    # presets command
    "presets.description": {
        "pl": "Wyświetl dostępne profile jakości",
        "en": "List available quality presets",
    },
    "presets.json": {
        "pl": "Wynik w formacie JSON",
        "en": "Output in JSON format",
    },
    # config command
    "config.description": {
        "pl": "Wyświetl lub zmień konfigurację",
        "en": "Display or modify configuration",
    },
    "config.json": {
        "pl": "Wynik w formacie JSON",
        "en": "Output in JSON format",
    },
    "config.set.description": {
        "pl": "Zmień wartość ustawienia",
        "en": "Modify configuration value",
    },
}

# Status banner messages shown while the engine session changes state
BANNER_MESSAGES: dict[str, dict[Locale, str]] = {
    "engine.loading": {
        "pl": "Ładowanie silnika konwersji...",
        "en": "Loading conversion engine...",
    },
    "engine.ready": {
        "pl": "Silnik konwersji gotowy",
        "en": "Conversion engine ready",
    },
    "engine.fatal": {
        "pl": "Środowisko nie zapewnia izolacji wymaganej przez silnik. "
        "Konwersja nie jest możliwa.",
        "en": "This environment cannot isolate the conversion engine. "
        "Conversion is not possible.",
    },
    "engine.load_failed": {
        "pl": "Nie udało się załadować silnika konwersji. Spróbuj ponownie.",
        "en": "Failed to load the conversion engine. Please try again.",
    },
}


def get_message(key: str) -> str:
    """Get a localized banner message."""
    return BANNER_MESSAGES[key][get_locale()]
