"""Translation settings — the core config plus the JSON settings file."""

import json
import logging
import os
from dataclasses import dataclass, asdict

log = logging.getLogger(__name__)

# Default settings file lives beside main.py, same as the desktop tool
SETTINGS_FILE = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                             "_settings.json")

API_KEY_ENV = "DEEPSEEK_API_KEY"

# Language code -> name used in prompts
LANGUAGE_NAMES = {
    "ja": "Japanese",
    "en": "English",
    "vi": "Vietnamese",
    "zh": "Chinese",
    "ko": "Korean",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "pt": "Portuguese",
    "ru": "Russian",
    "uk": "Ukrainian",
    "th": "Thai",
    "id": "Indonesian",
}

# Shipped defaults for the settings file (the core has none of its own
# beyond batch size and formatting preservation)
DEFAULT_SETTINGS = {
    "source_language": "ja",
    "target_language": "vi",
    "translate_dialogue": True,
    "translate_names": True,
    "translate_descriptions": True,
    "preserve_formatting": True,
    "skip_translated": False,
    "batch_size": 10,
    "batch_delay": 0.5,
    "temperature": 0.3,
    "api_key": "",
    "api_url": "https://api.deepseek.com/v1/chat/completions",
    "model": "deepseek-chat",
}


class ConfigError(ValueError):
    """Raised when a run is refused before any processing starts."""


@dataclass
class TranslationConfig:
    """Options the pipeline consumes for every file."""
    source_language: str
    target_language: str
    translate_dialogue: bool
    translate_names: bool
    translate_descriptions: bool
    skip_translated: bool
    batch_size: int = 10
    preserve_formatting: bool = True


@dataclass
class AppSettings:
    """Full settings: core config plus service connection options."""
    source_language: str = DEFAULT_SETTINGS["source_language"]
    target_language: str = DEFAULT_SETTINGS["target_language"]
    translate_dialogue: bool = True
    translate_names: bool = True
    translate_descriptions: bool = True
    preserve_formatting: bool = True
    skip_translated: bool = False
    batch_size: int = 10
    batch_delay: float = 0.5
    temperature: float = 0.3
    api_key: str = ""
    api_url: str = DEFAULT_SETTINGS["api_url"]
    model: str = DEFAULT_SETTINGS["model"]

    def to_config(self) -> TranslationConfig:
        return TranslationConfig(
            source_language=self.source_language,
            target_language=self.target_language,
            translate_dialogue=self.translate_dialogue,
            translate_names=self.translate_names,
            translate_descriptions=self.translate_descriptions,
            skip_translated=self.skip_translated,
            batch_size=self.batch_size,
            preserve_formatting=self.preserve_formatting,
        )

    def update(self, **overrides):
        """Apply non-None overrides (e.g. from command-line flags)."""
        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(self, key):
                raise ConfigError(f"Unknown setting: {key}")
            setattr(self, key, value)


def load_settings(path: str = SETTINGS_FILE) -> AppSettings:
    """Load settings from a JSON file, falling back to the shipped defaults.

    Unknown keys are ignored so older settings files keep working.  The API
    key from the environment wins over an empty key in the file.
    """
    cfg = dict(DEFAULT_SETTINGS)
    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
    except FileNotFoundError:
        saved = {}
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Ignoring unreadable settings file %s: %s", path, e)
        saved = {}

    if isinstance(saved, dict):
        for key, value in saved.items():
            if key in cfg:
                cfg[key] = value
            else:
                log.debug("Unknown setting %r in %s", key, path)

    settings = AppSettings(**cfg)
    env_key = os.environ.get(API_KEY_ENV, "").strip()
    if env_key and not settings.api_key:
        settings.api_key = env_key
    return settings


def save_settings(settings: AppSettings, path: str = SETTINGS_FILE):
    """Persist settings (API key included) to a JSON file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(settings), f, ensure_ascii=False, indent=2)


def validate_run(settings: AppSettings, files: list, require_key: bool = True):
    """Refuse a run whose configuration cannot work.

    Raises:
        ConfigError: missing API key, no input files, bad batch size or
            unknown language code.
    """
    if require_key and not (settings.api_key or "").strip():
        raise ConfigError(
            f"No API key configured. Set api_key in the settings file "
            f"or the {API_KEY_ENV} environment variable.")
    if not files:
        raise ConfigError("No files to translate.")
    if not isinstance(settings.batch_size, int) or settings.batch_size < 1:
        raise ConfigError(f"Batch size must be a positive integer, got {settings.batch_size!r}")
    for lang in (settings.source_language, settings.target_language):
        if lang not in LANGUAGE_NAMES:
            raise ConfigError(
                f"Unknown language code {lang!r} "
                f"(supported: {', '.join(sorted(LANGUAGE_NAMES))})")
