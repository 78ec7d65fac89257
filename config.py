"""
Central configuration for the open-order tracker.

All paths, thresholds, and model settings are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. Command-line options
  2. Environment variables
  3. config/tracker_settings.json  (admin-editable, persisted)
  4. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"
DEFAULT_DB_PATH    = DEFAULT_OUTPUT_DIR / "tracker.db"
DEFAULT_EXPORT_DIR = DEFAULT_OUTPUT_DIR / "export"

SETTINGS_FILENAME = "tracker_settings.json"


@dataclass
class Config:
    # --- Risk classification ---
    warning_threshold: int = field(
        default_factory=lambda: int(os.getenv("WARNING_THRESHOLD", "10"))
    )
    # Lines due within this many days (0..threshold) are "warning";
    # overdue lines are always "critical".

    # --- LLM settings (OpenAI-compatible API) ---
    # Ollama (default):   LLM_BASE_URL=http://localhost:11434/v1   LLM_API_KEY=ollama
    # OpenAI:             LLM_BASE_URL=https://api.openai.com/v1   LLM_API_KEY=sk-...
    llm_model: str = field(
        default_factory=lambda: os.getenv("LLM_MODEL", "llama3.2")
    )
    llm_base_url: str = field(
        default_factory=lambda: os.getenv("LLM_BASE_URL", "http://localhost:11434/v1")
    )
    llm_api_key: str = field(
        default_factory=lambda: os.getenv("LLM_API_KEY", "ollama")
    )
    llm_temperature: float = 0.3

    # --- Output settings ---
    output_dir: Path = field(default_factory=lambda: DEFAULT_OUTPUT_DIR)
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )
    export_dir: Path = field(
        default_factory=lambda: Path(os.getenv("EXPORT_DIR", str(DEFAULT_EXPORT_DIR)))
    )

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from tracker_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / SETTINGS_FILENAME
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "warning_threshold": int,
            "llm_model":         str,
            "llm_base_url":      str,
            "llm_temperature":   float,
        }
        # Environment variables still win over the settings file
        _env_names = {
            "warning_threshold": "WARNING_THRESHOLD",
            "llm_model":         "LLM_MODEL",
            "llm_base_url":      "LLM_BASE_URL",
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load %s: %s", SETTINGS_FILENAME, exc)
            return
        for key, val in overrides.items():
            if key not in _type_map or os.getenv(_env_names.get(key, "")):
                continue
            try:
                setattr(self, key, _type_map[key](val))
            except (TypeError, ValueError) as exc:
                logger.warning("Ignoring invalid setting %s=%r: %s", key, val, exc)

    def ensure_output_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.export_dir.mkdir(parents=True, exist_ok=True)
