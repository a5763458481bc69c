from dotenv import load_dotenv
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, Optional, Union
from pathlib import Path
import json
import logging
import os

from pagescore.constants import (
    BONUS_MULTIPLIER,
    BONUS_THRESHOLD,
    CATEGORY_WEIGHTS,
    CRITICAL_PENALTY_MULTIPLIER,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    TEXT_LENGTH_CHANGE_RATIO,
)

load_dotenv()  # Loads variables from .env file

logger = logging.getLogger(__name__)

THRESHOLD_ENV_PREFIX = "PAGESCORE_THRESHOLD_"


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    LOG_LEVEL = os.getenv("PAGESCORE_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("PAGESCORE_LOG_FILE")
    USER_AGENT = os.getenv("PAGESCORE_USER_AGENT", DEFAULT_USER_AGENT)
    TIMEOUT = int(os.getenv("PAGESCORE_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)))
    CACHE_TTL_SECONDS = float(
        os.getenv("PAGESCORE_CACHE_TTL_SECONDS", str(DEFAULT_CACHE_TTL_SECONDS))
    )
    CACHE_MAX_SIZE = int(os.getenv("PAGESCORE_CACHE_MAX_SIZE", str(DEFAULT_CACHE_MAX_SIZE)))
    DEBOUNCE_SECONDS = float(
        os.getenv("PAGESCORE_DEBOUNCE_SECONDS", str(DEFAULT_DEBOUNCE_SECONDS))
    )


settings = Settings()


@dataclass
class AnalysisOptions:
    """Selects which sub-analyses run and how the cache is used."""
    include_meta_tags: bool = True
    include_headings: bool = True
    include_content: bool = True
    include_images: bool = True
    include_links: bool = True
    include_performance: bool = True
    use_cache: bool = True
    force_refresh: bool = False
    enable_realtime: bool = False


@dataclass
class ScoringOptions:
    """Knobs of the penalty/bonus scoring model."""
    critical_penalty: float = CRITICAL_PENALTY_MULTIPLIER
    bonus_threshold: float = BONUS_THRESHOLD
    bonus_multiplier: float = BONUS_MULTIPLIER
    category_weights: Dict[str, float] = field(
        default_factory=lambda: dict(CATEGORY_WEIGHTS)
    )


@dataclass
class CacheOptions:
    """Cache sizing and expiry."""
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    max_size: int = DEFAULT_CACHE_MAX_SIZE

    @classmethod
    def from_env(cls) -> "CacheOptions":
        """Build cache options from PAGESCORE_CACHE_* settings."""
        return cls(ttl_seconds=settings.CACHE_TTL_SECONDS, max_size=settings.CACHE_MAX_SIZE)


@dataclass
class MonitorOptions:
    """Change monitor timing and sensitivity."""
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    text_change_ratio: float = TEXT_LENGTH_CHANGE_RATIO

    @classmethod
    def from_env(cls) -> "MonitorOptions":
        """Build monitor options from PAGESCORE_DEBOUNCE_SECONDS."""
        return cls(debounce_seconds=settings.DEBOUNCE_SECONDS)


@dataclass
class FetchOptions:
    """Options for downloading a single page."""
    user_agent: str = DEFAULT_USER_AGENT
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> "FetchOptions":
        return cls(user_agent=settings.USER_AGENT, timeout=settings.TIMEOUT)


@dataclass
class AnalysisThresholds:
    """Configurable thresholds used by the default rule catalog."""

    # Technical
    title_min_length: int = 30
    title_max_length: int = 60
    title_too_short_length: int = 10
    meta_description_min: int = 120
    meta_description_max: int = 160

    # Content
    min_word_count: int = 300
    thin_content_word_count: int = 100
    min_readability: float = 30.0
    min_text_html_ratio: float = 15.0
    min_internal_links: int = 3
    max_internal_links: int = 100
    min_external_links: int = 1
    max_external_links: int = 10
    max_keyword_density: float = 5.0

    # Performance
    max_page_size_bytes: int = 2_000_000
    max_load_time_ms: float = 3000.0
    max_missing_alt_ratio: float = 0.10
    max_resource_count: int = 100

    def _coerce(self, field_name: str, raw) -> Union[int, float]:
        """Convert a raw env or file value to the field's numeric type."""
        kind = type(getattr(self, field_name))
        if kind is int:
            return int(float(raw)) if isinstance(raw, float) else int(raw)
        return float(raw)

    def _apply(self, values: Dict[str, object], source: str) -> "AnalysisThresholds":
        for field_name in self.__dataclass_fields__:
            if field_name not in values:
                continue
            try:
                setattr(self, field_name, self._coerce(field_name, values[field_name]))
            except (TypeError, ValueError):
                logger.warning(
                    f"Ignoring invalid threshold {field_name}={values[field_name]!r} from {source}"
                )
        return self

    @classmethod
    def from_env(cls) -> "AnalysisThresholds":
        """Load thresholds from PAGESCORE_THRESHOLD_* environment variables.

        e.g. PAGESCORE_THRESHOLD_MIN_WORD_COUNT=500. Unparseable values keep
        their default and are logged.
        """
        values = {}
        for field_name in cls.__dataclass_fields__:
            raw = os.getenv(f"{THRESHOLD_ENV_PREFIX}{field_name.upper()}")
            if raw is not None:
                values[field_name] = raw
        return cls()._apply(values, "environment")

    @classmethod
    def from_file(cls, path: str, base: Optional["AnalysisThresholds"] = None) -> "AnalysisThresholds":
        """Load thresholds from a JSON file.

        The file may hold the values at top level or under a "thresholds"
        key (the shape save_to_file writes). Unknown keys are ignored.

        Args:
            path: Path to JSON configuration file
            base: Thresholds to start from, defaults otherwise

        Returns:
            A new AnalysisThresholds; base is left untouched

        Raises:
            ValueError: If the file is not a JSON object
        """
        thresholds = replace(base) if base is not None else cls()
        file_path = Path(path)
        if not file_path.exists():
            logger.debug(f"No thresholds file at {file_path}, using defaults")
            return thresholds

        config = json.loads(file_path.read_text(encoding='utf-8'))
        if not isinstance(config, dict):
            raise ValueError(f"Thresholds file {file_path} must contain a JSON object")

        section = config.get('thresholds', config)
        return thresholds._apply(section, str(file_path))

    def to_dict(self) -> Dict[str, Union[int, float]]:
        return asdict(self)

    def save_to_file(self, path: str) -> None:
        """Write the thresholds as {"thresholds": {...}} JSON."""
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(json.dumps({'thresholds': self.to_dict()}, indent=2), encoding='utf-8')


default_thresholds = AnalysisThresholds()
