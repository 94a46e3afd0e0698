"""Configuration management with YAML and environment variable support"""

import os
from typing import Any, Dict, List, Optional, Tuple, Type

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class BaseConfigSection(BaseSettings):
    """Base class for all config sections with correct environment variable precedence.

    Environment variables have highest priority, then init kwargs (YAML data),
    then default values.
    """

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority: env vars > init kwargs > defaults."""
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


class ServerConfig(BaseConfigSection):
    """Server configuration"""

    host: str = "127.0.0.1"
    port: int = 8000

    model_config = SettingsConfigDict(env_prefix="REELFEED_SERVER_")


class StorageConfig(BaseConfigSection):
    """Local video cache configuration"""

    cache_dir: str = os.path.join(os.path.expanduser("~"), ".cache", "reelfeed", "cached_videos")
    container: str = "videos"

    model_config = SettingsConfigDict(env_prefix="REELFEED_STORAGE_")

    @field_validator("container")
    @classmethod
    def validate_container(cls, v: str) -> str:
        v = v.strip("/")
        if not v:
            raise ValueError("container must not be empty")
        return v


class FirebaseConfig(BaseConfigSection):
    """Firebase Storage bucket configuration"""

    bucket: Optional[str] = None
    credentials_path: Optional[str] = None  # falls back to application default credentials
    signed_url_ttl: int = 3600  # seconds

    model_config = SettingsConfigDict(env_prefix="REELFEED_FIREBASE_")


class FunctionsConfig(BaseConfigSection):
    """Callable cloud functions configuration"""

    base_url: Optional[str] = None  # e.g. https://us-central1-<project>.cloudfunctions.net
    id_token: Optional[str] = None
    generate_function: str = "imageToVideoFunc"
    status_function: str = "getTaskFunc"
    delete_function: str = "deleteTaskFunc"

    model_config = SettingsConfigDict(env_prefix="REELFEED_FUNCTIONS_")


class TimeoutsConfig(BaseConfigSection):
    """Network operation timeouts"""

    listing: float = 30  # seconds
    metadata: float = 10
    download: float = 300
    functions: float = 60

    model_config = SettingsConfigDict(env_prefix="REELFEED_TIMEOUTS_")

    @field_validator("listing", "metadata", "download", "functions")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v


class GenerationConfig(BaseConfigSection):
    """Video generation request limits"""

    max_prompt_length: int = 512  # UTF-16 code units
    allowed_durations: List[int] = Field(default_factory=lambda: [5, 10])
    allowed_ratios: List[str] = Field(default_factory=lambda: ["1280:768", "768:1280"])
    default_duration: int = 5
    default_ratio: str = "768:1280"

    model_config = SettingsConfigDict(env_prefix="REELFEED_GENERATION_")


class PlaybackConfig(BaseConfigSection):
    """Playback configuration"""

    start_muted: bool = False

    model_config = SettingsConfigDict(env_prefix="REELFEED_PLAYBACK_")


class LoggingConfig(BaseConfigSection):
    """Logging configuration"""

    level: str = "INFO"
    format: str = "json"

    model_config = SettingsConfigDict(env_prefix="REELFEED_LOGGING_")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError("format must be 'json' or 'console'")
        return v


class MonitoringConfig(BaseConfigSection):
    """Monitoring configuration"""

    metrics_enabled: bool = True

    model_config = SettingsConfigDict(env_prefix="REELFEED_MONITORING_")


class TestingConfig(BaseConfigSection):
    """Test mode configuration"""

    test_mode: bool = False

    model_config = SettingsConfigDict(env_prefix="REELFEED_TESTING_")


class Config(BaseSettings):
    """Main application configuration"""

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    firebase: FirebaseConfig = Field(default_factory=FirebaseConfig)
    functions: FunctionsConfig = Field(default_factory=FunctionsConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    testing: TestingConfig = Field(default_factory=TestingConfig)

    model_config = SettingsConfigDict(env_prefix="REELFEED_")


class ConfigService:
    """Service for loading and managing configuration"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.environ.get("REELFEED_CONFIG", "config.yaml")
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from YAML file with environment variable overrides."""
        config_data: Dict[str, Any] = {}

        if os.path.exists(self.config_path):
            with open(self.config_path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f)
                if yaml_data:
                    config_data = yaml_data

        self._config = Config(
            server=ServerConfig(**config_data.get("server", {})),
            storage=StorageConfig(**config_data.get("storage", {})),
            firebase=FirebaseConfig(**config_data.get("firebase", {})),
            functions=FunctionsConfig(**config_data.get("functions", {})),
            timeouts=TimeoutsConfig(**config_data.get("timeouts", {})),
            generation=GenerationConfig(**config_data.get("generation", {})),
            playback=PlaybackConfig(**config_data.get("playback", {})),
            logging=LoggingConfig(**config_data.get("logging", {})),
            monitoring=MonitoringConfig(**config_data.get("monitoring", {})),
            testing=TestingConfig(**config_data.get("testing", {})),
        )

        return self._config

    def validate(self) -> bool:
        """Validate the loaded configuration"""
        if self._config is None:
            raise ValueError("Configuration not loaded. Call load() first.")

        if not self._config.testing.test_mode and not self._config.firebase.bucket:
            raise ValueError("A Firebase Storage bucket must be configured")

        generation = self._config.generation
        if generation.default_duration not in generation.allowed_durations:
            raise ValueError("generation.default_duration must be one of allowed_durations")
        if generation.default_ratio not in generation.allowed_ratios:
            raise ValueError("generation.default_ratio must be one of allowed_ratios")

        return True

    @property
    def config(self) -> Config:
        """Get the loaded configuration"""
        if self._config is None:
            raise ValueError("Configuration not loaded. Call load() first.")
        return self._config
