"""
Configuration management using dataclasses for type safety and validation.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any
import yaml
import json
import os
import jsonschema
import logging

logger = logging.getLogger(__name__)

DEFAULT_ALBUM_MAX_SIZE = 5000


@dataclass
class DestinationConfig:
    """Destination service configuration."""
    api_base_url: str
    access_token: Optional[str] = None
    upload_url: Optional[str] = None
    timeout_seconds: float = 60.0
    max_retries: int = 3

    def __post_init__(self):
        """Validate destination configuration and apply environment overrides."""
        if not self.api_base_url:
            raise ValueError("api_base_url is required for the destination service")
        if not self.access_token:
            self.access_token = os.getenv('ALBUM_IMPORT_ACCESS_TOKEN')
        if not self.access_token:
            logger.warning("No access token configured; requests will be unauthenticated")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")


@dataclass
class StorageConfig:
    """Job state storage configuration."""
    base_dir: str

    def __post_init__(self):
        if not self.base_dir:
            raise ValueError("base_dir is required")

    @property
    def base_path(self) -> Path:
        """Get base directory as Path object."""
        return Path(self.base_dir).expanduser()


@dataclass
class ImportConfig:
    """Import loop configuration."""
    album_max_size: int = DEFAULT_ALBUM_MAX_SIZE
    max_workers: Optional[int] = None  # None = auto-detect
    enable_parallel_processing: bool = True
    show_progress: bool = True

    def __post_init__(self):
        if self.album_max_size < 1:
            raise ValueError("album_max_size must be at least 1")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

    @property
    def worker_count(self) -> Optional[int]:
        """Workers for the item loop; 1 when parallel processing is off."""
        if not self.enable_parallel_processing:
            return 1
        return self.max_workers


@dataclass
class TransmogrificationConfig:
    """Destination constraints applied to albums and items before import."""
    album_name_max_length: int = 254
    title_max_length: int = 255
    description_max_length: int = 4096
    forbidden_characters: str = '<>'
    replacement_character: str = '_'
    root_album_id: str = 'transferred-photos'
    root_album_name: str = 'Transferred Photos'

    def __post_init__(self):
        for name in ('album_name_max_length', 'title_max_length', 'description_max_length'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if any(char in self.forbidden_characters for char in self.replacement_character):
            raise ValueError("replacement_character cannot be a forbidden character")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: str = "import.log"
    json: bool = False

    def __post_init__(self):
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid logging level: {self.level}. Must be one of {valid_levels}")


@dataclass
class ImporterConfig:
    """Main importer configuration."""
    destination: DestinationConfig
    storage: StorageConfig
    importing: ImportConfig = field(default_factory=ImportConfig)
    transmogrification: TransmogrificationConfig = field(default_factory=TransmogrificationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: str, validate: bool = True) -> 'ImporterConfig':
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file
            validate: Whether to validate against JSON schema

        Returns:
            ImporterConfig instance
        """
        try:
            with open(config_path, 'r') as f:
                config_dict = yaml.safe_load(f)
        except (yaml.YAMLError, IOError, OSError) as e:
            raise ValueError(f"Failed to load configuration file '{config_path}': {e}") from e

        if config_dict is None:
            raise ValueError(f"Configuration file '{config_path}' is empty or invalid")

        if validate:
            cls._validate_schema(config_dict)

        config_dict = cls._apply_env_overrides(config_dict)

        return cls.from_dict(config_dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ImporterConfig':
        """
        Create configuration from dictionary.

        The ``import`` section is exposed as ``importing`` since ``import``
        is a keyword.
        """
        try:
            return cls(
                destination=DestinationConfig(**config_dict.get('destination', {})),
                storage=StorageConfig(**config_dict.get('storage', {})),
                importing=ImportConfig(**config_dict.get('import', {})),
                transmogrification=TransmogrificationConfig(**config_dict.get('transmogrification', {})),
                logging=LoggingConfig(**config_dict.get('logging', {})),
            )
        except TypeError as e:
            # Missing required or unknown keys
            raise ValueError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _validate_schema(config_dict: Dict[str, Any]) -> None:
        """Validate configuration against JSON schema."""
        try:
            schema_path = Path(__file__).parent / 'config_schema.json'
            if schema_path.exists():
                with open(schema_path, 'r') as f:
                    schema = json.load(f)

                jsonschema.validate(instance=config_dict, schema=schema)
                logger.debug("Configuration validated against schema")
        except jsonschema.ValidationError as e:
            raise ValueError(
                f"Configuration validation failed: {e.message}\n"
                f"Path: {'.'.join(str(p) for p in e.path)}"
            ) from e
        except (IOError, OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load configuration schema for validation: {e}")

    @staticmethod
    def _apply_env_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration dictionary."""
        config = json.loads(json.dumps(config_dict))

        destination = config.setdefault('destination', {})
        env_token = os.getenv('ALBUM_IMPORT_ACCESS_TOKEN')
        if env_token:
            destination['access_token'] = env_token

        env_url = os.getenv('ALBUM_IMPORT_API_BASE_URL')
        if env_url:
            destination['api_base_url'] = env_url

        env_base_dir = os.getenv('ALBUM_IMPORT_BASE_DIR')
        if env_base_dir:
            config.setdefault('storage', {})['base_dir'] = env_base_dir

        return config
