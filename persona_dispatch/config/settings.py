"""
Configuration management for the persona dispatch core
"""

import os
import re
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def resolve_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` references"""
    return _ENV_REF.sub(lambda m: os.getenv(m.group(1), m.group(2) or ""), value)


class MatchingConfig(BaseModel):
    """Configuration for trigger matching and selection"""
    min_confidence: float = Field(default=0.15, ge=0.0, le=1.0, description="Minimum score a persona needs to be selected (inclusive; a zero score never selects)")
    example_weight: float = Field(default=0.7, ge=0.0, description="Weight of the best trigger example similarity")
    description_weight: float = Field(default=0.3, ge=0.0, description="Weight of the description similarity")
    hint_bonus: float = Field(default=0.2, ge=0.0, le=1.0, description="Bonus when a task hint matches a trigger term")
    negative_penalty: float = Field(default=0.5, ge=0.0, le=1.0, description="Damping applied by negative trigger examples")
    use_stemming: bool = Field(default=True, description="Apply Porter stemming to terms")
    extra_stopwords: List[str] = Field(default_factory=list, description="Additional stop-words")

    def normalized_weights(self) -> Dict[str, float]:
        """Example/description weights scaled to sum to 1"""
        total = self.example_weight + self.description_weight
        if total <= 0:
            return {"example": 1.0, "description": 0.0}
        return {
            "example": self.example_weight / total,
            "description": self.description_weight / total,
        }


class LoadingConfig(BaseModel):
    """Configuration for loading the persona catalog"""
    source: str = Field(default="./personas", description="Directory or file holding persona definitions")
    file_pattern: str = Field(default="*.md", description="Glob for persona markdown files in a directory source")
    strict_mode: bool = Field(default=False, description="Abort the whole load on the first malformed record")
    allow_empty: bool = Field(default=False, description="Accept a load that yields no personas")
    timeout_seconds: Optional[float] = Field(default=30.0, gt=0, description="Load deadline in seconds, null for none")

    @field_validator('source')
    @classmethod
    def expand_source(cls, v):
        """Resolve environment variables in the source path"""
        return resolve_env_vars(v)


class LoggingConfig(BaseModel):
    """Configuration for logging"""
    level: str = Field(default="INFO", description="Log level")
    log_file: Optional[str] = Field(default=None, description="Log file path")
    console: bool = Field(default=True, description="Log to the console")
    file_logging: bool = Field(default=False, description="Log to ./logs when no log_file is set")

    @field_validator('level')
    @classmethod
    def check_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseModel):
    """Main settings class for the dispatch core"""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    loading: LoadingConfig = Field(default_factory=LoadingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    version: str = Field(default="1.0.0", description="Configuration version")
    environment: str = Field(default="development", description="Environment name")

    def __init__(self, config_path: Optional[str] = None, **kwargs):
        """Initialize settings from config file or kwargs"""
        if config_path:
            config_data = self._load_config_file(config_path)
            config_data.update(kwargs)
            super().__init__(**config_data)
        else:
            super().__init__(**kwargs)

    @staticmethod
    def _load_config_file(config_path: str) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is not None and not isinstance(config_data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")

        return config_data or {}

    def get_catalog_path(self) -> str:
        """Get absolute path of the configured catalog source"""
        return str(Path(self.loading.source).expanduser().resolve())

    def validate_configuration(self) -> List[str]:
        """Validate configuration and return any issues"""
        issues = []

        weights = self.matching.example_weight + self.matching.description_weight
        if weights <= 0:
            issues.append("matching.example_weight and matching.description_weight are both zero")

        if self.matching.min_confidence == 0:
            issues.append("matching.min_confidence is 0: any overlapping persona will be selected")

        source = Path(self.loading.source).expanduser()
        if not source.exists():
            issues.append(f"Catalog source not found: {source}")

        return issues

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary"""
        return self.model_dump(exclude_none=True)

    def save_to_file(self, output_path: str):
        """Save configuration to YAML file"""
        with open(output_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2)

    @classmethod
    def from_default_config(cls) -> "Settings":
        """Create settings from the packaged default configuration file"""
        default_config_path = Path(__file__).parent / "dispatch_config.yaml"
        if default_config_path.exists():
            return cls(config_path=str(default_config_path))
        else:
            return cls()

    @classmethod
    def from_file(cls, config_path: str) -> "Settings":
        """Create settings from configuration file"""
        return cls(config_path=config_path)


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Convenience function to load settings"""
    if config_path:
        return Settings.from_file(config_path)
    else:
        return Settings.from_default_config()


# Global settings instance
_settings: Optional[Settings] = None


def get_settings(config_path: Optional[str] = None, reload: bool = False) -> Settings:
    """Get global settings instance"""
    global _settings

    if _settings is None or reload:
        _settings = load_settings(config_path)

    return _settings
