"""
Configuration management for CodeCanvas.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "codecanvas.yaml"

DEFAULT_CAPABILITIES = ["numpy", "pandas", "matplotlib", "scipy", "sympy"]

# Modules that generated code may not import
DEFAULT_BLOCKED_MODULES = [
    "os",
    "sys",
    "subprocess",
    "shutil",
    "pathlib",
    "importlib",
    "ctypes",
    "multiprocessing",
    "threading",
    "signal",
    "socket",
    "socketserver",
    "ssl",
    "select",
    "urllib",
    "http",
    "requests",
    "ftplib",
    "smtplib",
    "telnetlib",
    "pickle",
    "marshal",
    "shelve",
    "dbm",
    "builtins",
]


@dataclass
class RuntimeConfig:
    """Embedded interpreter runtime configuration."""

    capabilities: list[str] = field(default_factory=lambda: list(DEFAULT_CAPABILITIES))
    timeout_seconds: float | None = 30.0
    blocked_modules: list[str] = field(default_factory=lambda: list(DEFAULT_BLOCKED_MODULES))
    max_output_chars: int = 50_000


@dataclass
class GenerationConfig:
    """Configuration for the code generation collaborator."""

    provider: str = "endpoint"  # endpoint | chat
    endpoint: str = "http://localhost:8888/api/generate"
    base_url: str = "https://api.intelligence.io.solutions/api/v1"
    model: str = "Qwen/Qwen3-235B-A22B-Thinking-2507"
    api_key: str | None = None
    temperature: float = 0.3
    max_tokens: int = 2000
    request_timeout_seconds: float = 120.0
    pre_request_delay_seconds: float = 1.0


@dataclass
class RenderConfig:
    """Configuration for result rendering and exports."""

    artifact_dir: str | None = None
    export_grace_seconds: float = 2.0
    download_prefix: str = "codecanvas-plot"
    output_page: str = "codecanvas-output.html"


@dataclass
class CodeCanvasConfig:
    """Main configuration."""

    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CodeCanvasConfig":
        """Build a configuration from plain nested dictionaries."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        sections = {
            "runtime": RuntimeConfig,
            "generation": GenerationConfig,
            "render": RenderConfig,
        }
        kwargs: dict[str, Any] = {}
        for key, section_cls in sections.items():
            section = data.get(key) or {}
            if not isinstance(section, dict):
                raise ConfigurationError(f"Section '{key}' must be a mapping")
            valid = section_cls.__dataclass_fields__
            unknown = sorted(set(section) - set(valid))
            if unknown:
                raise ConfigurationError(f"Unknown {key} option(s): {', '.join(unknown)}")
            kwargs[key] = section_cls(**section)

        if "log_level" in data:
            kwargs["log_level"] = str(data["log_level"])

        config = cls(**kwargs)
        config._load_api_key_from_env()
        return config

    @classmethod
    def load_from_file(cls, config_path: Path) -> "CodeCanvasConfig":
        """Load configuration from a YAML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path) as f:
                if config_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

        return cls.from_dict(data)

    def _load_api_key_from_env(self) -> None:
        """Fill the generation API key from the environment if not configured."""
        if not self.generation.api_key or self.generation.api_key == "null":
            self.generation.api_key = os.getenv("CODECANVAS_API_KEY") or os.getenv(
                "IOINTELLIGENCE_API_KEY"
            )

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to file. API keys are never written."""
        data = asdict(self)
        data["generation"]["api_key"] = None
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w") as f:
                if config_path.suffix.lower() == ".json":
                    json.dump(data, f, indent=2)
                else:
                    yaml.safe_dump(data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}")


def load_config(config_path: Path | None = None) -> CodeCanvasConfig:
    """
    Load configuration from *config_path*, or from ``codecanvas.yaml`` in the
    working directory when present, falling back to defaults.
    """
    if config_path is not None:
        return CodeCanvasConfig.load_from_file(config_path)

    default_path = Path.cwd() / DEFAULT_CONFIG_FILE
    if default_path.exists():
        return CodeCanvasConfig.load_from_file(default_path)

    config = CodeCanvasConfig()
    config._load_api_key_from_env()
    return config
