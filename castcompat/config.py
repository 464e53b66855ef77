"""
Configuration management for castcompat
"""

import yaml
from pathlib import Path
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8765


class LibraryConfig(BaseModel):
    media_root: str = "."
    include_hidden: bool = True
    scan_concurrency: int = 4  # Parallel probes per directory scan


class ProbeConfig(BaseModel):
    ffprobe_path: str = "auto"
    timeout_seconds: float = 30.0


class TranscodingConfig(BaseModel):
    ffmpeg_path: str = "auto"
    output_format: str = "matroska"
    subtitles_supported: str = "auto"  # "auto", "true" or "false"
    # ffmpeg exits 255 when it is interrupted by a signal
    terminated_exit_codes: List[int] = Field(default_factory=lambda: [255])
    chunk_size: int = 65536
    diagnostic_tail_lines: int = 100

    @field_validator("subtitles_supported", mode="before")
    @classmethod
    def _normalize_subtitles_supported(cls, value):
        # YAML reads unquoted true/false as booleans
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value).lower()


class DeviceConfig(BaseModel):
    """Native playback capabilities of the target receiver."""
    video_codecs: List[str] = Field(default_factory=lambda: ["h264"])
    video_profiles: List[str] = Field(default_factory=lambda: ["High"])
    # Level 3.1 is unofficial but plays; ffprobe reports 5.0 as either 5 or 50
    video_levels: List[int] = Field(default_factory=lambda: [31, 41, 42, 5, 50])
    audio_codecs: List[str] = Field(default_factory=lambda: ["aac", "mp3", "vorbis", "opus"])
    containers: List[str] = Field(default_factory=lambda: ["mp4", "webm"])


class SecurityConfig(BaseModel):
    api_key: Optional[str] = None


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file: Optional[str] = None


class CastCompatConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CASTCOMPAT_",
        env_nested_delimiter="__",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    library: LibraryConfig = Field(default_factory=LibraryConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    transcoding: TranscodingConfig = Field(default_factory=TranscodingConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def find_config_file() -> Optional[Path]:
    """Find the configuration file in standard locations."""
    search_paths = [
        Path.cwd() / "castcompat.yaml",
        Path.cwd() / "castcompat.yml",
        Path.cwd() / "config" / "castcompat.yaml",
        Path.home() / ".config" / "castcompat" / "castcompat.yaml",
        Path("/etc/castcompat/castcompat.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def load_config(config_path: Optional[str] = None) -> CastCompatConfig:
    """Load configuration from YAML file or use defaults."""
    config_file = Path(config_path) if config_path else find_config_file()

    if config_file and config_file.exists():
        with open(config_file, "r") as f:
            yaml_data = yaml.safe_load(f) or {}
        return CastCompatConfig(**yaml_data)

    return CastCompatConfig()


# Global config instance
_config: Optional[CastCompatConfig] = None


def get_config() -> CastCompatConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: CastCompatConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
