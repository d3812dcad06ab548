"""
BridgeWatch Configuration
=========================

This module handles configuration loading for the border camera agent.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    BRIDGEWATCH_STREAM_URL          -> stream.url
    BRIDGEWATCH_FFMPEG_BIN          -> stream.ffmpeg_bin
    BRIDGEWATCH_TICK_INTERVAL       -> scheduler.tick_interval_seconds
    BRIDGEWATCH_REFRESH_AFTER       -> scheduler.refresh_after_seconds
    BRIDGEWATCH_MAX_BUFFER_SIZE     -> buffer.max_buffer_size
    BRIDGEWATCH_MIN_FRAME_BYTES     -> quality.min_frame_bytes
    BRIDGEWATCH_CLASSIFIER_BACKEND  -> classifier.backend
    BRIDGEWATCH_VLM_MODEL           -> classifier.vlm.model
    BRIDGEWATCH_DETECTOR_BACKEND    -> detector.backend
    BRIDGEWATCH_FAILURE_THRESHOLD   -> health.failure_threshold
    BRIDGEWATCH_STUCK_THRESHOLD     -> health.stuck_threshold
    BRIDGEWATCH_PERSISTENCE_DIR     -> persistence.directory (also enables it)
    BRIDGEWATCH_LOG_LEVEL           -> logging.level
    PORT                            -> server.port (Cloud Run)

Every numeric threshold in the pipeline (blur byte cutoff, failure and
stuck counts, freshness windows, trend dead-band) lives here so it can be
tuned without code changes.

Example:
    from bridgewatch.config import settings

    print(settings.stream.url)
    print(settings.health.failure_threshold)
"""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="bridgewatch-agent", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class StreamConfig(BaseModel):
    """Live stream and frame-grab subprocess configuration."""

    url: str = Field(
        default=(
            "https://5c50a1c26792b.streamlock.net/live/"
            "ngrp:MaseruBridge.stream_all/playlist.m3u8"
        ),
        description="HLS/RTSP URL of the camera stream",
    )
    ffmpeg_bin: str = Field(default="ffmpeg", description="ffmpeg executable")
    scale_width: int = Field(
        default=800,
        ge=64,
        description="Width the grabbed still is scaled to (height keeps aspect)",
    )
    jpeg_quality: int = Field(
        default=2,
        ge=1,
        le=31,
        description="ffmpeg -q:v value (1 = best)",
    )
    capture_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Inner timeout: ffmpeg is asked to terminate after this",
    )
    kill_timeout_seconds: float = Field(
        default=25.0,
        gt=0,
        description="Outer timeout: ffmpeg is hard-killed after this",
    )

    @model_validator(mode="after")
    def _check_timeouts(self) -> "StreamConfig":
        if self.kill_timeout_seconds <= self.capture_timeout_seconds:
            raise ValueError(
                "kill_timeout_seconds must be greater than capture_timeout_seconds"
            )
        return self


class SchedulerConfig(BaseModel):
    """Adaptive capture scheduler configuration."""

    tick_interval_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Seconds between background capture ticks",
    )
    refresh_after_seconds: float = Field(
        default=180.0,
        gt=0,
        description="Re-commit an unchanged angle once its last commit is older than this",
    )
    log_every_n_ticks: int = Field(
        default=10,
        ge=1,
        description="Log a scheduler summary every N ticks",
    )


class BufferConfig(BaseModel):
    """Frame buffer, preservation and selection configuration."""

    max_buffer_size: int = Field(
        default=12,
        ge=1,
        description="Capacity of the rolling frame buffer",
    )
    analysis_frames: int = Field(
        default=3,
        ge=1,
        description="Maximum frames handed to downstream analysis",
    )
    fresh_window_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Max age of a preserved frame used for automated analysis",
    )
    display_window_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Max age of a preserved frame still worth showing",
    )


class QualityConfig(BaseModel):
    """Blur/blackout pre-filter configuration."""

    min_frame_bytes: int = Field(
        default=15000,
        ge=0,
        description="JPEG stills smaller than this are treated as blurred or black",
    )
    sharpness_threshold: float = Field(
        default=0.0,
        ge=0,
        description="Minimum Laplacian variance (0 disables the decode check)",
    )


class MockClassifierConfig(BaseModel):
    """Mock classifier configuration."""

    sequence: List[str] = Field(
        default_factory=lambda: ["bridge", "processing", "wide"],
        description="Categories returned in rotation",
    )


class VisionClassifierConfig(BaseModel):
    """Google Cloud Vision label-detection classifier configuration."""

    credentials_path: Optional[str] = Field(
        default=None,
        description="Service account JSON (None = application default credentials)",
    )
    min_label_score: float = Field(default=0.5, ge=0, le=1.0)
    keywords: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            "bridge": ["bridge", "river", "girder bridge", "beam bridge"],
            "processing": ["canopy", "roof", "shed", "parking", "shade"],
            "wide": ["gas station", "filling station", "signage", "highway", "road"],
        },
        description="Label keywords mapped to view categories (first match wins)",
    )


class VLMClassifierConfig(BaseModel):
    """OpenAI-compatible vision-language classifier configuration."""

    model: str = Field(default="gpt-4o-mini", description="Model name")
    base_url: Optional[str] = Field(default=None, description="API base URL")
    api_key_env: str = Field(
        default="OPENAI_API_KEY",
        description="Environment variable holding the API key",
    )
    max_tokens: int = Field(default=10, ge=1)
    temperature: float = Field(default=0.0, ge=0, le=2.0)


class ClassifierConfig(BaseModel):
    """View classifier configuration."""

    backend: str = Field(
        default="mock",
        description="Classifier backend: 'mock', 'vision' or 'vlm'",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Classification calls longer than this map to 'useless'",
    )
    mock: MockClassifierConfig = Field(default_factory=MockClassifierConfig)
    vision: VisionClassifierConfig = Field(default_factory=VisionClassifierConfig)
    vlm: VLMClassifierConfig = Field(default_factory=VLMClassifierConfig)


class HealthConfig(BaseModel):
    """Camera health monitor configuration."""

    failure_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive capture failures that mark the camera DOWN",
    )
    stuck_threshold: int = Field(
        default=10,
        ge=2,
        description="Identical consecutive classifications that mark it STUCK",
    )
    history_size: int = Field(
        default=10,
        ge=2,
        description="Angle history length (raised to stuck_threshold if smaller)",
    )


class TrendConfig(BaseModel):
    """Directional trend tracker configuration."""

    directions: List[str] = Field(
        default_factory=lambda: ["ls_to_sa", "sa_to_ls"],
        description="Direction keys reported by the detector",
    )
    window_size: int = Field(default=20, ge=2, description="Readings kept")
    sub_window: int = Field(
        default=6,
        ge=2,
        description="Trailing readings used by summarize()",
    )
    min_samples: int = Field(default=2, ge=2)
    dead_band: int = Field(
        default=2,
        ge=0,
        description="Count deltas within +/- this are 'stable'",
    )
    slow_mean: float = Field(default=8.0, ge=0)
    very_slow_mean: float = Field(default=15.0, ge=0)
    low_variance: float = Field(default=2.0, ge=0)
    moving_well_variance: float = Field(default=6.0, ge=0)

    @model_validator(mode="after")
    def _check_windows(self) -> "TrendConfig":
        if self.sub_window > self.window_size:
            raise ValueError("sub_window must not exceed window_size")
        if self.min_samples > self.sub_window:
            raise ValueError("min_samples must not exceed sub_window")
        return self


class DetectorConfig(BaseModel):
    """External vehicle detector configuration."""

    backend: str = Field(
        default="none",
        description="Vehicle detector: 'none', 'mock' or 'vision'",
    )
    split_x: float = Field(
        default=0.5,
        gt=0,
        lt=1.0,
        description="Normalised x splitting the two directions in the bridge view",
    )
    vehicle_labels: List[str] = Field(
        default_factory=lambda: ["car", "truck", "bus", "van", "vehicle", "motorcycle"],
    )
    min_score: float = Field(default=0.5, ge=0, le=1.0)
    credentials_path: Optional[str] = Field(default=None)
    mock_counts: Dict[str, int] = Field(
        default_factory=lambda: {"ls_to_sa": 3, "sa_to_ls": 2},
    )


class PersistenceConfig(BaseModel):
    """Preserved-frame persistence configuration."""

    enabled: bool = Field(default=False, description="Persist preserved frames")
    directory: str = Field(
        default="./data/preserved",
        description="Directory holding one JPEG + JSON sidecar per category",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for BridgeWatch.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    buffer: BufferConfig = Field(default_factory=BufferConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    trend: TrendConfig = Field(default_factory=TrendConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_url := os.environ.get("BRIDGEWATCH_STREAM_URL"):
        config_data.setdefault("stream", {})["url"] = env_url
    if env_bin := os.environ.get("BRIDGEWATCH_FFMPEG_BIN"):
        config_data.setdefault("stream", {})["ffmpeg_bin"] = env_bin

    # Scheduler settings
    if env_tick := os.environ.get("BRIDGEWATCH_TICK_INTERVAL"):
        config_data.setdefault("scheduler", {})["tick_interval_seconds"] = float(env_tick)
    if env_refresh := os.environ.get("BRIDGEWATCH_REFRESH_AFTER"):
        config_data.setdefault("scheduler", {})["refresh_after_seconds"] = float(env_refresh)

    # Buffer and quality
    if env_size := os.environ.get("BRIDGEWATCH_MAX_BUFFER_SIZE"):
        config_data.setdefault("buffer", {})["max_buffer_size"] = int(env_size)
    if env_bytes := os.environ.get("BRIDGEWATCH_MIN_FRAME_BYTES"):
        config_data.setdefault("quality", {})["min_frame_bytes"] = int(env_bytes)

    # Classifier and detector backends
    if env_backend := os.environ.get("BRIDGEWATCH_CLASSIFIER_BACKEND"):
        config_data.setdefault("classifier", {})["backend"] = env_backend
    if env_model := os.environ.get("BRIDGEWATCH_VLM_MODEL"):
        config_data.setdefault("classifier", {}).setdefault("vlm", {})["model"] = env_model
    if env_detector := os.environ.get("BRIDGEWATCH_DETECTOR_BACKEND"):
        config_data.setdefault("detector", {})["backend"] = env_detector

    # Health thresholds
    if env_fail := os.environ.get("BRIDGEWATCH_FAILURE_THRESHOLD"):
        config_data.setdefault("health", {})["failure_threshold"] = int(env_fail)
    if env_stuck := os.environ.get("BRIDGEWATCH_STUCK_THRESHOLD"):
        config_data.setdefault("health", {})["stuck_threshold"] = int(env_stuck)

    # Persistence
    if env_dir := os.environ.get("BRIDGEWATCH_PERSISTENCE_DIR"):
        persistence = config_data.setdefault("persistence", {})
        persistence["directory"] = env_dir
        persistence["enabled"] = True

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("BRIDGEWATCH_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("BRIDGEWATCH_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
