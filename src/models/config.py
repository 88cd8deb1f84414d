"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    secrets_file: Optional[str] = None
    resolution: List[int] = field(default_factory=lambda: [1280, 720])
    fps: int = 30
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            secrets_file=d.get("secrets_file"),
            resolution=d.get("resolution", [1280, 720]),
            fps=d.get("fps", 30),
            swap_rb=d.get("swap_rb", False),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "secrets_file": self.secrets_file,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class HogConfig:
    """OpenCV HOG people detector configuration."""
    win_stride: int = 8
    padding: int = 8
    scale: float = 1.05
    hit_threshold: float = 0.0
    max_width: int = 640

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "HogConfig":
        return cls(
            win_stride=d.get("win_stride", 8),
            padding=d.get("padding", 8),
            scale=d.get("scale", 1.05),
            hit_threshold=d.get("hit_threshold", 0.0),
            max_width=d.get("max_width", 640),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "win_stride": self.win_stride,
            "padding": self.padding,
            "scale": self.scale,
            "hit_threshold": self.hit_threshold,
            "max_width": self.max_width,
        }


@dataclass
class YoloConfig:
    """YOLO detector configuration (person class only)."""
    model: str = ""
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    person_class_id: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "YoloConfig":
        return cls(
            model=d.get("model", ""),
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            person_class_id=d.get("person_class_id", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "person_class_id": self.person_class_id,
        }


@dataclass
class DetectionConfig:
    """Detection configuration."""
    backend: str = "hog"
    hog: HogConfig = field(default_factory=HogConfig)
    yolo: Optional[YoloConfig] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        yolo_dict = d.get("yolo")
        return cls(
            backend=d.get("backend", "hog"),
            hog=HogConfig.from_dict(d.get("hog") or {}),
            yolo=YoloConfig.from_dict(yolo_dict) if yolo_dict else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "backend": self.backend,
            "hog": self.hog.to_dict(),
        }
        if self.yolo:
            d["yolo"] = self.yolo.to_dict()
        return d


@dataclass
class SchedulerConfig:
    """Snapshot scheduler configuration."""
    interval_s: float = 5.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SchedulerConfig":
        return cls(interval_s=float(d.get("interval_s", 5.0)))

    def to_dict(self) -> Dict[str, Any]:
        return {"interval_s": self.interval_s}


@dataclass
class EnvironmentConfig:
    """
    Location + weather lookup configuration.

    provider "static" uses latitude/longitude; "ip" asks ip_url for a fix.
    refresh_interval_s <= 0 means a single refresh at startup.
    """
    provider: str = "ip"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    ip_url: str = "http://ip-api.com/json/"
    weather_url: str = "https://api.open-meteo.com/v1/forecast"
    temperature_unit: str = "celsius"
    timeout_s: float = 10.0
    refresh_interval_s: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EnvironmentConfig":
        return cls(
            provider=d.get("provider", "ip"),
            latitude=d.get("latitude"),
            longitude=d.get("longitude"),
            ip_url=d.get("ip_url", "http://ip-api.com/json/"),
            weather_url=d.get("weather_url", "https://api.open-meteo.com/v1/forecast"),
            temperature_unit=d.get("temperature_unit", "celsius"),
            timeout_s=float(d.get("timeout_s", 10.0)),
            refresh_interval_s=float(d.get("refresh_interval_s", 0.0) or 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "ip_url": self.ip_url,
            "weather_url": self.weather_url,
            "temperature_unit": self.temperature_unit,
            "timeout_s": self.timeout_s,
            "refresh_interval_s": self.refresh_interval_s,
        }


@dataclass
class StorageConfig:
    """Snapshot storage configuration."""
    backend: str = "sqlite"
    local_database_path: str = "data/snapshots.sqlite"
    key_width: int = 3
    write_queue_size: int = 1000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StorageConfig":
        return cls(
            backend=d.get("backend", "sqlite"),
            local_database_path=d.get("local_database_path", "data/snapshots.sqlite"),
            key_width=d.get("key_width", 3),
            write_queue_size=d.get("write_queue_size", 1000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "local_database_path": self.local_database_path,
            "key_width": self.key_width,
            "write_queue_size": self.write_queue_size,
        }


@dataclass
class CloudConfig:
    """
    Firestore configuration.

    Records go to <root_collection>/<root_document>/<history_collection>/<key>;
    the latest record overwrites <root_collection>/<root_document>.
    """
    project_id: str = ""
    credentials_file: str = ""
    root_collection: str = "train-1"
    root_document: str = "carriage-1"
    history_collection: str = "history"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CloudConfig":
        return cls(
            project_id=d.get("project_id", ""),
            credentials_file=d.get("credentials_file", ""),
            root_collection=d.get("root_collection", "train-1"),
            root_document=d.get("root_document", "carriage-1"),
            history_collection=d.get("history_collection", "history"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "credentials_file": self.credentials_file,
            "root_collection": self.root_collection,
            "root_document": self.root_document,
            "history_collection": self.history_collection,
        }


@dataclass
class WebConfig:
    """Status web server configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class DisplayConfig:
    """Local preview configuration."""
    window: bool = False
    preview_fps: int = 15

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DisplayConfig":
        return cls(
            window=d.get("window", False),
            preview_fps=d.get("preview_fps", 15),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"window": self.window, "preview_fps": self.preview_fps}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    cloud: Optional[CloudConfig] = None
    web: WebConfig = field(default_factory=WebConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    log_path: str = "logs/passenger_monitor.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        cloud_dict = d.get("cloud")
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            detection=DetectionConfig.from_dict(d.get("detection") or {}),
            scheduler=SchedulerConfig.from_dict(d.get("scheduler") or {}),
            environment=EnvironmentConfig.from_dict(d.get("environment") or {}),
            storage=StorageConfig.from_dict(d.get("storage") or {}),
            cloud=CloudConfig.from_dict(cloud_dict) if cloud_dict else None,
            web=WebConfig.from_dict(d.get("web") or {}),
            display=DisplayConfig.from_dict(d.get("display") or {}),
            log_path=d.get("log_path", "logs/passenger_monitor.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        d: Dict[str, Any] = {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "environment": self.environment.to_dict(),
            "storage": self.storage.to_dict(),
            "web": self.web.to_dict(),
            "display": self.display.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
        if self.cloud:
            d["cloud"] = self.cloud.to_dict()
        return d
