from typing import List, Optional
from pydantic import BaseModel, Field
import os
from functools import lru_cache


def _split_list(raw: str) -> Optional[List[str]]:
    return [item.strip() for item in raw.split(",") if item.strip()] or None


class Settings(BaseModel):
    # smartctl
    smartctl_path: str = Field(
        default="smartctl",
        description="Path or name of the smartctl binary (smartmontools)",
    )
    smartctl_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single smartctl invocation",
    )
    smart_devices: Optional[List[str]] = Field(
        default=None,
        description="Optional fixed device list, e.g. ['/dev/sda', '/dev/nvme0']; "
        "skips `smartctl --scan` when set",
    )

    # Polling / streaming
    poll_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between two background poll cycles",
    )
    stream_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Default push interval for /api/drives/stream",
    )
    probe_workers: int = Field(
        default=1,
        ge=1,
        description="Number of devices probed in parallel within one cycle",
    )
    include_volumes: bool = Field(
        default=True,
        description="Collect free/used space per mounted volume in each cycle",
    )

    # HTTP / logging
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level name",
    )

    @classmethod
    def from_env(cls) -> "Settings":
        raw_include_volumes = os.getenv("INCLUDE_VOLUMES", "true").strip().lower()

        return cls(
            smartctl_path=os.getenv("SMARTCTL_PATH", "smartctl"),
            smartctl_timeout_seconds=float(os.getenv("SMARTCTL_TIMEOUT", "30")),
            smart_devices=_split_list(os.getenv("SMART_DEVICES", "")),
            poll_interval_seconds=float(os.getenv("POLL_INTERVAL", "30")),
            stream_interval_seconds=float(os.getenv("STREAM_INTERVAL", "10")),
            probe_workers=int(os.getenv("PROBE_WORKERS", "1")),
            include_volumes=raw_include_volumes not in ("0", "false", "no", "off"),
            cors_origins=_split_list(os.getenv("CORS_ORIGINS", "")) or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
