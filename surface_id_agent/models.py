"""
Data models for the Surface ID Agent.

Configuration entities are pydantic models validated at load time; the
per-event surface identity is a plain frozen dataclass.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# The host reports 0xFFFFFFFF for "no id"; it can never be configured.
INVALID_SURFACE_ID = 0xFFFFFFFF
MAX_SURFACE_ID = INVALID_SURFACE_ID - 1

REDIS_SERVER_IP = "127.0.0.1"
REDIS_SERVER_PORT = 6379


class SurfaceRule(BaseModel):
    """One [desktop-app] record binding app id and/or title to a surface id."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    surface_id: int = Field(
        ...,
        alias="surface-id",
        ge=0,
        le=MAX_SURFACE_ID,
        description="Surface id assigned on match",
    )
    app_id: Optional[str] = Field(None, alias="app-id", description="Exact application id")
    title: Optional[str] = Field(None, alias="app-title", description="Exact window title")

    @field_validator('surface_id', mode='before')
    @classmethod
    def reject_non_integer_id(cls, v):
        """Refuse floats and booleans that pydantic would otherwise coerce."""
        if isinstance(v, bool) or isinstance(v, float):
            raise ValueError(f"surface-id must be an integer, got {v!r}")
        return v

    def has_pattern(self) -> bool:
        """Check if at least one matching attribute is specified."""
        return self.app_id is not None or self.title is not None

    def matches(self, identity: "SurfaceIdentity") -> bool:
        """Exact, case-sensitive comparison of every set pattern."""
        if self.app_id is not None and identity.app_id != self.app_id:
            return False
        if self.title is not None and identity.title != self.title:
            return False
        return True

    def describe(self) -> str:
        parts = []
        if self.app_id is not None:
            parts.append(f"app-id={self.app_id!r}")
        if self.title is not None:
            parts.append(f"app-title={self.title!r}")
        return f"{self.surface_id} <- {' '.join(parts) or '<empty>'}"


class DefaultRange(BaseModel):
    """[desktop-app-default] record: ids handed out to unmatched surfaces."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    start: int = Field(..., alias="default-surface-id", ge=0, le=MAX_SURFACE_ID)
    max: int = Field(..., alias="default-surface-id-max", ge=0, le=MAX_SURFACE_ID)

    @model_validator(mode='after')
    def validate_bounds(self):
        """The cursor lives in [start, max], so start may not exceed max."""
        if self.start > self.max:
            raise ValueError(
                f"default-surface-id ({self.start}) is greater than "
                f"default-surface-id-max ({self.max})"
            )
        return self

    def contains(self, surface_id: int) -> bool:
        return self.start <= surface_id < self.max


class RegistryEndpoint(BaseModel):
    """[redis-server] record. A missing host disables registry mirroring."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    host: Optional[str] = Field(REDIS_SERVER_IP, alias="server")
    port: int = Field(REDIS_SERVER_PORT, ge=1, le=65535)
    socket_timeout: float = Field(1.0, alias="socket-timeout", gt=0)

    @field_validator('host')
    @classmethod
    def normalize_host(cls, v: Optional[str]) -> Optional[str]:
        """Empty string and the literal "off" both mean disabled."""
        if v is None:
            return None
        v = v.strip()
        if not v or v == "off":
            return None
        return v

    @property
    def enabled(self) -> bool:
        return self.host is not None

    @classmethod
    def disabled(cls) -> "RegistryEndpoint":
        return cls(host=None)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}" if self.enabled else "off"


class AgentConfig(BaseModel):
    """Complete agent configuration produced by the loader."""

    rules: List[SurfaceRule] = Field(default_factory=list)
    default_range: Optional[DefaultRange] = None
    registry: RegistryEndpoint = Field(default_factory=RegistryEndpoint)
    log_level: str = Field("INFO", description="Logging level name")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v


@dataclass(frozen=True)
class SurfaceIdentity:
    """Attributes of a surface at the time of one configure event."""

    app_id: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_attributes(cls, app_id: Optional[str], title: Optional[str]) -> "SurfaceIdentity":
        """Build a snapshot, falling back to the title when there is no app id."""
        if app_id is None and title is not None:
            app_id = title
        return cls(app_id=app_id, title=title)

    @property
    def is_empty(self) -> bool:
        return self.app_id is None and self.title is None


class FailureReason(str, Enum):
    """Why a configure event ended without an id."""
    NO_MATCH = "no_match"
    RULE_OCCUPIED = "rule_occupied"
    ID_REJECTED = "id_rejected"
    DEFAULT_COLLISION = "default_collision"
    RANGE_EXHAUSTED = "range_exhausted"
    HOST_ERROR = "host_error"


@dataclass(frozen=True)
class AssignmentFailure:
    """One failed assignment, kept for diagnostics."""

    surface: object
    identity: SurfaceIdentity
    reason: FailureReason
    surface_id: Optional[int] = None
