"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class GeometryConfig(BaseSettings):
    """Geometry engine configuration."""

    model_config = {"env_prefix": "LANDPOOL_GEOMETRY_"}

    earth_radius_m: float = 6378137.0
    degenerate_area_epsilon: float = 1e-9
    min_vertices: int = 3


class NeighborConfig(BaseSettings):
    """Neighbor search configuration."""

    model_config = {"env_prefix": "LANDPOOL_NEIGHBOR_"}

    search_radius_m: float = 5000.0
    page_size: int = 10


class IntegrationConfig(BaseSettings):
    """Integration negotiation configuration."""

    model_config = {"env_prefix": "LANDPOOL_INTEGRATION_"}

    default_term_days: int = 365


class AuditConfig(BaseSettings):
    """Audit logging configuration."""

    model_config = {"env_prefix": "LANDPOOL_AUDIT_"}

    log_dir: str = "data/audit"
    hash_algorithm: str = "sha256"


class ExportConfig(BaseSettings):
    """Agreement export configuration."""

    model_config = {"env_prefix": "LANDPOOL_EXPORT_"}

    template_path: str | None = None
    platform_name: str = "AgriLink"


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "LANDPOOL_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    geometry: GeometryConfig = Field(default_factory=GeometryConfig)
    neighbor: NeighborConfig = Field(default_factory=NeighborConfig)
    integration: IntegrationConfig = Field(default_factory=IntegrationConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
