"""Pydantic configuration models for the nginx EPAgent forwarder."""

import socket
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class MonitoringConfig(BaseModel):
    """Poll loop configuration."""
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    source: Optional[str] = None  # Defaults to the local hostname
    timeout_seconds: Optional[float] = Field(default=10.0, gt=0)  # None = no timeout

    @property
    def resolved_source(self) -> str:
        """Source identifier used in every metric path."""
        return self.source or socket.gethostname()


class NginxStatusConfig(BaseModel):
    """Configuration for the nginx status page."""
    url: str = "http://127.0.0.1/nginx_status"
    username: Optional[str] = None
    password: Optional[str] = None
    strict_ssl: bool = True

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v


class EPAgentConfig(BaseModel):
    """EPAgent RESTful interface location."""
    host: str = "localhost"
    port: int = Field(default=8080, ge=1, le=65535)
    path: str = "/apm/metricFeed"

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"


class ProxyConfig(BaseModel):
    """Outbound proxy for the ATC API."""
    type: Literal["none", "http", "https"] = "none"
    host: Optional[str] = None
    port: int = Field(default=3128, ge=1, le=65535)

    @model_validator(mode='after')
    def host_required_when_enabled(self) -> 'ProxyConfig':
        """A proxy type other than 'none' needs a host."""
        if self.type != "none" and not self.host:
            raise ValueError(f"Proxy type '{self.type}' requires a proxy host")
        return self

    @property
    def url(self) -> Optional[str]:
        if self.type == "none":
            return None
        return f"http://{self.host}:{self.port}"


class ATCConfig(BaseModel):
    """CA APM ATC API configuration for topology and extension registration."""
    enabled: bool = False
    host: str = "localhost"
    port: int = Field(default=8443, ge=1, le=65535)
    connection: Literal["http", "https"] = "https"
    token: str = ""
    agent_name: str = ""
    config_version: str = "1.0"
    refresh_topology_ms: int = Field(default=3600000, ge=0)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)

    @property
    def base_url(self) -> str:
        return f"{self.connection}://{self.host}:{self.port}"


class AgentConfig(BaseModel):
    """Root configuration model for the forwarder."""
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    nginx: NginxStatusConfig
    epagent: EPAgentConfig = Field(default_factory=EPAgentConfig)
    atc: ATCConfig = Field(default_factory=ATCConfig)
