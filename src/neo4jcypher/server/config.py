# src/neo4jcypher/server/config.py
"""
Connection settings for a Neo4j REST endpoint.
"""

import os
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from neo4jcypher import __version__


DEFAULT_URL = "http://localhost:7474"


class EndpointConfig(BaseModel):
    """
    Settings shared by every request a session makes.

    Caller overrides are merged over the defaults, so
    ``EndpointConfig(timeout=5)`` keeps the default URL and user agent.
    """

    url: str = Field(default=DEFAULT_URL, min_length=1, description="Server root URL")
    auth: Optional[Tuple[str, str]] = Field(default=None, description="(username, password) for basic auth")
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    stream: bool = Field(default=False, description="Ask the server to stream results (X-Stream)")
    verify: bool = Field(default=True, description="Verify TLS certificates")
    user_agent: str = Field(default=f"Neo4jCypher/{__version__}")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra request headers")

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "url": "http://localhost:7474",
                "auth": ["neo4j", "secret"],
                "timeout": 10,
            }
        },
    )

    @field_validator("url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Endpoint URL must be http(s), got {v!r}")
        return v

    def request_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json; charset=UTF-8",
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.stream:
            headers["X-Stream"] = "true"
        headers.update(self.headers)
        return headers

    @classmethod
    def from_env(cls, **overrides: Any) -> "EndpointConfig":
        """
        Build a config from ``NEO4J_URL``, ``NEO4J_USER`` and ``NEO4J_PASSWORD``.

        Keyword overrides win over the environment.
        """
        values: Dict[str, Any] = {}
        if os.environ.get("NEO4J_URL"):
            values["url"] = os.environ["NEO4J_URL"]
        user = os.environ.get("NEO4J_USER")
        if user:
            values["auth"] = (user, os.environ.get("NEO4J_PASSWORD", ""))
        values.update(overrides)
        return cls(**values)


__all__ = ["DEFAULT_URL", "EndpointConfig"]
