"""Settings for the package source switcher."""
from __future__ import annotations

from pydantic_settings import BaseSettings


class SwitcherSettings(BaseSettings):
    """Package, discovery and MCP connection settings."""

    package_name: str = "com.coplaydev.unity-mcp"
    upstream_url: str = "https://github.com/CoplayDev/unity-mcp.git"
    package_subdir: str = "MCPForUnity"
    main_ref: str = "main"
    beta_ref: str = "beta"

    manifest_relpath: str = "Packages/manifest.json"
    search_depth: int = 3

    mcp_url: str = "http://localhost:8080/mcp"
    mcp_timeout: float = 5.0
    instances_uri: str = "mcpforunity://instances"
    project_info_uri: str = "mcpforunity://project/info"

    class Config:
        """Pydantic config."""

        env_prefix = "UPS_"
