"""Configuration management using Pydantic Settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal
from urllib.parse import quote

import yaml
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Plain DB_* variables understood by earlier deployments of the server.
LEGACY_DATABASE_ENV = {
    "DB_HOST": "host",
    "DB_PORT": "port",
    "DB_USER": "user",
    "DB_PASSWORD": "password",
    "DB_NAME": "dbname",
    "DB_SSLMODE": "sslmode",
}


class DatabaseConfig(BaseModel):
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = "password"
    dbname: str = "mydb"
    sslmode: str = "disable"
    min_pool_size: int = 1
    max_pool_size: int = 10
    connect_timeout: float = 10.0

    @property
    def dsn(self) -> str:
        """Connection string handed to asyncpg."""
        user = quote(self.user, safe="")
        password = quote(self.password, safe="")
        return (
            f"postgresql://{user}:{password}@{self.host}:{self.port}/{self.dbname}"
            f"?sslmode={self.sslmode}"
        )

    @property
    def target(self) -> str:
        """Password-free description of the database, for logs."""
        return f"{self.user}@{self.host}:{self.port}/{self.dbname}"


class QueryConfig(BaseModel):
    timeout: float = 30.0
    schema_name: str = "public"


class PolicyConfig(BaseModel):
    schema_hint_mode: Literal["auto", "sqlstate", "substring"] = "auto"
    schema_hint_keywords: list[str] = ["column", "table"]
    extra_deny_patterns: dict[str, str] = {}


class ServerConfig(BaseModel):
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PGMCP_",
        env_nested_delimiter="__",
    )

    database: DatabaseConfig = DatabaseConfig()
    query: QueryConfig = QueryConfig()
    policy: PolicyConfig = PolicyConfig()
    server: ServerConfig = ServerConfig()
    tools_modules: list[str] = ["pgmcp.tools"]

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        # PGMCP_* variables win over values read from the YAML file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load(cls, config_path: Path | None = None) -> Settings:
        """Load settings from YAML file, overlay DB_* variables, then PGMCP_* env vars."""
        data: dict = {}
        if config_path and config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}

        legacy = {
            field: os.environ[var]
            for var, field in LEGACY_DATABASE_ENV.items()
            if os.environ.get(var)
        }
        if legacy:
            data["database"] = {**(data.get("database") or {}), **legacy}
        return cls(**data)


def get_project_root() -> Path:
    """Walk up from CWD to find pyproject.toml, or fall back to CWD."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return current


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from the given file or the project root's config/settings.yaml."""
    if config_path is None:
        config_path = get_project_root() / "config" / "settings.yaml"
    return Settings.load(config_path)
