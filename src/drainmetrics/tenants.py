from __future__ import annotations

import secrets
from typing import Iterable, Mapping, Optional, Tuple

from fastapi.security import HTTPBasicCredentials
from pydantic import BaseModel, ConfigDict


class ConfigError(Exception):
    """Raised when the environment does not describe a runnable service."""


class TenantContext(BaseModel):
    """What the pipeline needs to know about the tenant owning a request."""
    model_config = ConfigDict(frozen=True)

    name: str
    tags: Tuple[str, ...] = ()
    prefix: str = ""   # empty or dot-terminated


class Tenant(BaseModel):
    model_config = ConfigDict(frozen=True)

    password: str
    context: TenantContext

    @property
    def name(self) -> str:
        return self.context.name


def _normalize_prefix(prefix: str) -> str:
    if prefix and not prefix.endswith("."):
        prefix += "."
    return prefix


def load_tenants(environ: Mapping[str, str]) -> Tuple[Tenant, ...]:
    """
    ALLOWED_APPS=shop,blog
    SHOP_PASSWORD=...        (required)
    SHOP_TAGS=env:prod,team:a (optional)
    SHOP_PREFIX=shop          (optional, "." appended)
    """
    allowed = environ.get("ALLOWED_APPS", "")
    names = [n.strip() for n in allowed.split(",") if n.strip()]
    if not names:
        raise ConfigError("Environment variable ALLOWED_APPS required")

    out = []
    for name in names:
        env_name = name.upper()

        password_var = f"{env_name}_PASSWORD"
        password = environ.get(password_var)
        if not password:
            raise ConfigError(f"Environment variable {password_var} required")

        raw_tags = environ.get(f"{env_name}_TAGS")
        tags = [t.strip() for t in raw_tags.split(",") if t.strip()] if raw_tags else []
        tags.append(f"app:{name}")

        prefix = _normalize_prefix(environ.get(f"{env_name}_PREFIX", ""))

        out.append(Tenant(
            password=password,
            context=TenantContext(name=name, tags=tuple(tags), prefix=prefix),
        ))
    return tuple(out)


def authenticate(
    credentials: Optional[HTTPBasicCredentials], tenants: Iterable[Tenant]
) -> Optional[TenantContext]:
    if credentials is None:
        return None
    for tenant in tenants:
        if tenant.name == credentials.username and secrets.compare_digest(
            tenant.password.encode("utf-8"), credentials.password.encode("utf-8")
        ):
            return tenant.context
    return None
