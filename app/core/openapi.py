"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- API key security schemes (``X-API-Key`` header or ``key`` query parameter)
- Admin key security scheme (``X-Admin-Key``) for the admin endpoints
- Per-path overrides so health/test endpoints are documented as public

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

PUBLIC_PATH_SUFFIXES = ("/health", "/test")

SECURITY_SCHEMES: Dict[str, Dict[str, str]] = {
    "ApiKeyHeader": {
        "type": "apiKey",
        "in": "header",
        "name": "X-API-Key",
        "description": "Provide your API key via the X-API-Key header.",
    },
    "ApiKeyQuery": {
        "type": "apiKey",
        "in": "query",
        "name": "key",
        "description": "Alternatively, pass the API key as the `key` query parameter.",
    },
    "AdminKey": {
        "type": "apiKey",
        "in": "header",
        "name": "X-Admin-Key",
        "description": "Admin credential required by /admin endpoints.",
    },
}

TAGS = [
    {"name": "Lookup", "description": "Phone number lookups proxied to the upstream API."},
    {"name": "Admin", "description": "Runtime key administration."},
    {"name": "Health", "description": "Liveness checks."},
]


def _security_for_path(path: str) -> list[dict[str, list]]:
    if path.endswith(PUBLIC_PATH_SUFFIXES):
        return []
    if path.startswith("/admin"):
        return [{"AdminKey": []}]
    return [{"ApiKeyHeader": []}, {"ApiKeyQuery": []}]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and security.

    - Injects components.securitySchemes for client and admin keys
    - Sets per-operation security: public for health/test, admin key for
      /admin paths, client API key (header or query) for everything else
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        for name, scheme in SECURITY_SCHEMES.items():
            security_schemes.setdefault(name, scheme)

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            security = _security_for_path(path)
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = security

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
