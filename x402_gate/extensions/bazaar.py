"""Bazaar discovery extension.

Lets a route describe the shape of its endpoint (example input, output and
JSON schemas) so facilitators can catalogue it. The description travels in
the ``extensions["bazaar"]`` entry of every 402 challenge.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

BAZAAR = "bazaar"

BodyType = Literal["json", "form-data", "text"]

_JSON_SCHEMA = "https://json-schema.org/draft/2020-12/schema"


@dataclass
class OutputConfig:
    """Example response and optional JSON schema for it."""

    example: Any | None = None
    schema: dict[str, Any] | None = None


def declare_discovery_extension(
    input: dict[str, Any] | None = None,
    input_schema: dict[str, Any] | None = None,
    body_type: BodyType | None = None,
    output: OutputConfig | dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Declare a bazaar discovery extension for a route.

    Query-style endpoints (GET, HEAD, DELETE) omit ``body_type``; body-style
    endpoints (POST, PUT, PATCH) pass it.

    Args:
        input: Example query parameters or request body.
        input_schema: JSON schema for the input.
        body_type: Body content type for body-style endpoints.
        output: Output example/schema, as OutputConfig or a dict.

    Returns:
        ``{"bazaar": {"info": ..., "schema": ...}}`` ready to put in a
        route's ``extensions``.
    """
    if isinstance(output, dict):
        output = OutputConfig(example=output.get("example"), schema=output.get("schema"))

    if body_type is None:
        info_input: dict[str, Any] = {"type": "http"}
        if input:
            info_input["queryParams"] = input
        input_props: dict[str, Any] = {
            "type": {"type": "string", "const": "http"},
            "method": {"type": "string", "enum": ["GET", "HEAD", "DELETE"]},
        }
        if input_schema:
            input_props["queryParams"] = {"type": "object", **input_schema}
        required = ["type"]
    else:
        info_input = {"type": "http", "bodyType": body_type, "body": input or {}}
        input_props = {
            "type": {"type": "string", "const": "http"},
            "method": {"type": "string", "enum": ["POST", "PUT", "PATCH"]},
            "bodyType": {"type": "string", "enum": ["json", "form-data", "text"]},
            "body": input_schema or {"properties": {}},
        }
        required = ["type", "bodyType", "body"]

    info: dict[str, Any] = {"input": info_input}
    schema_properties: dict[str, Any] = {
        "input": {
            "type": "object",
            "properties": input_props,
            "required": required,
            "additionalProperties": False,
        }
    }

    if output and output.example is not None:
        info["output"] = {"type": "json", "example": output.example}
        example_schema: dict[str, Any] = {"type": "object"}
        if output.schema:
            example_schema.update(output.schema)
        schema_properties["output"] = {
            "type": "object",
            "properties": {"type": {"type": "string"}, "example": example_schema},
            "required": ["type"],
        }

    return {
        BAZAAR: {
            "info": info,
            "schema": {
                "$schema": _JSON_SCHEMA,
                "type": "object",
                "properties": schema_properties,
                "required": ["input"],
            },
        }
    }


class BazaarResourceServerExtension:
    """Adds the request's HTTP method to a declared discovery extension.

    Usage:
        ```python
        server = x402ResourceServer(facilitator_client)
        server.register_extension(bazaar_resource_server_extension)
        ```
    """

    key = BAZAAR

    def enrich_declaration(self, declaration: Any, transport_context: Any) -> Any:
        method = getattr(transport_context, "method", None)
        if not isinstance(method, str) or not isinstance(declaration, dict):
            return declaration

        ext = dict(declaration)
        info = dict(ext.get("info") or {})
        info["input"] = {**(info.get("input") or {}), "method": method.upper()}
        ext["info"] = info

        schema = ext.get("schema")
        if isinstance(schema, dict):
            input_schema = dict(schema.get("properties", {}).get("input", {}))
            required = list(input_schema.get("required", []))
            if "method" not in required:
                required.append("method")
            input_schema["required"] = required
            ext["schema"] = {
                **schema,
                "properties": {**schema.get("properties", {}), "input": input_schema},
            }

        return ext


# Singleton instance for convenience
bazaar_resource_server_extension = BazaarResourceServerExtension()
