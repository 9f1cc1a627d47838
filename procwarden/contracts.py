"""Versioned contract identifiers for persisted config and failure payloads."""

ERROR_SCHEMA_V1 = "error.v1"
CONSOLE_CONFIG_SCHEMA_V1 = "console.v1"

SUPPORTED_CONSOLE_CONFIG_SCHEMAS = {
    CONSOLE_CONFIG_SCHEMA_V1,
}
