"""
Common utilities for the FoodSaver client.

Modules:
- api_client: REST client with bearer-token and 401 hooks
- models: envelope and payload models
- config: environment-driven client configuration
- validation: login/registration form checks
- logging_config: JSON log formatting with credential redaction
"""

__all__ = [
    "api_client",
    "config",
    "logging_config",
    "models",
    "validation",
]
