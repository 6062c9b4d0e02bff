"""
Configuration management for the cloud store.

Contains Pydantic settings that work across local-dev (MinIO), aws-mock
(moto server) and aws-prod deployment modes.
"""

from cloud_store.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
