"""
Credentials Module
Service credentials, connection object and administrator login
"""

from .functions import (
    AdminCredentials,
    create_service_credentials,
    build_connection_object,
    resolve_admin_credentials,
    activation_connection_string,
    service_credentials_json,
)

__all__ = [
    "AdminCredentials",
    "create_service_credentials",
    "build_connection_object",
    "resolve_admin_credentials",
    "activation_connection_string",
    "service_credentials_json",
]
