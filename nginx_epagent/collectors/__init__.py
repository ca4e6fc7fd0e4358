from .nginx_collector import NginxStatusCollector, StatusResponse

__all__ = [
    "NginxStatusCollector",
    "StatusResponse",
]
