from .base import EntropySample, EntropySource
from .http_api import HttpBeaconSource

__all__ = [
    "EntropySample",
    "EntropySource",
    "HttpBeaconSource",
]
