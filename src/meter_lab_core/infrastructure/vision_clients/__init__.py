"""
Vision client package

Provides a unified interface to each vision-inference provider.
"""

from meter_lab_core.infrastructure.vision_clients.base import VisionClient
from meter_lab_core.infrastructure.vision_clients.factory import create_client
from meter_lab_core.domain.value_objects import VisionResponse

__all__ = ["VisionClient", "VisionResponse", "create_client"]
