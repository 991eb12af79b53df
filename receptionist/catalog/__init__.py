from receptionist.catalog.intent_detector import DetectionAction, DetectionResult, detect
from receptionist.catalog.service_catalog import ServiceCatalog

__all__ = [
    "ServiceCatalog",
    "DetectionAction",
    "DetectionResult",
    "detect",
]
