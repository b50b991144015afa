# Services - wiring and journey rules

from .container import Services, build_services, build_store
from .journey_rules import build_journey, load_procedures

__all__ = [
    "Services",
    "build_services",
    "build_store",
    "build_journey",
    "load_procedures",
]
