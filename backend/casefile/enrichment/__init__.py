"""External lookup clients and the enrichment orchestrator.

Each client normalizes its provider's response into the typed outcomes in
:mod:`casefile.models.outcomes`.  The orchestrator drives them over a
profile and folds their results back through functional updates.
"""

from .breaches import BreachClient, classify_breach_severity, get_default_limiter
from .brokers import generate_broker_check_urls
from .company import CompanyLookup
from .geocoder import Geocoder
from .orchestrator import (
    EnrichmentClients,
    EnrichmentOrchestrator,
    EnrichmentRunResult,
    build_clients,
)
from .rate_limit import RateLimiter
from .social import SocialVerifier, supports_automated_verification

__all__ = [
    "BreachClient",
    "classify_breach_severity",
    "get_default_limiter",
    "generate_broker_check_urls",
    "CompanyLookup",
    "Geocoder",
    "EnrichmentClients",
    "EnrichmentOrchestrator",
    "EnrichmentRunResult",
    "build_clients",
    "RateLimiter",
    "SocialVerifier",
    "supports_automated_verification",
]
