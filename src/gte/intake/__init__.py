from gte.intake.evidence import Fingerprints, StoredEvidence, fingerprint_files, store_files
from gte.intake.rate_limit import RateLimiter
from gte.intake.service import GrievanceService

__all__ = [
    "Fingerprints",
    "GrievanceService",
    "RateLimiter",
    "StoredEvidence",
    "fingerprint_files",
    "store_files",
]
