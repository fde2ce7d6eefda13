from .catalog import SeriesDraft, create_series_full
from .countries import ApprovalResult, allocate_next_country_id, approve_country
from .errors import ServiceError
from .identity import Admin, Employee, Identity, Viewer, identity_of

__all__ = [
    "Admin",
    "ApprovalResult",
    "Employee",
    "Identity",
    "SeriesDraft",
    "ServiceError",
    "Viewer",
    "allocate_next_country_id",
    "approve_country",
    "create_series_full",
    "identity_of",
]
