# services - Orchestration layer between the store and the pure core
from services import (
    identity,
    record_service,
    attachment_service,
    contract_service,
    contact_service,
    settings_service,
)

__all__ = [
    "identity",
    "record_service",
    "attachment_service",
    "contract_service",
    "contact_service",
    "settings_service",
]
