# services/contract_service.py - Rental contract master
#
# Thin layer over the store. Contracts only feed vendor names; no cost
# computation reads them.

import uuid
from typing import TYPE_CHECKING, Iterable

from domain.models import RATE_TYPES, RentalContract

if TYPE_CHECKING:
    from database import RecordStore


def add_contract(store: "RecordStore", data: dict) -> RentalContract:
    """Validate and add a contract. Raises ValueError on invalid input."""
    contract = RentalContract.from_dict({**data, "id": uuid.uuid4().hex[:9]})
    if not contract.company_name.strip():
        raise ValueError("Company name is required")
    if contract.rate_type not in RATE_TYPES:
        raise ValueError(f"Rate type must be one of {', '.join(RATE_TYPES)}")
    if contract.rate_value < 0:
        raise ValueError("Rate value cannot be negative")
    store.save_contracts(store.load_contracts() + [contract])
    return contract


def delete_contract(store: "RecordStore", contract_id: str) -> None:
    contracts = store.load_contracts()
    remaining = [c for c in contracts if c.id != contract_id]
    if len(remaining) == len(contracts):
        raise KeyError(f"No contract with id {contract_id!r}")
    store.save_contracts(remaining)


def search_contracts(contracts: Iterable[RentalContract], term: str) -> list[RentalContract]:
    needle = (term or "").strip().lower()
    return [
        c for c in contracts
        if not needle or needle in c.company_name.lower() or needle in c.equipment_type.lower()
    ]


def vendor_names(contracts: Iterable[RentalContract]) -> list[str]:
    """Distinct vendor names in first-seen order (rental vendor picker)."""
    seen: dict[str, None] = {}
    for c in contracts:
        name = c.company_name.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)
