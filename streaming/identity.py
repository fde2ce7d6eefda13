from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from db.models import UserCredential

from .errors import InconsistentCredential


@dataclass(frozen=True)
class Admin:
    user_id: int


@dataclass(frozen=True)
class Employee:
    user_id: int
    producer_id: int


@dataclass(frozen=True)
class Viewer:
    user_id: int
    account_id: int


Identity = Union[Admin, Employee, Viewer]


def identity_of(credential: UserCredential) -> Identity:
    """Map a credential row onto exactly one identity variant.

    Raises InconsistentCredential when the role and the populated reference disagree.
    """
    role = credential.role
    account_id = credential.account_id
    producer_id = credential.producer_id
    if role == "ADMIN" and account_id is None and producer_id is None:
        return Admin(user_id=credential.user_id)
    if role == "EMPLOYEE" and producer_id is not None and account_id is None:
        return Employee(user_id=credential.user_id, producer_id=producer_id)
    if role == "VIEWER" and account_id is not None and producer_id is None:
        return Viewer(user_id=credential.user_id, account_id=account_id)
    raise InconsistentCredential(f"Inconsistent credential {credential.user_id}: role={role}")


def linked_ids(identity: Identity) -> tuple[int | None, int | None]:
    """Return (account_id, producer_id) for response payloads."""
    if isinstance(identity, Viewer):
        return identity.account_id, None
    if isinstance(identity, Employee):
        return None, identity.producer_id
    return None, None
