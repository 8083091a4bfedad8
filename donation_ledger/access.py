"""Mini README: Role rules applied by the ledger services.

Structure:
    * Actor - the already authenticated caller (user id and role).
    * ADMIN_ONLY / STAFF / ANY_ROLE - role groups used by the services.
    * require_role - refuse callers outside a role group.
    * require_book_assignment / require_receipt_owner - cash collector limits.

Authentication happens outside the core; callers arrive as an ``Actor``.
Administrators manage users and restores. Administrators and managers run
the day to day bookkeeping. Cash collectors may only add receipts to books
assigned to them and edit receipts they entered themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .domain import Receipt, ReceiptBook, Role
from .errors import PermissionDenied

ADMIN_ONLY: Tuple[Role, ...] = (Role.ADMIN,)
STAFF: Tuple[Role, ...] = (Role.ADMIN, Role.MANAGER)
ANY_ROLE: Tuple[Role, ...] = tuple(Role)


@dataclass(frozen=True, slots=True)
class Actor:
    """Identity and role of the caller performing an operation."""

    user_id: str
    role: Role

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "role", Role(self.role))
        except ValueError as error:
            raise PermissionDenied(f"Unknown role '{self.role}'") from error

    @property
    def is_collector(self) -> bool:
        return self.role is Role.CASH_COLLECTOR


def require_role(actor: Optional[Actor], allowed: Tuple[Role, ...], action: str) -> Actor:
    """Return ``actor`` when its role is in ``allowed`` or raise ``PermissionDenied``."""

    if actor is None:
        raise PermissionDenied(f"Authentication is required to {action}")
    if actor.role not in allowed:
        raise PermissionDenied(f"Role '{actor.role.value}' may not {action}")
    return actor


def require_book_assignment(actor: Actor, book: ReceiptBook) -> None:
    if actor.is_collector and book.assigned_to != actor.user_id:
        raise PermissionDenied("You can only add receipts to assigned receipt books")


def require_receipt_owner(actor: Actor, receipt: Receipt) -> None:
    if actor.is_collector and receipt.entered_by != actor.user_id:
        raise PermissionDenied("You can only edit receipts you created")
