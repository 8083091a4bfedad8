"""Mini README: Users, tasks, expense types and expenses.

Structure:
    * DirectoryService - create/update/list/delete for the reference data
      around the receipt flow.

Only administrators manage users. Administrators and managers maintain
tasks, expense types and expenses; anyone signed in may read them. A task
that already has receipt books or receipts keeps its name: only its status
and description may change, and it cannot be deleted while referenced.
Passwords arrive as opaque stored credentials; hashing belongs to the
authentication layer in front of the core.
"""

from __future__ import annotations

from typing import List, Mapping, Optional

from ..access import ADMIN_ONLY, ANY_ROLE, STAFF, Actor, require_role
from ..domain import Expense, ExpenseType, ExpenseTypeStatus, Role, Task, TaskStatus, User
from ..errors import ReferenceInUseError
from ..logging_utils import get_logger
from .base import LedgerService, apply_changes, newest_first

LOGGER = get_logger(__name__)

USER_EDITABLE = ("username", "password", "full_name", "role", "is_active")
TASK_EDITABLE = ("name", "description", "status")
TASK_EDITABLE_WHEN_REFERENCED = ("description", "status")
EXPENSE_TYPE_EDITABLE = ("name", "description", "status")
EXPENSE_EDITABLE = ("expense_type_id", "amount", "expense_date", "description")


class DirectoryService(LedgerService):
    """Maintain the records receipts and expenses hang off."""

    # Users ---------------------------------------------------------------

    def create_user(
        self,
        actor: Actor,
        *,
        username: str,
        password: str,
        full_name: str,
        role: Role = Role.CASH_COLLECTOR,
        is_active: bool = True,
    ) -> User:
        require_role(actor, ADMIN_ONLY, "manage users")
        user = User(
            username=username,
            password=password,
            full_name=full_name,
            role=role,
            is_active=is_active,
            **self._timestamps(),
        )
        with self._gate.shared():
            stored = self._storage.insert("users", user)
        LOGGER.info("Created user %s with role %s", stored.username, stored.role.value)
        return stored

    def update_user(self, actor: Actor, user_id: str, changes: Mapping[str, object]) -> User:
        require_role(actor, ADMIN_ONLY, "manage users")
        with self._gate.shared():
            user = self._storage.require("users", user_id)
            stored = self._storage.update("users", apply_changes(user, changes, USER_EDITABLE, self._clock))
        LOGGER.info("Updated user %s: %s", user_id, sorted(changes))
        return stored

    def delete_user(self, actor: Actor, user_id: str) -> None:
        require_role(actor, ADMIN_ONLY, "manage users")
        with self._gate.shared():
            self._storage.delete("users", user_id)
        LOGGER.info("Deleted user %s", user_id)

    def list_users(self, actor: Actor) -> List[User]:
        require_role(actor, ADMIN_ONLY, "manage users")
        with self._gate.shared():
            users = self._storage.list("users")
        return newest_first(users)  # type: ignore[arg-type]

    def get_user(self, user_id: str) -> Optional[User]:
        with self._gate.shared():
            return self._storage.get("users", user_id)  # type: ignore[return-value]

    # Tasks ---------------------------------------------------------------

    def create_task(
        self,
        actor: Actor,
        *,
        name: str,
        description: Optional[str] = None,
        status: TaskStatus = TaskStatus.ACTIVE,
    ) -> Task:
        require_role(actor, STAFF, "manage tasks")
        task = Task(name=name, description=description, status=status, created_by=actor.user_id, **self._timestamps())
        with self._gate.shared():
            stored = self._storage.insert("tasks", task)
        LOGGER.info("Created task %s (%s)", stored.name, stored.id)
        return stored

    def update_task(self, actor: Actor, task_id: str, changes: Mapping[str, object]) -> Task:
        """Update a task; once referenced only status and description may change."""

        require_role(actor, STAFF, "manage tasks")
        with self._gate.shared():
            task = self._storage.require("tasks", task_id)
            referenced_by = self._task_references(task_id)
            if referenced_by and set(changes) - set(TASK_EDITABLE_WHEN_REFERENCED):
                raise ReferenceInUseError("tasks", task_id, referenced_by)
            stored = self._storage.update("tasks", apply_changes(task, changes, TASK_EDITABLE, self._clock))
        LOGGER.info("Updated task %s: %s", task_id, sorted(changes))
        return stored

    def _task_references(self, task_id: str) -> Optional[str]:
        for collection in ("receipt_books", "receipts"):
            if self._storage.list(collection, task_id=task_id):
                return collection
        return None

    def delete_task(self, actor: Actor, task_id: str) -> None:
        require_role(actor, STAFF, "manage tasks")
        with self._gate.shared():
            self._storage.delete("tasks", task_id)
        LOGGER.info("Deleted task %s", task_id)

    def list_tasks(self) -> List[Task]:
        with self._gate.shared():
            tasks = self._storage.list("tasks")
        return newest_first(tasks)  # type: ignore[arg-type]

    def get_task(self, task_id: str) -> Task:
        with self._gate.shared():
            return self._storage.require("tasks", task_id)  # type: ignore[return-value]

    # Expense types -------------------------------------------------------

    def create_expense_type(
        self,
        actor: Actor,
        *,
        name: str,
        description: Optional[str] = None,
        status: ExpenseTypeStatus = ExpenseTypeStatus.ACTIVE,
    ) -> ExpenseType:
        require_role(actor, STAFF, "manage expense types")
        expense_type = ExpenseType(
            name=name, description=description, status=status, created_by=actor.user_id, **self._timestamps()
        )
        with self._gate.shared():
            stored = self._storage.insert("expense_types", expense_type)
        LOGGER.info("Created expense type %s", stored.name)
        return stored

    def update_expense_type(self, actor: Actor, expense_type_id: str, changes: Mapping[str, object]) -> ExpenseType:
        require_role(actor, STAFF, "manage expense types")
        with self._gate.shared():
            expense_type = self._storage.require("expense_types", expense_type_id)
            updated = apply_changes(expense_type, changes, EXPENSE_TYPE_EDITABLE, self._clock)
            stored = self._storage.update("expense_types", updated)
        LOGGER.info("Updated expense type %s: %s", expense_type_id, sorted(changes))
        return stored

    def delete_expense_type(self, actor: Actor, expense_type_id: str) -> None:
        require_role(actor, STAFF, "manage expense types")
        with self._gate.shared():
            self._storage.delete("expense_types", expense_type_id)
        LOGGER.info("Deleted expense type %s", expense_type_id)

    def list_expense_types(self) -> List[ExpenseType]:
        with self._gate.shared():
            expense_types = self._storage.list("expense_types")
        return newest_first(expense_types)  # type: ignore[arg-type]

    # Expenses ------------------------------------------------------------

    def create_expense(
        self,
        actor: Actor,
        *,
        expense_type_id: str,
        amount: object,
        expense_date: object,
        description: Optional[str] = None,
    ) -> Expense:
        require_role(actor, STAFF, "record expenses")
        expense = Expense(
            expense_type_id=expense_type_id,
            amount=amount,  # type: ignore[arg-type]
            expense_date=expense_date,  # type: ignore[arg-type]
            description=description,
            created_by=actor.user_id,
            **self._timestamps(),
        )
        with self._gate.shared():
            stored = self._storage.insert("expenses", expense)
        LOGGER.info("Recorded expense %s of %s", stored.id, stored.amount)
        return stored

    def update_expense(self, actor: Actor, expense_id: str, changes: Mapping[str, object]) -> Expense:
        require_role(actor, STAFF, "record expenses")
        with self._gate.shared():
            expense = self._storage.require("expenses", expense_id)
            stored = self._storage.update("expenses", apply_changes(expense, changes, EXPENSE_EDITABLE, self._clock))
        LOGGER.info("Updated expense %s: %s", expense_id, sorted(changes))
        return stored

    def delete_expense(self, actor: Actor, expense_id: str) -> None:
        require_role(actor, STAFF, "record expenses")
        with self._gate.shared():
            self._storage.delete("expenses", expense_id)
        LOGGER.info("Deleted expense %s", expense_id)

    def list_expenses(self, actor: Actor) -> List[Expense]:
        require_role(actor, ANY_ROLE, "list expenses")
        with self._gate.shared():
            expenses = self._storage.list("expenses")
        return newest_first(expenses)  # type: ignore[arg-type]
