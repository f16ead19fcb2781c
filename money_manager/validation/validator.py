"""
Input Validation for Ledger Entries

DESIGN DECISION: The entity models only coerce types. Business rules live
here and run before anything reaches storage:

Backups are held to the same rules before they replace the ledger.

PERSONS:
- Name is required and must not be blank

TRANSACTIONS:
- Amount must be present and numeric (a typed "12a" is rejected, not
  silently truncated)
- Amount must be finite and non-negative
- Type must be exactly 'credit' or 'debit'
- Person ID must be present

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show them to the user.
"""

import math
from typing import Any, Optional, Union

from money_manager.models.backup import Snapshot
from money_manager.models.ledger import Person, Transaction, TransactionType
from money_manager.models.validation import ValidationIssue, ValidationResult


class LedgerValidationError(ValueError):
    """Raised when user input fails validation before a write."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(issue.message for issue in result.issues)
        super().__init__(f"Invalid {result.entity_type}: {messages}")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


class LedgerValidator:
    """Validates persons and transactions before they are saved."""

    def validate_person_input(
        self,
        name: Optional[str],
        email: Optional[str] = None,
    ) -> ValidationResult:
        issues = []

        if name is None or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required",
            ))

        if email and "@" not in email:
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message=f"Email address looks invalid: {email}",
                severity="warning",
            ))

        return ValidationResult(entity_type="person", issues=issues)

    def validate_person(self, person: Person) -> ValidationResult:
        return self.validate_person_input(person.name, person.email)

    def parse_amount(self, raw: Union[str, float, int, None]) -> tuple[Optional[float], list[ValidationIssue]]:
        """
        Parse a user-entered amount.

        Returns: (amount_or_None, list_of_issues)
        """
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return None, [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Please enter an amount",
            )]

        if isinstance(raw, bool):
            return None, [ValidationIssue(
                field="amount",
                issue_type="not_numeric",
                message=f"Amount must be a number, got {raw!r}",
            )]

        try:
            amount = float(raw.strip()) if isinstance(raw, str) else float(raw)
        except (TypeError, ValueError):
            return None, [ValidationIssue(
                field="amount",
                issue_type="not_numeric",
                message=f"Amount must be a number, got {raw!r}",
            )]

        return amount, self._check_amount(amount)

    def validate_transaction_input(
        self,
        person_id: Optional[str],
        amount: Any,
        transaction_type: Any,
    ) -> ValidationResult:
        issues = []

        if not person_id:
            issues.append(ValidationIssue(
                field="person_id",
                issue_type="missing",
                message="Transaction must belong to a person",
            ))

        _, amount_issues = self.parse_amount(amount)
        issues.extend(amount_issues)

        issues.extend(self._check_type(transaction_type))

        return ValidationResult(entity_type="transaction", issues=issues)

    def validate_transaction(self, transaction: Transaction) -> ValidationResult:
        issues = []
        if not transaction.person_id:
            issues.append(ValidationIssue(
                field="person_id",
                issue_type="missing",
                message="Transaction must belong to a person",
            ))
        issues.extend(self._check_amount(transaction.amount))
        return ValidationResult(entity_type="transaction", issues=issues)

    def validate_snapshot(self, snapshot: Snapshot) -> ValidationResult:
        """
        Apply the person and transaction rules to every record of a backup.

        Issue fields are prefixed with the record's position, e.g.
        'transactions[3].amount'.
        """
        issues = []
        for index, person in enumerate(snapshot.persons):
            for issue in self.validate_person(person).issues:
                if issue.severity == "error":
                    issues.append(issue.model_copy(update={"field": f"persons[{index}].{issue.field}"}))
        for index, transaction in enumerate(snapshot.transactions):
            for issue in self.validate_transaction(transaction).issues:
                issues.append(issue.model_copy(update={"field": f"transactions[{index}].{issue.field}"}))
        return ValidationResult(entity_type="backup", issues=issues)

    def _check_amount(self, amount: float) -> list[ValidationIssue]:
        if not math.isfinite(amount):
            return [ValidationIssue(
                field="amount",
                issue_type="not_finite",
                message="Amount must be a finite number",
            )]
        if amount < 0:
            return [ValidationIssue(
                field="amount",
                issue_type="negative",
                message="Amount cannot be negative; use the transaction type for direction",
            )]
        return []

    def _check_type(self, transaction_type: Any) -> list[ValidationIssue]:
        value = transaction_type.value if isinstance(transaction_type, TransactionType) else transaction_type
        allowed = {t.value for t in TransactionType}
        if value not in allowed:
            return [ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Transaction type must be one of {sorted(allowed)}, got {transaction_type!r}",
            )]
        return []
