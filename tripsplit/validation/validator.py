"""
Two-Stage Expense Validation

Runs before a new expense is saved.

STAGE 1 - SCHEMA VALIDATION:
- Title, amount, payer, split and category present
- Amount greater than zero
These are errors: the expense cannot be split otherwise.

STAGE 2 - SEMANTIC VALIDATION:
- Payer or split members not on the trip roster
- Date far in the future
- Amount above the sanity limit
- Same person listed twice in the split
These are warnings only. Names outside the roster are accepted and will
be registered automatically when balances are computed; the warning
exists so a typo ("Bbo" for "Bob") is noticed before it creates a
phantom participant.

Nothing is corrected automatically: every problem is reported back
to whoever is entering the expense.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Optional

from tripsplit.config import AppSettings, get_settings
from tripsplit.formatting import format_amount
from tripsplit.models.expense import (
    ExpenseDraft,
    ValidationIssue,
    ValidationResult,
)


class ExpenseValidator:
    """Validates expense drafts through a two-stage pipeline."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        draft: ExpenseDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not draft.title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Expense title is required",
                severity="error",
                suggested_fix="Describe what was paid for, e.g. 'Dinner'",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount that was paid",
            ))

        if not draft.payer:
            issues.append(ValidationIssue(
                field="payer",
                issue_type="missing",
                message="Select who paid for this expense",
                severity="error",
            ))

        if not draft.split_between:
            issues.append(ValidationIssue(
                field="split_between",
                issue_type="missing",
                message="Select at least one person to split this expense with",
                severity="error",
            ))

        if draft.category is None:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        draft: ExpenseDraft,
        roster: Sequence[str],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        known = set(roster)

        if known and draft.payer and draft.payer not in known:
            issues.append(ValidationIssue(
                field="payer",
                issue_type="unknown_participant",
                message=f"{draft.payer} is not a participant of this trip",
                severity="warning",
                suggested_fix="They will be added to the balances automatically",
            ))

        if known:
            unknown = [m for m in dict.fromkeys(draft.split_between) if m not in known]
            if unknown:
                issues.append(ValidationIssue(
                    field="split_between",
                    issue_type="unknown_participant",
                    message=f"Not participants of this trip: {', '.join(unknown)}",
                    severity="warning",
                    suggested_fix="They will be added to the balances automatically",
                ))

        repeated = [name for name, count in Counter(draft.split_between).items() if count > 1]
        if repeated:
            issues.append(ValidationIssue(
                field="split_between",
                issue_type="duplicate_member",
                message=f"Listed more than once: {', '.join(repeated)}",
                severity="warning",
                suggested_fix="Each listing counts as a separate share",
            ))

        max_future = date.today() + timedelta(days=self._settings.future_date_tolerance_days)
        if draft.date and draft.date > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({draft.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if draft.amount is not None and draft.amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=(
                    f"Amount ({format_amount(draft.amount, self._settings.default_currency)}) "
                    "seems unusually high"
                ),
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        draft: ExpenseDraft,
        roster: Sequence[str] = (),
    ) -> ValidationResult:
        """
        Check a draft before it is saved.

        Args:
            draft: The expense as entered
            roster: Display names of the trip's participants

        Returns:
            ValidationResult listing every error and warning
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        # Semantic checks assume a complete draft
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(draft, roster)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a user-friendly summary of validation results."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ This expense can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
