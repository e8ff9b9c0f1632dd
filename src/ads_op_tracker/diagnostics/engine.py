"""Diagnostic engine evaluating rules against operation snapshots."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from ads_op_tracker.diagnostics.findings import Finding
from ads_op_tracker.diagnostics.models import DiagnosticsConfig
from ads_op_tracker.diagnostics.rules import DEFAULT_RULES, DiagnosticRule
from ads_op_tracker.domain.operations import Operation
from ads_op_tracker.errors import OperationNotFoundError

if TYPE_CHECKING:
    from ads_op_tracker.tracker import OperationTracker

logger = logging.getLogger(__name__)


class DiagnosticEngine:
    def __init__(
        self,
        config: DiagnosticsConfig | None = None,
        rules: Sequence[DiagnosticRule] | None = None,
    ) -> None:
        self._config = config or DiagnosticsConfig()
        self._rules = tuple(rules) if rules is not None else DEFAULT_RULES
        self._disabled = frozenset(self._config.disabled_rules)

    @property
    def config(self) -> DiagnosticsConfig:
        return self._config

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self._rules if rule.name not in self._disabled]

    def diagnose(self, operation: Operation) -> list[Finding]:
        findings: list[Finding] = []
        for rule in self._rules:
            if rule.name in self._disabled:
                continue
            try:
                finding = rule.check(operation, self._config)
            except Exception:
                logger.exception(
                    "Diagnostic rule %s failed on operation %s", rule.name, operation.id
                )
                continue
            if finding is not None:
                findings.append(finding)
        return findings

    def diagnose_by_id(self, tracker: OperationTracker, operation_id: str) -> list[Finding]:
        operation = tracker.get_operation(operation_id)
        if operation is None:
            raise OperationNotFoundError(operation_id)
        return self.diagnose(operation)
