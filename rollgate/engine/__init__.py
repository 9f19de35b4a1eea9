"""
Health-gated sequencing engine.

A Command is a named coroutine that may change the target system. A Check is
the same shape but read-only; its result says whether a condition holds. An
Action wraps one Command with ordered pre checks and post checks: the command
runs only when the pre checks pass, and the post checks are always evaluated
and reported once it has run. A Controller runs Actions in order and isolates
their failures so one faulty Action never stops the rest of a pass.

Nothing here knows about the system being changed. Checks and Commands close
over whatever handles they need when the Action graph is built, and the graph
is rebuilt for every reconciliation pass (see reconcile).
"""
from rollgate.engine.action import (
    Action, ActionFailedError, ActionReport, ActionState, CheckEvaluation,
    CheckResult, evaluate_checks
)
from rollgate.engine.command import Check, Command, check, command, negate
from rollgate.engine.controller import ActionStatus, Controller, reconcile
from rollgate.engine.journal import Journal

__all__ = [
    'Action', 'ActionFailedError', 'ActionReport', 'ActionState',
    'ActionStatus', 'Check', 'CheckEvaluation', 'CheckResult', 'Command',
    'Controller', 'Journal', 'check', 'command', 'evaluate_checks', 'negate',
    'reconcile',
]
