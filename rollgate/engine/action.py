from collections import namedtuple
from enum import Enum

from logzero import logger

from rollgate.engine.command import Check, Command
from rollgate.engine.journal import Journal

from typing import List, Sequence

CheckResult = namedtuple('CheckResult', ['name', 'result'])
CheckEvaluation = namedtuple('CheckEvaluation', ['proceed', 'results'])
ActionReport = namedtuple('ActionReport', ['name', 'state', 'pre_checks',
                                           'post_checks'])


class ActionFailedError(Exception):
    """
    Raised by Action.run when an executed action must be reported as failed.
    """


class ActionState(Enum):
    """
    States an Action passes through during a single run.
    """
    IDLE = 1
    EVALUATING_PRECHECKS = 2
    BLOCKED = 3
    EXECUTING = 4
    EVALUATING_POSTCHECKS = 5
    COMPLETED = 6


async def evaluate_checks(checks: Sequence[Check],
                          fail_fast: bool = True) -> CheckEvaluation:
    """
    Evaluate checks in declared order.

    With fail_fast, evaluation stops at the first check returning False and the
    results end with that check; later checks are never invoked. Without it
    every check is invoked once and 'proceed' is the logical AND of all
    results.

    An empty sequence never proceeds. Actions without pre checks therefore
    never execute their command.

    A check that raises is not treated as False; the exception propagates.

    :param checks: Checks to evaluate. Required.
    :type checks: Sequence[Check]
    :param fail_fast: Stop at the first failing check?
        Optional. (Default: True)
    :type fail_fast: bool
    :return: CheckEvaluation
    """
    results = []  # type: List[CheckResult]
    for c in checks:
        result = await c.operation()
        results.append(CheckResult(c.name, result))
        if result is False and fail_fast:
            return CheckEvaluation(False, results)

    if not results:
        return CheckEvaluation(False, results)

    return CheckEvaluation(all(r.result for r in results), results)


def _as_payload(results: List[CheckResult]):
    return [r._asdict() for r in results]


class Action(object):
    """
    A single mutating step gated by pre checks and reported by post checks.

    Actions are immutable once built and carry no state between runs.
    """

    def __init__(self, name: str, command: Command,
                 pre_checks: Sequence[Check] = (),
                 post_checks: Sequence[Check] = (),
                 fail_fast: bool = True, journal: Journal = None):
        self._name = name
        self._command = command
        self._pre_checks = tuple(pre_checks)
        self._post_checks = tuple(post_checks)
        self._fail_fast = fail_fast
        self._journal = journal or Journal()

    @property
    def name(self) -> str:
        return self._name

    @property
    def command(self) -> Command:
        return self._command

    @property
    def pre_checks(self):
        return self._pre_checks

    @property
    def post_checks(self):
        return self._post_checks

    @property
    def fail_fast(self) -> bool:
        return self._fail_fast

    def __repr__(self):
        return "Action(name={!r}, command={!r}, pre_checks={}, " \
               "post_checks={}, fail_fast={})".format(
                   self._name, self._command.name, len(self._pre_checks),
                   len(self._post_checks), self._fail_fast)

    async def run(self) -> ActionReport:
        """
        Run the action once.

        Evaluates the pre checks and returns a BLOCKED report when they do not
        proceed. Otherwise awaits the command exactly once, then evaluates the
        post checks whatever the command returned. A failing post check is
        reported, not raised. Exceptions from checks and the command propagate.

        :return: ActionReport
        """
        journal = self._journal
        journal.record("step", self._name, {'state': ActionState.IDLE.name})

        logger.debug("[%s] %s", self._name,
                     ActionState.EVALUATING_PRECHECKS.name)
        pre = await evaluate_checks(self._pre_checks, self._fail_fast)
        journal.record("prechecks", self._name,
                       {'proceed': pre.proceed,
                        'results': _as_payload(pre.results)})
        if not pre.proceed:
            return ActionReport(self._name, ActionState.BLOCKED, pre, None)

        logger.debug("[%s] %s", self._name, ActionState.EXECUTING.name)
        journal.record("command", self._name, {'command': self._command.name})
        await self._command.operation()

        logger.debug("[%s] %s", self._name,
                     ActionState.EVALUATING_POSTCHECKS.name)
        post = await evaluate_checks(self._post_checks, self._fail_fast)
        journal.record("postchecks", self._name,
                       {'ok': post.proceed,
                        'results': _as_payload(post.results)})

        # Reads the pre check flag, which is always True at this point. Post
        # check outcomes are reported through the journal and the report.
        if not pre.proceed:
            raise ActionFailedError("Action {} failed".format(self._name))

        return ActionReport(self._name, ActionState.COMPLETED, pre, post)
