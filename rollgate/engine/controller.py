import asyncio

from collections import namedtuple

from logzero import logger

from rollgate.engine.action import Action
from rollgate.engine.journal import Journal

from typing import Callable, List, Optional, Sequence

ActionStatus = namedtuple('ActionStatus', ['name', 'report', 'error'])


class Controller(object):
    """
    Run an ordered list of Actions once, isolating their failures.
    """

    def __init__(self, actions: Sequence[Action], journal: Journal = None):
        self._actions = tuple(actions)
        self._journal = journal or Journal()

    @property
    def actions(self):
        return self._actions

    async def run(self) -> List[ActionStatus]:
        """
        Run every action in order, awaiting each before starting the next.

        An action that raises is logged and recorded; the remaining actions
        still run. Never raises for failures inside actions.

        :return: List[ActionStatus] in action order. 'error' holds the raised
            exception, or None when the action returned.
        """
        statuses = []
        for action in self._actions:
            try:
                report = await action.run()
            except Exception as e:
                logger.error("Action %s raised %s", action.name,
                             type(e).__name__)
                logger.exception(e)
                self._journal.record("error", action.name,
                                     {'error': repr(e)})
                statuses.append(ActionStatus(action.name, None, e))
            else:
                statuses.append(ActionStatus(action.name, report, None))
        return statuses


async def reconcile(build_actions: Callable[[], Sequence[Action]],
                    interval: float, cycles: Optional[int] = None,
                    journal: Journal = None) -> int:
    """
    Drive the reconciliation loop.

    Each cycle builds a fresh list of actions from current state, runs a
    Controller over it once and sleeps 'interval' seconds. Actions whose pre
    checks do not hold yet are simply attempted again on the next cycle. There
    is no backoff; the delay is fixed.

    :param build_actions: Returns the ordered actions for one pass. Called
        once per cycle, after the previous cycle has fully completed.
        Required.
    :type build_actions: Callable[[], Sequence[Action]]
    :param interval: Seconds to sleep between cycles. Required.
    :type interval: float
    :param cycles: Number of cycles to run. None runs forever.
        Optional. (Default: None)
    :type cycles: int
    :param journal: Journal receiving a 'cycle' record per pass.
        Optional. (Default: None)
    :type journal: Journal
    :return: int - the number of cycles completed
    """
    journal = journal or Journal()
    completed = 0
    while cycles is None or completed < cycles:
        actions = build_actions()
        statuses = await Controller(actions, journal=journal).run()
        completed += 1
        journal.record("cycle", "reconcile", {
            'cycle': completed,
            'actions': len(statuses),
            'errors': [s.name for s in statuses if s.error is not None],
        })
        if cycles is not None and completed >= cycles:
            break
        await asyncio.sleep(interval)
    return completed
