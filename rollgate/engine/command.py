from collections import namedtuple

from typing import Awaitable, Callable, Optional

# A named, asynchronous unit of work. 'operation' is a zero argument coroutine
# function. A Check is the same shape; its operation's result is read as a
# boolean "condition holds". Only the caller's interpretation differs, so both
# are built from this one type by the factories below.
Command = namedtuple('Command', ['name', 'operation'])

# Alias used in signatures where the result is read as a condition.
Check = Command

Operation = Callable[[], Awaitable[Optional[bool]]]


def _build(name: str, operation: Operation, kind: str) -> Command:
    if not isinstance(name, str) or not name:
        raise ValueError("{} name must be a non-empty string".format(kind))
    if not callable(operation):
        raise ValueError("{} '{}' operation must be callable".format(kind,
                                                                    name))
    return Command(name, operation)


def command(name: str, operation: Operation) -> Command:
    """
    Build a Command.

    The operation may mutate the target system. It is awaited at most once per
    Action run and must tolerate being attempted again on a later cycle.

    :param name: Human readable name used in journal records. Required.
    :type name: str
    :param operation: Zero argument coroutine function. Required.
    :type operation: Callable[[], Awaitable[Optional[bool]]]
    :return: Command
    """
    return _build(name, operation, "Command")


def check(name: str, operation: Operation) -> Check:
    """
    Build a Check.

    The operation must be read-only against the target system and return True
    when the condition holds. It may be invoked every reconciliation cycle.

    :param name: Human readable name used in journal records. Required.
    :type name: str
    :param operation: Zero argument coroutine function returning bool.
        Required.
    :type operation: Callable[[], Awaitable[bool]]
    :return: Check
    """
    return _build(name, operation, "Check")


def negate(other: Check, name: str = None) -> Check:
    """
    Build a Check that holds when 'other' does not.
    """
    async def operation():
        return not await other.operation()

    return check(name or "not {}".format(other.name), operation)
