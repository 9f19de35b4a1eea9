"""
Check factories for the rolling upgrade.

Each factory closes over one Member and returns a read-only rollgate Check.
Checks are rebuilt every cycle along with the rest of the action graph.
"""
from logzero import logger

from rollgate.engine import Check, check, negate
from rollgate.member import Member
from rollgate.probes import member as probe


def needs_version_change(n: Member) -> Check:
    async def operation():
        return await probe.version(n) != n.desired_version
    return check("[{}] mongo version needs changed to {}".format(
        n.name, n.desired_version), operation)


def is_desired_version(n: Member) -> Check:
    async def operation():
        return await probe.version(n) == n.desired_version
    return check("[{}] mongo version is {}".format(
        n.name, n.desired_version), operation)


def is_secondary(n: Member) -> Check:
    async def operation():
        return await probe.role(n) == "SECONDARY"
    return check("[{}] mongo is secondary".format(n.name), operation)


def is_primary(n: Member) -> Check:
    async def operation():
        return await probe.role(n) == "PRIMARY"
    return check("[{}] mongo is primary".format(n.name), operation)


def is_online(n: Member) -> Check:
    """
    Strict liveness check; failing to read the process table is a fault.
    """
    async def operation():
        return await probe.is_online(n)
    return check("[{}] mongo is online".format(n.name), operation)


def is_reachable(n: Member) -> Check:
    """
    Lenient liveness check; failing to read the process table counts as
    offline.
    """
    async def operation():
        try:
            return await probe.is_online(n)
        except Exception as e:
            logger.debug("[%s] liveness unknown, assuming offline: %s",
                         n.name, e)
            return False
    return check("[{}] check if mongo is online".format(n.name), operation)


def is_offline(n: Member) -> Check:
    return negate(is_reachable(n),
                  "[{}] check if mongo is offline".format(n.name))


def is_mongod(n: Member) -> Check:
    async def operation():
        return n.is_mongod
    return check("[{}] is mongod type instance".format(n.name), operation)


def in_healthy_replica_set(n: Member) -> Check:
    async def operation():
        return await probe.in_healthy_replica_set(n)
    return check("[{}] mongod in a healthy replicaset".format(n.name),
                 operation)


def last_member_to_upgrade(n: Member) -> Check:
    async def operation():
        return await probe.requires_failover_to_upgrade(n)
    return check("[{}] last member in rs to upgrade".format(n.name),
                 operation)
