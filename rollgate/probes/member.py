import os

from logzero import logger

from rollgate.common import *
from rollgate.member import Member
from rollgate.probes.process import list_processes

from typing import Dict, List, Optional

MONGOS_SHARD_NAME = "mongos"


def version_key(shard: str, name: str):
    return ("shards", shard, name, "version")


async def rs_status(member: Member) -> Dict:
    """
    The member's rs.status() document.
    """
    return await member.mongo_json("rs.status()")


async def shard_name(member: Member) -> str:
    """
    Name of the replica set a mongod belongs to. Every mongos shares the
    pseudo shard 'mongos'.
    """
    if member.is_mongod:
        return (await rs_status(member))["set"]
    return MONGOS_SHARD_NAME


async def version(member: Member) -> str:
    """
    The member's running server version.

    The observed version is recorded in the member's store under
    ("shards", <shard>, <member>, "version") so peers can tell how far a
    replica set's upgrade has progressed.

    :param member: The member to query. Required.
    :type member: Member
    :return: str
    """
    raw = await member.mongo("db.version()")
    observed = raw.replace('"', "").strip()
    shard = await shard_name(member)
    member.store.set(version_key(shard, member.name), observed)
    logger.debug("[%s] version %s (shard %s)", member.name, observed, shard)
    return observed


def runs_member(command: str, member: Member) -> bool:
    """
    Is 'command' the server process of 'member'?

    The executable must be the member's binary (mongod or mongos, any
    directory) started with '--port <port>' or '--port=<port>'. Shell clients
    and tools merely naming the port do not count.

    :param command: A process command line. Required.
    :type command: str
    :param member: The member to look for. Required.
    :type member: Member
    :return: bool
    """
    argv = command.split()
    if not argv or os.path.basename(argv[0]) != member.member_type.value:
        return False
    port = str(member.port)
    for i, arg in enumerate(argv[1:], start=1):
        if arg == "--port" and i + 1 < len(argv) and argv[i + 1] == port:
            return True
        if arg == "--port={}".format(port):
            return True
    return False


async def is_online(member: Member) -> bool:
    """
    Is the member's process in the process table?

    Updates member.state as a side effect.

    :param member: The member to look for. Required.
    :type member: Member
    :return: bool
    """
    processes = await list_processes(member.executor, member.host)
    found = any(runs_member(p.command, member) for p in processes)
    member.state = MemberState.RUNNING if found else MemberState.STOPPED
    logger.debug("[%s] %s", member.name, member.state.value)
    return member.state == MemberState.RUNNING


async def role(member: Member) -> Optional[str]:
    """
    The member's own stateStr in its replica set (PRIMARY, SECONDARY, ...).
    """
    members = (await rs_status(member)).get("members", [])
    for m in members:
        if m.get("self"):
            return m.get("stateStr")
    return None


async def member_states(member: Member) -> List[str]:
    return [m.get("stateStr")
            for m in (await rs_status(member)).get("members", [])]


async def in_healthy_replica_set(member: Member) -> bool:
    """
    Every replica set member is PRIMARY or SECONDARY and the set has 1, 3 or 5
    members.
    """
    states = await member_states(member)
    return all(s in HEALTHY_MEMBER_STATES for s in states) and \
        len(states) in HEALTHY_REPLICA_SET_SIZES


async def feature_compatibility_version(member: Member) -> str:
    response = await member.mongo_json(
        "db.adminCommand({getParameter: 1, featureCompatibilityVersion: 1})")
    return response["featureCompatibilityVersion"]["version"]


async def requires_failover_to_upgrade(member: Member) -> bool:
    """
    Is this member the primary and the last member of its replica set still to
    be upgraded?

    Relies on the versions its peers last reported into the store. The answer
    is False until the store holds a version for every peer and all of them are
    the desired version.

    :param member: The member to inspect. Required.
    :type member: Member
    :return: bool
    """
    if await role(member) != "PRIMARY":
        return False
    if await version(member) == member.desired_version:
        return False

    shard = await shard_name(member)
    versions = []
    for key, value in member.store.list(("shards", shard)):
        if key[2] == member.name:
            continue
        versions.append(value)
    logger.info("[%s] peer versions: %s", member.name, versions)
    if not versions:
        return False

    status = await rs_status(member)
    peer_count = len(status.get("members", [])) - 1  # removing self
    if peer_count != len(versions):
        return False
    return all(v == member.desired_version for v in versions)
