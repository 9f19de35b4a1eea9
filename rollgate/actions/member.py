import asyncio

from logzero import logger

from rollgate.common import *
from rollgate.helpers import Confirm, ask
from rollgate.member import Member
from rollgate.probes.member import feature_compatibility_version as get_fcv


async def stop(member: Member) -> bool:
    """
    Stop the member's process with mlaunch.

    :param member: The member to stop. Required.
    :type member: Member
    :return: bool
    """
    logger.info("stop member: %s", member.name)
    stopped = await member.run_tool("stop")
    if stopped:
        member.state = MemberState.STOPPED
    return stopped


async def start(member: Member) -> bool:
    """
    Start the member's process with mlaunch, on the desired version.

    :param member: The member to start. Required.
    :type member: Member
    :return: bool
    """
    logger.info("start member: %s", member.name)
    started = await member.run_tool("start")
    if started:
        member.state = MemberState.RUNNING
    return started


async def restart_on_desired_version(member: Member,
    stop_pause: float = DEFAULT_ROLLGATE_STOP_PAUSE,
    start_pause: float = DEFAULT_ROLLGATE_START_PAUSE) -> bool:
    """
    Stop the member and start it again on the desired version.

    mlaunch picks the binaries from MONGO_VERSION, so a restart is an upgrade
    (or downgrade) to member.desired_version.

    :param member: The member to restart. Required.
    :type member: Member
    :param stop_pause: Seconds to wait after stopping.
        Optional. (Default: rollgate.common.DEFAULT_ROLLGATE_STOP_PAUSE)
    :type stop_pause: float
    :param start_pause: Seconds to wait after starting, giving the member time
        to rejoin its replica set before post checks run.
        Optional. (Default: rollgate.common.DEFAULT_ROLLGATE_START_PAUSE)
    :type start_pause: float
    :return: bool
    """
    logger.info("restart %s on version %s", member.name,
                member.desired_version)
    stopped = await stop(member)
    await asyncio.sleep(stop_pause)
    started = await start(member)
    await asyncio.sleep(start_pause)
    return stopped and started


async def step_down(member: Member) -> None:
    """
    Ask a primary to step down so another member is elected.
    """
    logger.info("step down: %s", member.name)
    await member.mongo("rs.stepDown()")


async def set_feature_compatibility_version(mongos: Member, mongod: Member,
                                            confirm: Confirm) -> bool:
    """
    Raise the cluster's feature compatibility version to the major.minor of
    the desired version.

    The current value is read from a shard member and set through a mongos.
    Nothing is changed when the cluster is already there or the operator
    declines.

    :param mongos: The router to send setFeatureCompatibilityVersion to.
        Required.
    :type mongos: Member
    :param mongod: A shard member to read the current value from. Required.
    :type mongod: Member
    :param confirm: Confirmation gate. Required.
    :type confirm: Confirm
    :return: bool - True when the value was changed
    """
    fcv = feature_compatibility_version(mongos.desired_version)
    current = await get_fcv(mongod)
    if current == fcv:
        logger.info("Already on correct fcv %s", fcv)
        return False
    question = "Are you sure you want to set fcv: {} from {}".format(fcv,
                                                                     current)
    if not await ask(confirm, question):
        logger.info("Refused upgrade, skipping")
        return False
    await mongos.mongo(
        "db.adminCommand({{ setFeatureCompatibilityVersion: '{}' }})".format(
            fcv))
    return True
