from collections import namedtuple

from logzero import logger

from rollgate.actions import member as act
from rollgate.common import *
from rollgate.engine import Action, Journal, command
from rollgate.execute.execute import RemoteExecutor, executor_for
from rollgate.helpers import Confirm, ask
from rollgate.member import Member
from rollgate.store import KeyValueStore
from rollgate.upgrade import checks

from typing import List, Sequence

# Shard members, config servers and routers of one sharded cluster.
Topology = namedtuple('Topology', ['mongods', 'config_servers', 'mongoses'])


def build_topology(store: KeyValueStore,
                   desired_version: str = DEFAULT_ROLLGATE_DESIRED_VERSION,
                   mongod_ports: Sequence[int] = (),
                   config_server_ports: Sequence[int] = (),
                   mongos_ports: Sequence[int] = (),
                   host: str = None,
                   ssh_config_file: str = None,
                   executor: RemoteExecutor = None,
                   **member_kwargs) -> Topology:
    """
    Build the cluster's members from their ports.

    All members share one executor, local or SSH depending on 'host'.

    :param store: The version store. Required.
    :type store: KeyValueStore
    :param desired_version: The version every member should end up on.
        Optional. (Default: rollgate.common.DEFAULT_ROLLGATE_DESIRED_VERSION)
    :type desired_version: str
    :param mongod_ports: Shard member ports.
    :type mongod_ports: Sequence[int]
    :param config_server_ports: Config server ports.
    :type config_server_ports: Sequence[int]
    :param mongos_ports: Router ports.
    :type mongos_ports: Sequence[int]
    :param host: Host running the members. None for this machine.
        Optional. (Default: None)
    :type host: str
    :param ssh_config_file: SSH config used to reach 'host'.
        Optional. (Default: None)
    :type ssh_config_file: str
    :param executor: Executor shared by every member. Picked from 'host'
        when None.
        Optional. (Default: None)
    :type executor: RemoteExecutor
    :param member_kwargs: Passed on to every Member (mongo_shell, mlaunch, ...)
    :return: Topology
    """
    executor = executor or executor_for(host, ssh_config_file)

    def members(label, member_type, ports):
        return [Member("{}:{}".format(label, port), port, member_type,
                       desired_version, store, host=host, executor=executor,
                       **member_kwargs)
                for port in ports]

    return Topology(
        mongods=members("mongod", MemberType.MONGOD, mongod_ports),
        config_servers=members("config-server", MemberType.MONGOD,
                               config_server_ports),
        mongoses=members("mongos", MemberType.MONGOS, mongos_ports))


def _restart_command(n: Member, stop_pause: float, start_pause: float):
    async def operation():
        return await act.restart_on_desired_version(n, stop_pause,
                                                    start_pause)
    return command("change mongo version", operation)


def upgrade_config_server(n: Member, journal: Journal = None,
    stop_pause: float = DEFAULT_ROLLGATE_STOP_PAUSE,
    start_pause: float = DEFAULT_ROLLGATE_START_PAUSE) -> Action:
    """
    Restart a secondary config server on the desired version.
    """
    return Action(
        name="[{}] upgrade mongo to {}".format(n.name, n.desired_version),
        pre_checks=[
            checks.is_online(n),
            checks.is_secondary(n),
            checks.needs_version_change(n),
            checks.in_healthy_replica_set(n),
        ],
        command=_restart_command(n, stop_pause, start_pause),
        post_checks=[
            checks.in_healthy_replica_set(n),
            checks.is_desired_version(n),
        ],
        journal=journal)


def upgrade_mongod(n: Member, config_servers: Sequence[Member],
    journal: Journal = None,
    stop_pause: float = DEFAULT_ROLLGATE_STOP_PAUSE,
    start_pause: float = DEFAULT_ROLLGATE_START_PAUSE) -> Action:
    """
    Restart a secondary shard member on the desired version, once every config
    server runs it.
    """
    return Action(
        name="[{}] upgrade mongo to {}".format(n.name, n.desired_version),
        pre_checks=[
            checks.is_online(n),
            checks.is_secondary(n),
            checks.needs_version_change(n),
            checks.in_healthy_replica_set(n),
        ] + [checks.is_desired_version(c) for c in config_servers],
        command=_restart_command(n, stop_pause, start_pause),
        post_checks=[
            checks.in_healthy_replica_set(n),
            checks.is_desired_version(n),
        ],
        journal=journal)


def upgrade_mongos(n: Member, members: Sequence[Member],
    journal: Journal = None,
    stop_pause: float = DEFAULT_ROLLGATE_STOP_PAUSE,
    start_pause: float = DEFAULT_ROLLGATE_START_PAUSE) -> Action:
    """
    Restart a router on the desired version, once every mongod runs it.
    """
    return Action(
        name="[{}] upgrade mongos to {}".format(n.name, n.desired_version),
        pre_checks=[
            checks.is_online(n),
            checks.needs_version_change(n),
        ] + [checks.is_desired_version(m) for m in members],
        command=_restart_command(n, stop_pause, start_pause),
        post_checks=[
            checks.is_desired_version(n),
        ],
        journal=journal)


def start_member(n: Member, journal: Journal = None) -> Action:
    """
    Start a member that is not running. Best effort; a failed start is logged
    and retried next cycle.
    """
    async def operation():
        try:
            return await act.start(n)
        except Exception as e:
            logger.error("Failed to start %s", n.name)
            logger.exception(e)
            return False

    return Action(
        name="[{}] start mongo".format(n.name),
        pre_checks=[checks.is_offline(n)],
        command=command("start mongo", operation),
        post_checks=[checks.is_reachable(n)],
        journal=journal)


def failover_to_upgrade(n: Member, confirm: Confirm,
                        journal: Journal = None) -> Action:
    """
    Make a primary step down once it is the only member of its replica set
    left on the old version.
    """
    async def operation():
        if await ask(confirm, "May I failover {}?".format(n.name)):
            await act.step_down(n)
            return True
        logger.info("Failover of %s declined", n.name)
        return False

    return Action(
        name="failover to upgrade {}".format(n.name),
        pre_checks=[
            checks.is_reachable(n),
            checks.is_primary(n),
            checks.is_mongod(n),
            checks.in_healthy_replica_set(n),
            checks.needs_version_change(n),
            checks.last_member_to_upgrade(n),
        ],
        command=command("failing over {}".format(n.name), operation),
        post_checks=[checks.is_reachable(n)],
        journal=journal)


def upgrade_feature_compatibility_version(mongod: Member,
    mongoses: Sequence[Member], confirm: Confirm,
    journal: Journal = None) -> Action:
    """
    Raise the feature compatibility version once every router is up and on the
    desired version.
    """
    async def operation():
        if await ask(confirm, "May I upgrade feature control version?"):
            return await act.set_feature_compatibility_version(
                mongoses[0], mongod, confirm)
        logger.info("Feature compatibility version upgrade declined")
        return False

    return Action(
        name="upgrade feature control version to {}".format(
            mongoses[0].desired_version),
        pre_checks=[checks.is_reachable(m) for m in mongoses] +
                   [checks.is_desired_version(m) for m in mongoses],
        command=command("upgrade feature control version", operation),
        post_checks=[checks.is_reachable(m) for m in mongoses],
        journal=journal)


def build_actions(topology: Topology, confirm: Confirm,
    journal: Journal = None,
    stop_pause: float = DEFAULT_ROLLGATE_STOP_PAUSE,
    start_pause: float = DEFAULT_ROLLGATE_START_PAUSE) -> List[Action]:
    """
    The ordered actions of one reconciliation pass.

    Order: start anything stopped, roll the config servers (secondaries, then
    fail the primary over, then the former primary), roll each shard the same
    way, roll the routers, and finally raise the feature compatibility
    version. Steps whose pre checks do not hold yet are no-ops this pass.

    :param topology: The cluster's members. Required.
    :type topology: Topology
    :param confirm: Confirmation gate for failovers and the FCV change.
        Required.
    :type confirm: Confirm
    :param journal: Journal shared by every action.
        Optional. (Default: None)
    :type journal: Journal
    :return: List[Action]
    """
    mongods, config_servers, mongoses = topology
    restart = {'journal': journal, 'stop_pause': stop_pause,
               'start_pause': start_pause}

    config_server_upgrades = [upgrade_config_server(n, **restart)
                              for n in config_servers]
    mongod_upgrades = [upgrade_mongod(n, config_servers, **restart)
                       for n in mongods]
    mongos_upgrades = [upgrade_mongos(n, list(config_servers) + list(mongods),
                                      **restart)
                       for n in mongoses]
    start_members = [start_member(n, journal)
                     for n in list(mongods) + list(config_servers) +
                     list(mongoses)]

    actions = []
    actions.extend(start_members)
    actions.extend(config_server_upgrades)
    actions.extend(failover_to_upgrade(n, confirm, journal)
                   for n in config_servers)
    actions.extend(config_server_upgrades)
    actions.extend(mongod_upgrades)
    actions.extend(failover_to_upgrade(n, confirm, journal) for n in mongods)
    actions.extend(mongod_upgrades)
    actions.extend(mongos_upgrades)
    if mongods and mongoses:
        actions.append(upgrade_feature_compatibility_version(
            mongods[0], mongoses, confirm, journal))
    return actions
