import pytest

from rollgate.common import MemberState, MemberType
from rollgate.execute.execute import Result
from rollgate.member import Member, MongoShellError
from rollgate.probes import member as probe
from rollgate.store import KeyValueStore
from test import FakeCluster, FakeExecutor, run

DESIRED = "4.4.29"


@pytest.fixture
def cluster():
    return FakeCluster({'rs0': [27020, 27021, 27022]}, mongoses=[27017])


@pytest.fixture
def store():
    return KeyValueStore()


def mongod(cluster, store, port):
    return Member("mongod:{}".format(port), port, MemberType.MONGOD, DESIRED,
                  store, host="db1", executor=cluster, mlaunch="mlaunch")


def mongos(cluster, store, port):
    return Member("mongos:{}".format(port), port, MemberType.MONGOS, DESIRED,
                  store, host="db1", executor=cluster, mlaunch="mlaunch")


def test_mongo_drops_machdep_warning(store):
    executor = FakeExecutor(lambda host, action, kwargs: Result(
        0, "2026-10-18 machdep.cpu.extfeatures unknown\n\"4.2.25\"\n", ""))
    member = Member("m", 27020, MemberType.MONGOD, DESIRED, store,
                    host="db1", executor=executor)
    assert run(member.mongo, "db.version()").strip() == '"4.2.25"'
    assert executor.calls[0][1] == 'mongo --quiet mongodb://localhost:27020 ' \
        '--eval "print(JSON.stringify(db.version()))"'


def test_mongo_failure_raises(cluster, store):
    member = mongod(cluster, store, 27020)
    cluster.members[27020]['running'] = False
    with pytest.raises(MongoShellError):
        run(member.mongo, "db.version()")


def test_mongo_json_rejects_garbage(store):
    executor = FakeExecutor(lambda host, action, kwargs:
                            Result(0, "not json\n", ""))
    member = Member("m", 27020, MemberType.MONGOD, DESIRED, store,
                    host="db1", executor=executor)
    with pytest.raises(MongoShellError):
        run(member.mongo_json, "rs.status()")


def test_version_is_recorded_in_store(cluster, store):
    member = mongod(cluster, store, 27021)
    assert run(probe.version, member) == "4.2.25"
    assert store.get(("shards", "rs0", "mongod:27021", "version")) == "4.2.25"


def test_mongos_versions_share_pseudo_shard(cluster, store):
    router = mongos(cluster, store, 27017)
    assert run(probe.shard_name, router) == "mongos"
    run(probe.version, router)
    assert store.get(("shards", "mongos", "mongos:27017", "version")) == \
        "4.2.25"


def test_role(cluster, store):
    assert run(probe.role, mongod(cluster, store, 27020)) == "PRIMARY"
    assert run(probe.role, mongod(cluster, store, 27022)) == "SECONDARY"


def test_is_online_updates_state(cluster, store):
    member = mongod(cluster, store, 27021)
    assert member.state == MemberState.UNKNOWN
    assert run(probe.is_online, member) is True
    assert member.state == MemberState.RUNNING

    cluster.members[27021]['running'] = False
    assert run(probe.is_online, member) is False
    assert member.state == MemberState.STOPPED


def test_healthy_replica_set(cluster, store):
    member = mongod(cluster, store, 27020)
    assert run(probe.in_healthy_replica_set, member) is True
    cluster.members[27022]['running'] = False
    assert run(probe.in_healthy_replica_set, member) is False


def test_two_member_replica_set_is_not_healthy(store):
    cluster = FakeCluster({'rs0': [27020, 27021]})
    assert run(probe.in_healthy_replica_set,
               mongod(cluster, store, 27020)) is False


def test_feature_compatibility_version(cluster, store):
    assert run(probe.feature_compatibility_version,
               mongod(cluster, store, 27020)) == "4.2"


def test_failover_needs_every_peer_version(cluster, store):
    primary = mongod(cluster, store, 27020)

    # No peer versions recorded yet
    assert run(probe.requires_failover_to_upgrade, primary) is False

    # One of two peers upgraded
    cluster.members[27021]['version'] = DESIRED
    run(probe.version, mongod(cluster, store, 27021))
    assert run(probe.requires_failover_to_upgrade, primary) is False

    # Both peers recorded, one still old
    run(probe.version, mongod(cluster, store, 27022))
    assert run(probe.requires_failover_to_upgrade, primary) is False

    cluster.members[27022]['version'] = DESIRED
    run(probe.version, mongod(cluster, store, 27022))
    assert run(probe.requires_failover_to_upgrade, primary) is True


def test_no_failover_for_secondary_or_upgraded_primary(cluster, store):
    for port in (27021, 27022):
        cluster.members[port]['version'] = DESIRED
        run(probe.version, mongod(cluster, store, port))

    assert run(probe.requires_failover_to_upgrade,
               mongod(cluster, store, 27021)) is False

    cluster.members[27020]['version'] = DESIRED
    assert run(probe.requires_failover_to_upgrade,
               mongod(cluster, store, 27020)) is False


def ps_handler(*commands):
    lines = ["USER PID STARTED COMMAND"]
    for pid, command in enumerate(commands, start=100):
        lines.append("mongodb {} Sun Oct 18 10:00:00 2026 {}".format(pid,
                                                                     command))
    return lambda host, action, kwargs: Result(0, "\n".join(lines) + "\n", "")


def test_port_mentioned_by_other_processes_is_not_online(store):
    executor = FakeExecutor(ps_handler(
        "python run.py --mongod-ports 27020-27028 -y",
        "mongo --quiet mongodb://localhost:27020 --eval \"print(1)\"",
        "mongod --port 27021 --replSet rs0"))
    member = Member("mongod:27020", 27020, MemberType.MONGOD, DESIRED, store,
                    host="db1", executor=executor)
    assert run(probe.is_online, member) is False
    assert member.state == MemberState.STOPPED


def test_member_binary_with_path_is_online(store):
    executor = FakeExecutor(ps_handler(
        "/opt/mongodb/4.2.25/bin/mongod --replSet rs0 --port=27020",
        "/opt/mongodb/4.2.25/bin/mongos --port 27017 --configdb cs/x"))
    assert run(probe.is_online, Member("mongod:27020", 27020,
                                       MemberType.MONGOD, DESIRED, store,
                                       host="db1", executor=executor))
    assert run(probe.is_online, Member("mongos:27017", 27017,
                                       MemberType.MONGOS, DESIRED, store,
                                       host="db1", executor=executor))
    assert not run(probe.is_online, Member("mongos:27020", 27020,
                                           MemberType.MONGOS, DESIRED, store,
                                           host="db1", executor=executor))


def test_runs_member():
    member = Member("mongod:27020", 27020, MemberType.MONGOD, DESIRED,
                    KeyValueStore(), host="db1", executor=FakeExecutor())
    assert probe.runs_member("mongod --port 27020", member)
    assert not probe.runs_member("mongod --port 270200", member)
    assert not probe.runs_member("mongod --port", member)
    assert not probe.runs_member("", member)
