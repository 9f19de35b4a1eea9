from enum import Enum

from typing import List


class MemberType(Enum):
    """
    All supported member (process) types.
    """
    MONGOD = "mongod"
    MONGOS = "mongos"

    @classmethod
    def has_value(cls, value):
        return any(value == item.value for item in cls)


class MemberState(Enum):
    """
    Last observed state of a member's process.
    """
    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def has_value(cls, value):
        return any(value == item.value for item in cls)


# Replica set member states (rs.status().members[].stateStr) a member may be in
# and still be considered healthy.
HEALTHY_MEMBER_STATES = [
    'PRIMARY', 'SECONDARY'
]

# A replica set is considered healthy only with an odd number of voting
# members that this tool knows how to roll through.
HEALTHY_REPLICA_SET_SIZES = [
    1, 3, 5
]

# Useful for validating boolean user input
true_list = [
   'true', '1', 't', 'y', 'yes'
]
false_list = [
   'false', '0', 'f', 'n', 'no'
]


def parse_ports(value: str) -> List[int]:
    """
    Parse a port specification into an ordered list of ports.

    Accepts a range (27020-27028), a comma separated list (27017,27018) or a
    mix of both (27017,27020-27022). Order is preserved as written.

    :param value: The port specification. Required.
    :type value: str
    :return: List[int]
    """
    ports = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            first, last = part.split("-", 1)
            first, last = int(first), int(last)
            if last < first:
                raise ValueError("Invalid port range -- '{}'".format(part))
            ports.extend(range(first, last + 1))
        else:
            ports.append(int(part))
    return ports


def feature_compatibility_version(version: str) -> str:
    """
    Major.minor of a server version, i.e. 4.4.29 -> 4.4
    """
    return ".".join(version.split(".")[:2])


# Rollgate defaults
# Please keep defaults in lexically acending order by name
DEFAULT_ROLLGATE_CONFIG_SERVER_PORTS="27029-27031"
DEFAULT_ROLLGATE_DESIRED_VERSION="4.4.29"
DEFAULT_ROLLGATE_INTERVAL=10
DEFAULT_ROLLGATE_MLAUNCH="./bin/mlaunch"
DEFAULT_ROLLGATE_MONGOD_PORTS="27020-27028"
DEFAULT_ROLLGATE_MONGOS_PORTS="27017-27019"
DEFAULT_ROLLGATE_MONGO_SHELL="mongo"
DEFAULT_ROLLGATE_MONGO_TIMEOUT=30
DEFAULT_ROLLGATE_SSH_CONFIG_FILE="~/.ssh/config"
DEFAULT_ROLLGATE_START_PAUSE=5
DEFAULT_ROLLGATE_STOP_PAUSE=2
DEFAULT_ROLLGATE_STORE_FILE="~/.rollgate/store.json"
DEFAULT_ROLLGATE_TOOL_TIMEOUT=120
