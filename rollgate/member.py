import json

from logzero import logger

from rollgate.common import *
from rollgate.execute.execute import LOCALHOST, RemoteExecutor, executor_for
from rollgate.store import KeyValueStore

from typing import Any


class MongoShellError(Exception):
    """
    The mongo shell exited non-zero or printed something that is not JSON.
    """


class Member(object):
    """
    One process (mongod or mongos) of the cluster being rolled.

    A Member only knows how to reach its process: the mongo shell for queries
    and mlaunch for stopping and starting it. Inspection lives in
    rollgate.probes.member and mutation in rollgate.actions.member.
    """

    def __init__(self, name: str, port: int, member_type: MemberType,
                 desired_version: str, store: KeyValueStore,
                 host: str = None, executor: RemoteExecutor = None,
                 state: MemberState = MemberState.UNKNOWN,
                 mongo_shell: str = DEFAULT_ROLLGATE_MONGO_SHELL,
                 mlaunch: str = DEFAULT_ROLLGATE_MLAUNCH,
                 mongo_timeout: int = DEFAULT_ROLLGATE_MONGO_TIMEOUT,
                 tool_timeout: int = DEFAULT_ROLLGATE_TOOL_TIMEOUT):
        self.name = name
        self.port = int(port)
        self.member_type = MemberType(member_type)
        self.desired_version = desired_version
        self.store = store
        self.host = host or LOCALHOST
        self.executor = executor or executor_for(host)
        self.state = state
        self.mongo_shell = mongo_shell
        self.mlaunch = mlaunch
        self.mongo_timeout = mongo_timeout
        self.tool_timeout = tool_timeout

    def __repr__(self):
        return "Member(name={!r}, host={!r}, port={}, type={})".format(
            self.name, self.host, self.port, self.member_type.value)

    @property
    def is_mongod(self) -> bool:
        return self.member_type == MemberType.MONGOD

    async def mongo(self, expr: str) -> str:
        """
        Evaluate a shell expression against this member and return what it
        printed, JSON encoded.

        :param expr: A mongo shell expression, i.e. rs.status(). Required.
        :type expr: str
        :return: str
        """
        command = "{} --quiet mongodb://localhost:{} --eval " \
                  "\"print(JSON.stringify({}))\"".format(
                      self.mongo_shell, self.port, expr)
        result = await self.executor.execute_async(
            self.host, command, timeout=self.mongo_timeout)
        if result.return_code != 0:
            logger.error("[%s] mongo shell failed for %s: %s", self.name,
                         expr, result.stderr.strip())
            raise MongoShellError("{}: '{}' exited with {}".format(
                self.name, expr, result.return_code))
        # The shell prints a warning about machdep.cpu on some hosts
        lines = [l for l in result.stdout.split("\n")
                 if "machdep.cpu" not in l]
        return "\n".join(lines)

    async def mongo_json(self, expr: str) -> Any:
        raw = await self.mongo(expr)
        try:
            return json.loads(raw)
        except ValueError as e:
            raise MongoShellError("{}: '{}' did not return JSON: {}".format(
                self.name, expr, raw.strip()[:200])) from e

    async def run_tool(self, action: str) -> bool:
        """
        Run 'mlaunch <action> <type> <port>' for this member with the desired
        version selected.

        :param action: stop or start. Required.
        :type action: str
        :return: bool - True when mlaunch exited zero
        """
        command = "{} {} {} {}".format(self.mlaunch, action,
                                       self.member_type.value, self.port)
        result = await self.executor.execute_async(
            self.host, command, env={'MONGO_VERSION': self.desired_version},
            timeout=self.tool_timeout)
        if result.return_code != 0:
            logger.error("[%s] '%s' failed (%d): %s", self.name, command,
                         result.return_code, result.stderr.strip())
            return False
        return True
