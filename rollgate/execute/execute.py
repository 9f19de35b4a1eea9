import abc
import asyncio
import os
import subprocess

from collections import namedtuple
from functools import partial

from logzero import logger
from multiprocessing import Process, Queue
from queue import Empty

from fabric import Connection, Config
from paramiko import AuthenticationException

from typing import Dict

Result = namedtuple('Result', ['return_code', 'stdout', 'stderr'])

LOCALHOST = 'localhost'


class ExecutionError(Exception):
    """
    The command could not be run to completion (timeout, no result).

    A command that runs and exits non-zero is not an error; see
    Result.return_code.
    """


class RemoteExecutor(metaclass=abc.ABCMeta):

    def execute(self, host: str, action: str, user: str = None, as_sudo=False,
                **kwargs) -> Result:
        logger.debug("execute on %s: %s", host, action)
        rtn = self._execute_on_host(host, action, user=user, as_sudo=as_sudo,
                                    **kwargs)
        logger.debug("rc: %s", rtn.return_code)
        return rtn

    async def execute_async(self, host: str, action: str, **kwargs) -> Result:
        """
        Run execute in the loop's default thread pool and await the result.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(self.execute, host, action, **kwargs))

    @abc.abstractmethod
    def _execute_on_host(self, host: str, action: str, user: str = None,
                         as_sudo=False, **kwargs) -> Result:
        raise NotImplementedError('users must define _execute_on_host to use '
                                  'this base class')


class LocalExecutor(RemoteExecutor):
    """
    Run commands on this machine through the shell. 'host' is ignored.
    """

    def _execute_on_host(self, host: str, action: str, user: str = None,
                         as_sudo=False, env: Dict[str, str] = None,
                         timeout=30) -> Result:
        if as_sudo:
            action = "sudo {}".format(action)
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)
        try:
            rtn = subprocess.run(action, shell=True, env=full_env,
                                 stdout=subprocess.PIPE,
                                 stderr=subprocess.PIPE,
                                 universal_newlines=True, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise ExecutionError("Local execution has exceeded timeout -- "
                                 "'{}'".format(action)) from e
        return Result(rtn.returncode, rtn.stdout, rtn.stderr)


class FabricExecutor(RemoteExecutor):
    """
    Run commands on a remote host over SSH.

    Hosts are resolved through the SSH config file, so aliases, users and
    identity files may all come from there.
    """

    @staticmethod
    def _multiprocess_execute_on_host(q, host, action, config, user=None,
                                      as_sudo=False, connect_kwargs=None,
                                      env=None):
        with Connection(host, config=config, user=user,
                        connect_kwargs=connect_kwargs,
                        inline_ssh_env=True) as c:
            if as_sudo:
                rtn = c.sudo(action, hide=True, warn=True, env=env or {})
            else:
                rtn = c.run(action, hide=True, warn=True, env=env or {})

            q.put(Result(rtn.return_code, rtn.stdout, rtn.stderr))

    config = None

    def __init__(self, ssh_config_file=None):
        self.config = FabricExecutor._create_config(
            ssh_config_file=ssh_config_file)

    @staticmethod
    def _create_config(ssh_config_file=None):
        if ssh_config_file:
            FabricExecutor._is_readable_file(ssh_config_file, 'ssh_config')
        return Config(runtime_ssh_path=ssh_config_file)

    @staticmethod
    def _is_readable_file(path, file_kind):
        if not isinstance(path, str):
            raise ValueError("path to file must be a string")

        if os.access(path, os.R_OK):
            if os.path.isfile(path):
                return
            else:
                raise OSError("Path is not to a file -- '%s'" % str(path))
        else:
            raise OSError("Unable to access the file (not readable) -- %s -- "
                          "'%s'" % (file_kind, path))

    @staticmethod
    def _collect_connect_kwargs(identity_file):
        connect_kwargs = {}

        if identity_file:
            FabricExecutor._is_readable_file(identity_file, 'identity_file')
            connect_kwargs['key_filename'] = identity_file

        if not connect_kwargs:
            connect_kwargs = None

        return connect_kwargs

    def _execute_on_host(self, host: str, action: str, user: str = None,
                         as_sudo=False, identity_file=None,
                         env: Dict[str, str] = None, timeout=30) -> Result:
        connect_kwargs = self._collect_connect_kwargs(identity_file)

        p = None
        q = Queue()
        try:
            # Run in a subprocess; paramiko does not clean up reliably when a
            # connection is torn down mid command.
            p = Process(target=FabricExecutor._multiprocess_execute_on_host,
                        args=(q, host, action, self.config),
                        kwargs={'user': user, 'as_sudo': as_sudo,
                                'connect_kwargs': connect_kwargs,
                                'env': env})
            p.start()
            p.join(timeout=timeout)
            if p.is_alive():
                raise ExecutionError("Remote execution on {} has exceeded "
                                     "timeout".format(host))
            rtn = q.get(timeout=0.1)
        except AuthenticationException as e:
            logger.error("Authentication to %s failed", host)
            raise e
        except Empty:
            raise ExecutionError("Remote execution on {} did not provide "
                                 "results".format(host))
        finally:
            if p:
                p.terminate()

        return rtn


def executor_for(host: str = None,
                 ssh_config_file: str = None) -> RemoteExecutor:
    """
    Pick the executor able to reach 'host'.

    :param host: Host alias/hostname. None or 'localhost' runs locally.
        Optional. (Default: None)
    :type host: str
    :param ssh_config_file: The relative or absolute path to the SSH config
        file. Only used for remote hosts.
        Optional. (Default: None)
    :type ssh_config_file: str
    :return: RemoteExecutor
    """
    if not host or host == LOCALHOST:
        return LocalExecutor()
    if ssh_config_file:
        ssh_config_file = os.path.expanduser(ssh_config_file)
    return FabricExecutor(ssh_config_file=ssh_config_file)
