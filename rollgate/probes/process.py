from collections import namedtuple
from datetime import datetime

import psutil

from dateutil import parser as dateparser
from logzero import logger

from rollgate.execute.execute import LOCALHOST, RemoteExecutor

from typing import List

Process = namedtuple('Process', ['user', 'pid', 'start_time', 'command'])

PS_COMMAND = "ps -eo user,pid,lstart,args"


def local_processes() -> List[Process]:
    """
    Snapshot of this machine's process table.

    Processes that exit or deny access while being read are skipped.

    :return: List[Process]
    """
    processes = []
    for p in psutil.process_iter(['username', 'pid', 'create_time',
                                  'cmdline']):
        info = p.info
        cmdline = info.get('cmdline')
        if not cmdline:
            continue
        processes.append(Process(
            user=info.get('username'),
            pid=info['pid'],
            start_time=datetime.fromtimestamp(info['create_time'])
                if info.get('create_time') else None,
            command=" ".join(cmdline)))
    return processes


def parse_ps_line(line: str) -> Process:
    """
    Parse one line of 'ps -eo user,pid,lstart,args' output.

    lstart is always five fields, i.e. 'Mon Oct 18 10:00:00 2026'.

    :param line: A line of ps output, header excluded. Required.
    :type line: str
    :return: Process, or None when the line has no command
    """
    fields = line.split(None, 7)
    if len(fields) < 8:
        return None
    user, pid = fields[0], fields[1]
    start_time = dateparser.parse(" ".join(fields[2:7]))
    return Process(user=user, pid=int(pid), start_time=start_time,
                   command=fields[7].strip())


def parse_ps_output(output: str) -> List[Process]:
    processes = []
    # First line is the header
    for line in output.split("\n")[1:]:
        if not line.strip():
            continue
        process = parse_ps_line(line)
        if process and process.command:
            processes.append(process)
    return processes


async def list_processes(executor: RemoteExecutor = None,
                         host: str = LOCALHOST) -> List[Process]:
    """
    Process table of a host.

    The local table is read with psutil. Any other host is asked for its table
    with ps through the executor.

    :param executor: Executor able to reach host. Required for remote hosts.
        Optional. (Default: None)
    :type executor: RemoteExecutor
    :param host: Host alias/hostname.
        Optional. (Default: localhost)
    :type host: str
    :return: List[Process]
    """
    if host == LOCALHOST or executor is None:
        return local_processes()

    result = await executor.execute_async(host, PS_COMMAND)
    if result.return_code != 0:
        logger.error("Failed to read the process table on %s: %s", host,
                     result.stderr.strip())
        raise RuntimeError("ps failed on {} with {}".format(
            host, result.return_code))
    return parse_ps_output(result.stdout)
