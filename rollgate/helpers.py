import asyncio
import inspect

from logzero import logger

from rollgate.common import true_list

from typing import Any, Awaitable, Callable, Union

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]


def run(callable, timeout: Union[int, float, None], *args, **kwargs) -> Any:
    """
    Run an async function on a fresh asyncio event loop

    :param callable: An async function pointer
    :type callable: Callable[..., Awaitable]
    :param timeout: Number of seconds the async function is allowed to execute
        before timing out. None waits forever.
    :type timeout: Union[int, float, None]
    :param *args: Expanded list of arguments to pass to the async function
    :type *args: Any
    :param **kwargs: Expanded keyword arguments to pass to the async function
    :type **kwargs: Any
    :return: Whatever the async function returns, None on timeout
    """
    async def bounded():
        return await asyncio.wait_for(callable(*args, **kwargs),
                                      timeout=timeout)
    try:
        return asyncio.run(bounded())
    except asyncio.TimeoutError:
        logger.error("Call to %s timed out!!!", callable)
        return None


def console_confirm(prompt: str) -> bool:
    """
    Ask a yes/no question on the console. Anything but a yes is a no.
    """
    try:
        answer = input("{} [y/N] ".format(prompt))
    except EOFError:
        logger.warning("No input available to confirm: %s", prompt)
        return False
    return answer.strip().lower() in true_list


def auto_confirm(answer: bool = True) -> Confirm:
    """
    Build a confirmation gate that always gives 'answer' without asking.
    """
    def confirm(prompt: str) -> bool:
        logger.info("%s -> %s (auto)", prompt, "yes" if answer else "no")
        return answer
    return confirm


async def ask(confirm: Confirm, prompt: str) -> bool:
    """
    Await a confirmation gate.

    Coroutine gates are awaited. Plain callables may block on user input, so
    they run in the loop's default thread pool.

    :param confirm: The confirmation gate. Required.
    :type confirm: Callable[[str], Union[bool, Awaitable[bool]]]
    :param prompt: The question. Required.
    :type prompt: str
    :return: bool
    """
    if inspect.iscoroutinefunction(confirm):
        return bool(await confirm(prompt))
    loop = asyncio.get_running_loop()
    answer = await loop.run_in_executor(None, confirm, prompt)
    if inspect.isawaitable(answer):
        answer = await answer
    return bool(answer)
