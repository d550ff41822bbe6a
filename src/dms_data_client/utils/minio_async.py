import asyncio
from functools import partial
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_io_bound(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Выполняет блокирующий вызов SDK хранилища в пуле потоков по умолчанию,
    не останавливая event loop. Исключения вызова пробрасываются как есть.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))
