"""
Bridge that lets the synchronous matchers read from an asynchronous stream.

The matchers run in a worker thread; each read, seek or tell is submitted
to the event loop that owns the stream and awaited there, so the loop keeps
running other tasks between stream calls.
"""
import asyncio
import inspect
import io
from typing import Any


def is_async_stream(stream: Any) -> bool:
    """Check if ``stream.read`` is a coroutine function."""
    return inspect.iscoroutinefunction(getattr(stream, 'read', None))


class AsyncStreamBridge:
    """
    Blocking file-like view of an asynchronous stream.

    Must be used from a thread other than the one running ``loop``.
    """

    def __init__(self, stream: Any, loop: asyncio.AbstractEventLoop):
        self._stream = stream
        self._loop = loop

    def _call(self, name: str, *args):
        async def invoke():
            result = getattr(self._stream, name)(*args)
            if inspect.isawaitable(result):
                result = await result
            return result

        return asyncio.run_coroutine_threadsafe(invoke(), self._loop).result()

    def read(self, size: int = -1) -> bytes:
        return self._call('read', size)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        return self._call('seek', offset, whence)

    def tell(self) -> int:
        return self._call('tell')

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True
