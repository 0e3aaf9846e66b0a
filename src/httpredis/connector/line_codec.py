"""CRLF line framing over an asyncio stream pair."""

import asyncio
import logging
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)

CRLF = "\r\n"
DEFAULT_CLOSE_TIMEOUT = 1.0


class LineCodec:
    """Send commands as CRLF-terminated lines and read replies one line at a time.

    A blank line is returned like any other line; callers decide what it means.
    """

    def __init__(
        self,
        reader,
        writer,
        encoding: str = "utf-8",
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ):
        self._reader = reader
        self._writer = writer
        self._encoding = encoding
        self._closed = False
        self.close_timeout = close_timeout

    async def send_line(self, command: str) -> None:
        """Write one command and flush it before returning."""
        if not command.endswith(CRLF):
            command += CRLF
        self._writer.write(command.encode(self._encoding))
        await self._writer.drain()

    async def read_line(self) -> Optional[str]:
        """Next complete line without its terminator; None at end of stream.

        A trailing fragment with no newline before EOF is not a line and yields None.
        """
        raw = await self._reader.readline()
        if not raw or not raw.endswith(b"\n"):
            return None
        return raw.decode(self._encoding, errors="replace").rstrip("\r\n")

    async def lines(self) -> AsyncIterator[str]:
        """Lines until end of stream."""
        while True:
            line = await self.read_line()
            if line is None:
                return
            yield line

    async def close(self, abort: bool = False) -> None:
        """Close the stream. Errors during shutdown are logged, not raised.

        abort=True drops the transport without a TLS close_notify exchange; a peer
        that stopped reading would otherwise hold wait_closed() until the ssl
        shutdown timeout. The graceful path is bounded by close_timeout.
        """
        if self._closed:
            return
        self._closed = True
        if abort:
            self._writer.transport.abort()
            return
        self._writer.close()
        try:
            await asyncio.wait_for(self._writer.wait_closed(), timeout=self.close_timeout)
        except asyncio.TimeoutError:
            logger.debug("stream close: no close_notify within %.1fs, aborting", self.close_timeout)
            self._writer.transport.abort()
        except asyncio.CancelledError:
            self._writer.transport.abort()
            raise
        except (OSError, EOFError) as e:
            logger.debug("stream close: %s", e)

    @property
    def closed(self) -> bool:
        return self._closed
