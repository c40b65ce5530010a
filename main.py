import asyncio
import logging
import sys

from spotremote import config
from spotremote.plugin import Plugin
from spotremote.transport import JsonLinesTransport


logger = logging.getLogger("spotremote")

__all__ = ["Plugin", "main"]


async def _stdio_streams():
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, sys.stdout)
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer


async def run_stdio():
    """Serve device messages as JSON lines on stdin/stdout until EOF."""
    reader, writer = await _stdio_streams()
    device = JsonLinesTransport(reader, writer)
    plugin = Plugin()
    await plugin._main(device)
    try:
        async for message in device.messages():
            await plugin.handle_event(message)
        await plugin.wait_for_events()
    finally:
        await plugin._unload()


def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        asyncio.run(run_stdio())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
