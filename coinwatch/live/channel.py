"""Client side of the live price stream.

Every ``start()`` opens a new subscription and bumps ``generation``. Messages
are tagged with the generation of the subscription that produced them, so a
late frame from a torn-down subscription can be recognised and dropped.
"""
import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import aiohttp

from coinwatch.constants import LIVE_ERROR_MESSAGE, LIVE_MALFORMED_MESSAGE
from coinwatch.data.decode import decode_json
from coinwatch.data.gateway import GatewayError
from coinwatch.models import CoinOverview
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class LiveMessage:
    coins: Tuple[CoinOverview, ...] = ()
    updated_at: Optional[str] = None
    error: bool = False
    message: Optional[str] = None
    generation: int = 0


def decode_live_message(text: str, generation: int = 0) -> LiveMessage:
    """Decode one ``data:`` payload; anything unreadable becomes an error message."""
    parsed = decode_json(text)
    if not parsed.ok or not isinstance(parsed.value, dict):
        return LiveMessage(error=True, message=LIVE_MALFORMED_MESSAGE, generation=generation)

    data = parsed.value
    if data.get("error"):
        message = data.get("message")
        return LiveMessage(
            error=True,
            message=message if isinstance(message, str) and message else LIVE_ERROR_MESSAGE,
            generation=generation,
        )

    coins = data.get("coins")
    if not isinstance(coins, list):
        return LiveMessage(error=True, message=LIVE_MALFORMED_MESSAGE, generation=generation)
    overviews = tuple(o for o in (CoinOverview.from_dict(c) for c in coins) if o is not None)
    updated_at = data.get("updatedAt")
    return LiveMessage(
        coins=overviews,
        updated_at=updated_at if isinstance(updated_at, str) else None,
        generation=generation,
    )


class SSEParser:
    """Incremental server-sent-events parser.

    Feed it one line at a time; it returns the event data when a blank line
    closes an event. Comment lines (keep-alives) never produce an event.
    """

    def __init__(self):
        self._data: List[str] = []

    def feed(self, line: str) -> Optional[str]:
        line = line.rstrip("\r\n")
        if not line:
            if not self._data:
                return None
            data = "\n".join(self._data)
            self._data = []
            return data
        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            self._data.append(value)
        return None


def parse_sse_lines(lines: Sequence[str]) -> List[str]:
    parser = SSEParser()
    events = []
    for line in lines:
        data = parser.feed(line)
        if data is not None:
            events.append(data)
    return events


class LiveChannel:
    """Long-lived subscription to the live price stream.

    There is no automatic reconnect: a transport failure is reported through
    ``on_error`` and the owner decides when to ``start()`` again.
    """

    def __init__(
        self,
        url: str,
        on_message: Callable[[LiveMessage], None],
        on_error: Callable[[Exception, int], None],
        on_open: Optional[Callable[[int], None]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        connect_delay: float = 0.0,
    ):
        self.url = url
        self.on_message = on_message
        self.on_error = on_error
        self.on_open = on_open
        self.connect_delay = connect_delay
        self.generation = 0
        self._session = session
        self._owns_session = session is None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def start(self, ids: Sequence[str]) -> int:
        """Tear down any open subscription and open a new one. Returns its generation."""
        self.stop()
        self.generation += 1
        generation = self.generation
        delay = self.connect_delay
        self.connect_delay = 0.0
        self._task = asyncio.get_running_loop().create_task(self._run(list(ids), generation, delay))
        logger.info(f"Live channel generation {generation} starting for {len(ids)} coin(s)")
        return generation

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def close(self) -> None:
        task = self._task
        self.stop()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _run(self, ids: List[str], generation: int, delay: float) -> None:
        if delay:
            await asyncio.sleep(delay)
        params = {"ids": ",".join(ids)} if ids else {}
        try:
            session = self._get_session()
            async with session.get(
                self.url,
                params=params,
                headers={"accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(total=None, sock_read=None),
            ) as r:
                if r.status != 200:
                    raise GatewayError(f"live stream: HTTP {r.status}", status=r.status)
                if self.on_open is not None and self.is_current(generation):
                    self.on_open(generation)
                parser = SSEParser()
                async for raw in r.content:
                    data = parser.feed(raw.decode("utf-8", errors="replace"))
                    if data is None:
                        continue
                    if not self.is_current(generation):
                        logger.debug(f"Dropping frame from stale live generation {generation}")
                        return
                    self.on_message(decode_live_message(data, generation))
            raise GatewayError("live stream closed by server")
        except (aiohttp.ClientError, asyncio.TimeoutError, GatewayError) as e:
            logger.warning(f"Live channel generation {generation} failed: {e}")
            if self.is_current(generation):
                self.on_error(e, generation)
        except Exception as e:
            logger.exception(f"Live channel generation {generation} crashed: {e}")
            if self.is_current(generation):
                self.on_error(e, generation)
