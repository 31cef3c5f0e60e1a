#!/usr/bin/env python3
"""
Substrate Node Client
JSON-RPC 2.0 over a single WebSocket: requests and subscriptions share the socket
"""

import asyncio
import itertools
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import websockets
from websockets.exceptions import WebSocketException

from .exceptions import NodeConnectionError, RpcError

logger = logging.getLogger(__name__)

# Queued into subscription streams once the socket is gone
_CLOSED = object()


class Subscription:
    """Async iterator over the notifications of one node subscription"""

    def __init__(self, client: "NodeClient", subscription_id: str, queue: asyncio.Queue, unsubscribe_method: str):
        self.client = client
        self.subscription_id = subscription_id
        self.unsubscribe_method = unsubscribe_method
        self._queue = queue

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def unsubscribe(self) -> None:
        self.client._subscriptions.pop(self.subscription_id, None)
        if not self.client.closed:
            await self.client.request(self.unsubscribe_method, [self.subscription_id])


class NodeClient:
    """Connection to a substrate node RPC endpoint"""

    def __init__(self, url: str, websocket):
        self.url = url
        self._ws = websocket
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[str, asyncio.Future]] = {}
        self._subscriptions: Dict[str, asyncio.Queue] = {}
        self._closed_error: Optional[NodeConnectionError] = None
        self._reader = asyncio.ensure_future(self._read_loop())

    @classmethod
    async def connect(cls, url: str, open_timeout: float = 30) -> "NodeClient":
        try:
            websocket = await websockets.connect(url, max_size=None, open_timeout=open_timeout)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise NodeConnectionError(url, str(e) or e.__class__.__name__) from e
        logger.debug(f"WebSocket opened to {url}")
        return cls(url, websocket)

    @property
    def closed(self) -> bool:
        return self._closed_error is not None

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if self._closed_error is not None:
            raise self._closed_error

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = (method, future)
        message = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        try:
            await self._ws.send(json.dumps(message))
        except (OSError, WebSocketException) as e:
            self._pending.pop(request_id, None)
            raise NodeConnectionError(self.url, str(e)) from e
        return await future

    async def subscribe(self, method: str, params: Optional[List[Any]], unsubscribe_method: str) -> Subscription:
        subscription_id = await self.request(method, params)
        # Notifications may have arrived before the subscribe response
        queue = self._subscriptions.setdefault(subscription_id, asyncio.Queue())
        if self._closed_error is not None:
            queue.put_nowait(_CLOSED)
        return Subscription(self, subscription_id, queue, unsubscribe_method)

    async def close(self) -> None:
        try:
            await self._ws.close()
        except (OSError, WebSocketException) as e:
            logger.debug(f"Error closing WebSocket to {self.url}: {e}")
        if not self._reader.done():
            self._reader.cancel()
        try:
            await self._reader
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Reader for {self.url} stopped with an error: {e}")

    async def _read_loop(self) -> None:
        error = NodeConnectionError(self.url, "connection closed by node")
        try:
            async for message in self._ws:
                try:
                    self._dispatch(message)
                except Exception as e:
                    # One bad frame must not end the reader
                    logger.error(f"Discarding message from {self.url} that could not be dispatched: {e}")
        except (OSError, WebSocketException) as e:
            error = NodeConnectionError(self.url, str(e))
        finally:
            self._fail_all(error)

    def _dispatch(self, message) -> None:
        try:
            payload = json.loads(message)
        except ValueError:
            logger.warning(f"Discarding malformed message from {self.url}")
            return
        if not isinstance(payload, dict):
            return

        request_id = payload.get("id")
        if isinstance(request_id, (int, str)) and request_id in self._pending:
            method, future = self._pending.pop(request_id)
            if future.done():
                return
            if "error" in payload:
                error = payload["error"]
                if isinstance(error, dict):
                    future.set_exception(RpcError(method, error.get("code", 0), str(error.get("message", ""))))
                else:
                    future.set_exception(RpcError(method, 0, str(error)))
            else:
                future.set_result(payload.get("result"))
            return

        params = payload.get("params")
        if isinstance(params, dict) and isinstance(params.get("subscription"), (int, str)):
            queue = self._subscriptions.setdefault(params["subscription"], asyncio.Queue())
            queue.put_nowait(params.get("result"))
            return

        logger.debug(f"Unhandled message from {self.url}: {payload}")

    def _fail_all(self, error: NodeConnectionError) -> None:
        self._closed_error = error
        for _, future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
        for queue in self._subscriptions.values():
            queue.put_nowait(_CLOSED)

    # Substrate RPC helpers

    async def system_chain(self) -> str:
        return await self.request("system_chain")

    async def system_name(self) -> str:
        return await self.request("system_name")

    async def system_version(self) -> str:
        return await self.request("system_version")

    async def system_properties(self) -> Dict[str, Any]:
        return await self.request("system_properties") or {}

    async def get_storage(self, key: bytes, block_hash: Optional[str] = None) -> Optional[str]:
        params = ["0x" + key.hex()]
        if block_hash:
            params.append(block_hash)
        return await self.request("state_getStorage", params)

    async def get_keys_paged(self, prefix: bytes, count: int, start_key: Optional[str] = None,
                             block_hash: Optional[str] = None) -> List[str]:
        return await self.request("state_getKeysPaged", ["0x" + prefix.hex(), count, start_key, block_hash]) or []

    async def subscribe_finalized_heads(self) -> Subscription:
        return await self.subscribe(
            "chain_subscribeFinalizedHeads", [], "chain_unsubscribeFinalizedHeads"
        )

    async def get_block_hash(self, number: int) -> Optional[str]:
        return await self.request("chain_getBlockHash", [number])
