#!/usr/bin/env python3
"""
Connection Supervisor
Opens the node connection, retrying forever, and resolves which chain it serves
"""

import asyncio
import logging
from typing import Any, Dict

from .config import CrunchConfig
from .exceptions import NodeConnectionError, RpcError, UnsupportedRuntimeError
from .models import AddressFormat, Connection, NodeInfo, RuntimeIdentity
from .node_client import NodeClient

logger = logging.getLogger(__name__)


def _first(value: Any) -> Any:
    # Multi-token chains report lists for tokenSymbol and tokenDecimals
    if isinstance(value, list):
        return value[0] if value else None
    return value


def resolve_address_format(properties: Dict[str, Any]) -> AddressFormat:
    """SS58 prefix from the node's system properties, 0 when not reported"""
    ss58_format = properties.get("ss58Format")
    if isinstance(ss58_format, int) and not isinstance(ss58_format, bool):
        return AddressFormat(ss58_prefix=ss58_format)
    return AddressFormat(ss58_prefix=0)


def resolve_runtime_identity(properties: Dict[str, Any]) -> RuntimeIdentity:
    """
    Map the node's token symbol to a supported runtime

    A missing, malformed or unknown symbol raises UnsupportedRuntimeError.
    """
    token_symbol = _first(properties.get("tokenSymbol"))
    if not isinstance(token_symbol, str):
        raise UnsupportedRuntimeError(str(token_symbol or ""))
    return RuntimeIdentity.from_token_symbol(token_symbol)


class ConnectionSupervisor:
    """Owns the node connection lifecycle for the run-mode loops"""

    def __init__(self, config: CrunchConfig):
        self.config = config
        self.url = config.substrate_ws_url

    async def acquire(self) -> Connection:
        """
        Connect to the node, waiting a fixed pause between failed attempts

        Connection failures are retried without limit. Only an unsupported
        runtime escapes, since reconnecting cannot fix it.
        """
        while True:
            try:
                client = await NodeClient.connect(self.url)
            except NodeConnectionError as e:
                await self._pause(e)
                continue

            try:
                return await self._describe(client)
            except UnsupportedRuntimeError:
                await client.close()
                raise
            except (NodeConnectionError, RpcError) as e:
                await client.close()
                await self._pause(e)

    async def _pause(self, error: Exception) -> None:
        logger.error(f"{error}")
        logger.info(f"Awaiting for connection using {self.url}")
        await asyncio.sleep(self.config.reconnect_pause)

    async def _describe(self, client: NodeClient) -> Connection:
        chain = await client.system_chain()
        name = await client.system_name()
        version = await client.system_version()
        properties = await client.system_properties()

        address_format = resolve_address_format(properties)
        identity = resolve_runtime_identity(properties)
        decimals = _first(properties.get("tokenDecimals"))

        info = NodeInfo(
            chain=chain,
            name=name,
            version=version,
            ss58_prefix=address_format.ss58_prefix,
            token_symbol=identity.value,
            token_decimals=decimals if isinstance(decimals, int) else 0,
        )
        logger.info(f"Connected to {chain} network using {self.url} * Substrate node {name} v{version}")
        return Connection(client=client, identity=identity, info=info, address_format=address_format)
