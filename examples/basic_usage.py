#!/usr/bin/env python3
"""
Basic usage example for substrate-crunch
"""

import asyncio
import logging

from substrate_crunch import ConnectionSupervisor, Crunch, CrunchConfig


async def describe(config):
    # Connect once and show what the node turned out to be
    connection = await ConnectionSupervisor(config).acquire()
    try:
        info = connection.info
        print(f"Chain: {info.chain} ({connection.identity.name})")
        print(f"Node: {info.name} v{info.version}")
        print(f"SS58 prefix: {connection.address_format.ss58_prefix}")
        print(f"Token: {info.token_symbol} ({info.token_decimals} decimals)")
    finally:
        await connection.close()


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    config = CrunchConfig(
        substrate_ws_url="wss://westend-rpc.polkadot.io",
        stashes=("5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY",),
    )

    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(describe(config))

        # Inspect the stashes once, like --mode view
        ok = loop.run_until_complete(Crunch(config).view())
        print("SUCCESS inspection completed" if ok else "ERROR inspection failed")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
