#!/usr/bin/env python3
"""
Advanced usage example for substrate-crunch

Runs the periodic crunch with a custom payout submitter that collects every
batch in memory and prints a summary when interrupted.
"""

import asyncio
import logging

from substrate_crunch import Crunch, CrunchConfig, load_stashes
from substrate_crunch.runtimes import PayoutSubmitter


class CollectingSubmitter(PayoutSubmitter):
    """Keeps batches instead of signing them"""

    def __init__(self):
        self.batches = []

    async def submit(self, connection, batch):
        print(f"{batch.chain}: {len(batch)} payouts for era {batch.era}")
        self.batches.append(batch)


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    config = CrunchConfig(
        substrate_ws_url="wss://kusama-rpc.polkadot.io",
        stashes_url="https://example.org/kusama-stashes.txt",
        interval=3600,
        error_interval=2,
        max_backoff=3600,
        healthcheck_port=9998,
    )
    submitter = CollectingSubmitter()

    loop = asyncio.new_event_loop()
    try:
        config = loop.run_until_complete(load_stashes(config))
        print(f"Crunching {len(config.stashes)} stashes every {config.interval} seconds")
        loop.run_until_complete(Crunch(config, submitter=submitter).flakes())
    except KeyboardInterrupt:
        pass
    finally:
        loop.close()

    print(f"\n{'='*60}")
    print("CRUNCH SUMMARY")
    print('='*60)
    for batch in submitter.batches:
        print(f"era {batch.era}: {', '.join(call.stash for call in batch.calls)}")


if __name__ == "__main__":
    main()
