#!/usr/bin/env python3
"""
Crunch Run Modes
subscribe: follow era changes forever; flakes: crunch on a fixed interval
forever; view: inspect once. The long-running modes serve the health check
alongside.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .config import CrunchConfig
from .fetchers import ExternalDataFetcher
from .healthcheck import HealthCheckServer
from .models import Connection
from .notifier import WebhookNotifier
from .recovery import Backoff, ErrorKind, RecoveryAction, RunMode, classify_error, recovery_action
from .runtimes import BaseRuntime, PayoutSubmitter, get_runtime
from .supervisor import ConnectionSupervisor

logger = logging.getLogger(__name__)


async def load_stashes(config: CrunchConfig, fetcher: Optional[ExternalDataFetcher] = None) -> CrunchConfig:
    """Append the remote stash list to the configured stashes; fetch errors propagate"""
    fetcher = fetcher or ExternalDataFetcher(config)
    remote = await fetcher.fetch_stash_list()
    if remote:
        config = config.with_stashes(remote)
    return config


class Crunch:
    """Drives one run mode against whatever chain the node turns out to be"""

    def __init__(self, config: CrunchConfig,
                 supervisor: ConnectionSupervisor = None,
                 healthcheck: HealthCheckServer = None,
                 submitter: PayoutSubmitter = None,
                 runtime_factory: Callable[..., BaseRuntime] = get_runtime):
        self.config = config
        self.supervisor = supervisor or ConnectionSupervisor(config)
        self.healthcheck = healthcheck or HealthCheckServer(config.healthcheck_host, config.healthcheck_port)
        self.fetcher = ExternalDataFetcher(config)
        self.notifier = WebhookNotifier(config.notify_url, timeout=config.http_timeout)
        self.submitter = submitter
        self.runtime_factory = runtime_factory
        self.backoff = Backoff(config.error_interval, config.max_backoff)
        # Survives reconnects so a restarted cycle does not resubmit an era
        self.claimed_eras = set()

    def _runtime(self, connection: Connection) -> BaseRuntime:
        return self.runtime_factory(
            connection, self.config,
            fetcher=self.fetcher, notifier=self.notifier, submitter=self.submitter,
            claimed_eras=self.claimed_eras,
        )

    async def _cycle(self, operation: Callable[[BaseRuntime], Awaitable[None]]) -> Optional[Exception]:
        """Acquire a fresh connection, run one operation on it and discard it"""
        connection = await self.supervisor.acquire()
        try:
            await operation(self._runtime(connection))
        except Exception as e:
            return e
        finally:
            await connection.close()
        return None

    async def _recover(self, error: Exception, mode: RunMode) -> None:
        kind = classify_error(error)
        action = recovery_action(kind, mode)

        if action is RecoveryAction.FATAL:
            logger.error(f"Unrecoverable error: {error}")
            raise error

        if action is RecoveryAction.RESTART:
            if kind is ErrorKind.SOFT_NOTIFICATION_FAILURE:
                logger.warning("Notification message skipped!")
                logger.debug(f"{error}")
            else:
                logger.warning(f"{error}")
            await asyncio.sleep(self.config.restart_pause)
            return

        logger.error(f"{error}")
        wait = self.backoff.next_wait()
        logger.info(f"Retrying in {wait} seconds")
        await asyncio.sleep(wait)

    async def run_subscription_loop(self) -> None:
        while True:
            error = await self._cycle(lambda runtime: runtime.subscribe_and_react())
            if error is None:
                self.backoff.reset()
                continue
            await self._recover(error, RunMode.SUBSCRIBE)

    async def run_flakes_loop(self) -> None:
        while True:
            error = await self._cycle(lambda runtime: runtime.run_batch())
            if error is not None:
                await self._recover(error, RunMode.FLAKES)
                continue
            self.backoff.reset()
            logger.info(f"Next crunch in {self.config.interval} seconds")
            await asyncio.sleep(self.config.interval)

    async def _run_with_healthcheck(self, main: Callable[[], Awaitable[None]]) -> None:
        # A bind failure raises here, before the loop starts
        await self.healthcheck.start()
        tasks = [asyncio.ensure_future(main()), asyncio.ensure_future(self.healthcheck.serve_forever())]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            task.result()

    async def subscribe(self) -> None:
        """Restart the era subscription on error, forever"""
        await self._run_with_healthcheck(self.run_subscription_loop)

    async def flakes(self) -> None:
        """Restart the periodic crunch on error, forever"""
        await self._run_with_healthcheck(self.run_flakes_loop)

    async def view(self) -> bool:
        """Inspect once; returns False when the inspection failed"""
        error = await self._cycle(lambda runtime: runtime.inspect())
        if error is not None:
            logger.error(f"{error}")
            return False
        return True


async def run(config: CrunchConfig, mode: RunMode) -> bool:
    config = await load_stashes(config)
    crunch = Crunch(config)
    if mode is RunMode.VIEW:
        return await crunch.view()
    if mode is RunMode.SUBSCRIBE:
        await crunch.subscribe()
    else:
        await crunch.flakes()
    return True
