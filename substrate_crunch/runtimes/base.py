#!/usr/bin/env python3
"""
Runtime Base
Capability contract every supported chain implements, plus the Substrate
staking behaviour the chains share
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Set, Tuple

from ..config import CrunchConfig
from ..exceptions import CrunchError, SubscriptionFinished
from ..fetchers import ExternalDataFetcher
from ..models import Connection, GradeRecord, PayoutBatch, PayoutCall, RuntimeIdentity
from ..notifier import WebhookNotifier
from ..utils import get_account_id_from_storage_key, hex_to_bytes, random_wait, storage_prefix

logger = logging.getLogger(__name__)

KEYS_PAGE_SIZE = 1000


class PayoutSubmitter(ABC):
    """Signs and submits payout batches on behalf of the crunch account"""

    @abstractmethod
    async def submit(self, connection: Connection, batch: PayoutBatch) -> None:
        pass


class LoggingPayoutSubmitter(PayoutSubmitter):
    """Records the batches it is given without submitting them"""

    async def submit(self, connection: Connection, batch: PayoutBatch) -> None:
        for call in batch.calls:
            logger.info(f"Staking.payout_stakers({call.stash}, {call.era}) queued on {batch.chain}")
        logger.info(f"Batch of {len(batch)} payout calls for era {batch.era} ready")


class BaseRuntime(ABC):
    """
    Chain-specific implementation of the three crunch operations

    Subclasses set the chain constants; inspect, run_batch and
    subscribe_and_react are shared by the Substrate staking chains and may be
    overridden where a chain differs.
    """

    identity: RuntimeIdentity = None
    # Chain name used by the ONE-T API, None when the chain is not graded
    onet_chain: Optional[str] = None
    # Maximum payout calls per utility batch
    max_batch_calls: int = 8

    def __init__(self, connection: Connection, config: CrunchConfig,
                 fetcher: ExternalDataFetcher = None, notifier: WebhookNotifier = None,
                 submitter: PayoutSubmitter = None, claimed_eras: Set[Tuple[str, int]] = None):
        self.connection = connection
        self.config = config
        self.fetcher = fetcher or ExternalDataFetcher(config)
        self.notifier = notifier or WebhookNotifier(config.notify_url, timeout=config.http_timeout)
        self.submitter = submitter or LoggingPayoutSubmitter()
        # (chain, era) pairs already submitted; shared across connections by the caller
        self.claimed_eras = claimed_eras if claimed_eras is not None else set()

    @property
    def client(self):
        return self.connection.client

    # Storage queries

    async def active_era(self, block_hash: Optional[str] = None) -> int:
        raw = await self.client.get_storage(storage_prefix("Staking", "ActiveEra"), block_hash)
        if raw is None:
            raise CrunchError(f"Active era not available on {self.connection.chain}")
        data = hex_to_bytes(raw)
        if len(data) < 4:
            raise CrunchError(f"Active era value too short: {raw}")
        return int.from_bytes(data[:4], "little")

    async def validator_accounts(self) -> Set[bytes]:
        """Account ids of every key in the Staking.Validators map"""
        prefix = storage_prefix("Staking", "Validators")
        accounts = set()
        start_key = None
        while True:
            keys = await self.client.get_keys_paged(prefix, KEYS_PAGE_SIZE, start_key)
            for key in keys:
                accounts.add(get_account_id_from_storage_key(hex_to_bytes(key)))
            if len(keys) < KEYS_PAGE_SIZE:
                return accounts
            start_key = keys[-1]

    def stash_accounts(self) -> List[bytes]:
        """Decode the configured stashes, skipping the ones that are not valid SS58"""
        accounts = []
        for stash in self.config.stashes:
            try:
                accounts.append(self.connection.address_format.decode(stash))
            except ValueError as e:
                logger.error(f"Skipping invalid stash address {stash}: {e}")
        return accounts

    async def grade(self, address: str) -> Optional[GradeRecord]:
        if self.onet_chain is None:
            return None
        return await self.fetcher.fetch_grade(self.onet_chain, address)

    # Capability contract

    async def inspect(self) -> None:
        """Log the validator status and grade of every stash"""
        accounts = self.stash_accounts()
        if not accounts:
            logger.warning(f"No stashes configured for {self.connection.chain}")
            return

        era = await self.active_era()
        validators = await self.validator_accounts()
        logger.info(f"Inspect {len(accounts)} stashes on {self.connection.chain} at active era {era}")

        for account in accounts:
            address = self.connection.address_format.encode(account)
            status = "is" if account in validators else "is not"
            logger.info(f"{address} {status} in the validator set")

            grade = await self.grade(address)
            if grade:
                logger.info(
                    f"{address} ONE-T grade {grade.grade} "
                    f"(authority inclusion {grade.authority_inclusion:.2%}, "
                    f"para-authority inclusion {grade.para_authority_inclusion:.2%}, "
                    f"sessions {grade.sessions})"
                )

    async def run_batch(self) -> None:
        """Build and submit payout calls for the last finished era, then notify"""
        accounts = self.stash_accounts()
        if not accounts:
            logger.warning(f"No stashes configured for {self.connection.chain}, nothing to crunch")
            return

        era = await self.active_era()
        claim_era = era - 1
        if claim_era < 0:
            logger.info(f"No finished era yet on {self.connection.chain}")
            return
        if (self.connection.chain, claim_era) in self.claimed_eras:
            logger.info(f"Era {claim_era} already crunched on {self.connection.chain}")
            return

        calls = [PayoutCall(stash=self.connection.address_format.encode(a), era=claim_era) for a in accounts]
        batches = [
            PayoutBatch(chain=self.connection.chain, era=claim_era, calls=calls[i:i + self.max_batch_calls])
            for i in range(0, len(calls), self.max_batch_calls)
        ]
        for batch in batches:
            await self.submitter.submit(self.connection, batch)
        self.claimed_eras.add((self.connection.chain, claim_era))

        summary = (
            f"Crunch {self.connection.chain}: {len(calls)} payouts for era {claim_era} "
            f"in {len(batches)} batches"
        )
        logger.info(summary)
        await self.notifier.send(summary)

    async def subscribe_and_react(self) -> None:
        """
        Crunch once, then follow finalized heads and crunch again whenever the
        active era advances. Raises SubscriptionFinished when the stream ends.
        """
        await self.run_batch()

        subscription = await self.client.subscribe_finalized_heads()
        last_era = await self.active_era()
        logger.info(f"Subscribed to finalized heads on {self.connection.chain} at era {last_era}")

        async for header in subscription:
            number = int(header["number"], 16)
            block_hash = await self.client.get_block_hash(number)
            era = await self.active_era(block_hash)
            if era <= last_era:
                continue

            logger.info(f"Era {last_era} paid at block #{number}, active era is now {era}")
            last_era = era
            wait = random_wait(self.config.era_wait)
            if wait:
                logger.info(f"Waiting {wait} seconds before crunching")
                await asyncio.sleep(wait)
            await self.run_batch()

        raise SubscriptionFinished()
