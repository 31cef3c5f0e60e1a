"""
Tests for runtime dispatch and the shared Substrate staking behaviour
"""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest
from scalecodec.utils.ss58 import ss58_encode

from substrate_crunch.config import CrunchConfig
from substrate_crunch.exceptions import CrunchError, NotificationError, SubscriptionFinished
from substrate_crunch.models import AddressFormat, Connection, GradeRecord, NodeInfo, RuntimeIdentity
from substrate_crunch.runtimes import (
    RUNTIMES,
    BaseRuntime,
    CreditcoinRuntime,
    KusamaRuntime,
    PayoutSubmitter,
    PolkadotRuntime,
    WestendRuntime,
    get_runtime,
)
from substrate_crunch.utils import storage_prefix

ALICE_PUBLIC_KEY = bytes.fromhex("d43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d")
ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB_PUBLIC_KEY = bytes([7]) * 32
BOB = ss58_encode(BOB_PUBLIC_KEY, ss58_format=42)


def era_value(index: int) -> str:
    # ActiveEraInfo { index: u32, start: None }
    return "0x" + index.to_bytes(4, "little").hex() + "00"


def make_connection(identity=RuntimeIdentity.WESTEND, chain="Westend", prefix=42) -> Connection:
    client = AsyncMock()
    info = NodeInfo(chain=chain, name="Parity Polkadot", version="1.5.0", ss58_prefix=prefix,
                    token_symbol=identity.value, token_decimals=12)
    return Connection(client=client, identity=identity, info=info, address_format=AddressFormat(prefix))


class RecordingSubmitter(PayoutSubmitter):
    def __init__(self):
        self.batches = []

    async def submit(self, connection, batch):
        self.batches.append(batch)


class TestRuntimeRegistry:
    """Test identity to runtime selection"""

    def test_every_identity_registered(self):
        assert set(RUNTIMES) == set(RuntimeIdentity)

    @pytest.mark.parametrize("identity,runtime_class", [
        (RuntimeIdentity.POLKADOT, PolkadotRuntime),
        (RuntimeIdentity.KUSAMA, KusamaRuntime),
        (RuntimeIdentity.WESTEND, WestendRuntime),
        (RuntimeIdentity.CREDITCOIN, CreditcoinRuntime),
    ])
    def test_get_runtime(self, identity, runtime_class):
        runtime = get_runtime(make_connection(identity=identity), CrunchConfig())

        assert type(runtime) is runtime_class
        assert isinstance(runtime, BaseRuntime)
        assert runtime.identity is identity

    def test_collaborators_are_passed_through(self):
        submitter = RecordingSubmitter()
        notifier = Mock()
        runtime = get_runtime(make_connection(), CrunchConfig(), submitter=submitter, notifier=notifier)

        assert runtime.submitter is submitter
        assert runtime.notifier is notifier


class TestStorageQueries:
    def test_active_era(self):
        connection = make_connection()
        connection.client.get_storage.return_value = era_value(1234)
        runtime = get_runtime(connection, CrunchConfig())

        assert asyncio.run(runtime.active_era()) == 1234
        key = connection.client.get_storage.await_args[0][0]
        assert key == storage_prefix("Staking", "ActiveEra")

    def test_active_era_missing(self):
        connection = make_connection()
        connection.client.get_storage.return_value = None
        runtime = get_runtime(connection, CrunchConfig())

        with pytest.raises(CrunchError):
            asyncio.run(runtime.active_era())

    def test_validator_accounts_pages(self, monkeypatch):
        monkeypatch.setattr("substrate_crunch.runtimes.base.KEYS_PAGE_SIZE", 2)
        prefix = storage_prefix("Staking", "Validators")
        keys = ["0x" + (prefix + bytes(8) + bytes([i]) * 32).hex() for i in range(3)]
        connection = make_connection()
        connection.client.get_keys_paged.side_effect = [keys[:2], keys[2:]]
        runtime = get_runtime(connection, CrunchConfig())

        accounts = asyncio.run(runtime.validator_accounts())

        assert accounts == {bytes([i]) * 32 for i in range(3)}
        second_page = connection.client.get_keys_paged.await_args_list[1]
        assert second_page[0][2] == keys[1]


class TestRunBatch:
    """Test one crunch cycle"""

    @pytest.fixture
    def notifier(self):
        notifier = Mock()
        notifier.send = AsyncMock()
        return notifier

    def test_claims_previous_era(self, notifier):
        connection = make_connection()
        connection.client.get_storage.return_value = era_value(10)
        submitter = RecordingSubmitter()
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE, BOB)),
                              submitter=submitter, notifier=notifier)

        asyncio.run(runtime.run_batch())

        assert len(submitter.batches) == 1
        batch = submitter.batches[0]
        assert batch.chain == "Westend"
        assert batch.era == 9
        assert [(c.stash, c.era) for c in batch.calls] == [(ALICE, 9), (BOB, 9)]
        notifier.send.assert_awaited_once()
        assert "2 payouts for era 9" in notifier.send.await_args[0][0]

    def test_splits_batches(self, notifier):
        stashes = tuple(ss58_encode(bytes([i + 1]) * 32, ss58_format=2) for i in range(20))
        connection = make_connection(identity=RuntimeIdentity.KUSAMA, chain="Kusama", prefix=2)
        connection.client.get_storage.return_value = era_value(5000)
        submitter = RecordingSubmitter()
        runtime = get_runtime(connection, CrunchConfig(stashes=stashes), submitter=submitter, notifier=notifier)

        asyncio.run(runtime.run_batch())

        assert [len(b) for b in submitter.batches] == [16, 4]
        assert all(b.era == 4999 for b in submitter.batches)

    def test_renders_with_connection_prefix(self, notifier):
        connection = make_connection(identity=RuntimeIdentity.POLKADOT, chain="Polkadot", prefix=0)
        connection.client.get_storage.return_value = era_value(3)
        submitter = RecordingSubmitter()
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE,)), submitter=submitter, notifier=notifier)

        asyncio.run(runtime.run_batch())

        stash = submitter.batches[0].calls[0].stash
        assert stash == AddressFormat(0).encode(ALICE_PUBLIC_KEY)
        assert stash != ALICE

    def test_no_stashes(self, notifier):
        connection = make_connection()
        submitter = RecordingSubmitter()
        runtime = get_runtime(connection, CrunchConfig(), submitter=submitter, notifier=notifier)

        asyncio.run(runtime.run_batch())

        assert submitter.batches == []
        assert not connection.client.get_storage.called
        assert not notifier.send.called

    def test_invalid_stash_skipped(self, notifier):
        connection = make_connection()
        connection.client.get_storage.return_value = era_value(10)
        submitter = RecordingSubmitter()
        runtime = get_runtime(connection, CrunchConfig(stashes=("not-an-address", ALICE)),
                              submitter=submitter, notifier=notifier)

        asyncio.run(runtime.run_batch())

        assert [c.stash for c in submitter.batches[0].calls] == [ALICE]

    def test_notification_failure_propagates(self, notifier):
        notifier.send.side_effect = NotificationError("webhook down")
        connection = make_connection()
        connection.client.get_storage.return_value = era_value(10)
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE,)),
                              submitter=RecordingSubmitter(), notifier=notifier)

        with pytest.raises(NotificationError):
            asyncio.run(runtime.run_batch())

    def test_era_submitted_once_across_runtimes(self, notifier):
        notifier.send.side_effect = NotificationError("webhook down")
        submitter = RecordingSubmitter()
        claimed_eras = set()
        config = CrunchConfig(stashes=(ALICE,))

        for _ in range(2):
            connection = make_connection()
            connection.client.get_storage.return_value = era_value(10)
            runtime = get_runtime(connection, config, submitter=submitter, notifier=notifier,
                                  claimed_eras=claimed_eras)
            try:
                asyncio.run(runtime.run_batch())
            except NotificationError:
                pass

        assert len(submitter.batches) == 1
        assert claimed_eras == {("Westend", 9)}
        # Nothing to report the second time round
        assert notifier.send.await_count == 1

    def test_next_era_still_submitted(self, notifier):
        submitter = RecordingSubmitter()
        connection = make_connection()
        connection.client.get_storage.side_effect = [era_value(10), era_value(11)]
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE,)), submitter=submitter,
                              notifier=notifier, claimed_eras={("Westend", 8)})

        asyncio.run(runtime.run_batch())
        asyncio.run(runtime.run_batch())

        assert [b.era for b in submitter.batches] == [9, 10]


class TestInspect:
    """Test the one-shot inspection"""

    @pytest.fixture
    def fetcher(self):
        fetcher = Mock()
        fetcher.fetch_grade = AsyncMock(return_value=GradeRecord(
            address=ALICE, grade="A+", authority_inclusion=1.0, para_authority_inclusion=0.9, sessions=[1, 2]
        ))
        return fetcher

    def test_inspect_reports_validator_and_grade(self, fetcher, caplog):
        connection = make_connection()
        connection.client.get_storage.return_value = era_value(10)
        key = storage_prefix("Staking", "Validators") + bytes(8) + ALICE_PUBLIC_KEY
        connection.client.get_keys_paged.return_value = ["0x" + key.hex()]
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE, BOB)), fetcher=fetcher)

        with caplog.at_level(logging.INFO):
            asyncio.run(runtime.inspect())

        assert f"{ALICE} is in the validator set" in caplog.text
        assert f"{BOB} is not in the validator set" in caplog.text
        assert "ONE-T grade A+" in caplog.text
        assert fetcher.fetch_grade.await_args_list[0][0] == ("westend", ALICE)

    def test_creditcoin_is_not_graded(self, fetcher):
        connection = make_connection(identity=RuntimeIdentity.CREDITCOIN, chain="Creditcoin")
        connection.client.get_storage.return_value = era_value(10)
        connection.client.get_keys_paged.return_value = []
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE,)), fetcher=fetcher)

        asyncio.run(runtime.inspect())

        assert not fetcher.fetch_grade.called

    def test_short_validator_key_raises(self, fetcher):
        connection = make_connection()
        connection.client.get_storage.return_value = era_value(10)
        connection.client.get_keys_paged.return_value = ["0x0102"]
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE,)), fetcher=fetcher)

        with pytest.raises(ValueError):
            asyncio.run(runtime.inspect())


class TestSubscribeAndReact:
    """Test the era subscription"""

    def test_crunches_on_new_era_then_finishes(self):
        async def heads():
            for number in ("0x10", "0x11", "0x12"):
                yield {"number": number}

        connection = make_connection()
        client = connection.client
        client.subscribe_finalized_heads.return_value = heads()
        client.get_block_hash.return_value = "0xhash"
        client.get_storage.side_effect = [
            era_value(10),  # initial crunch
            era_value(10),  # era at subscription start
            era_value(10),  # head 0x10
            era_value(11),  # head 0x11: new era
            era_value(11),  # crunch for era 10
            era_value(11),  # head 0x12
        ]
        submitter = RecordingSubmitter()
        notifier = Mock()
        notifier.send = AsyncMock()
        runtime = get_runtime(connection, CrunchConfig(stashes=(ALICE,)), submitter=submitter, notifier=notifier)

        with pytest.raises(SubscriptionFinished):
            asyncio.run(runtime.subscribe_and_react())

        assert [b.era for b in submitter.batches] == [9, 10]
        assert client.get_block_hash.await_args_list[0][0] == (16,)
        assert notifier.send.await_count == 2
