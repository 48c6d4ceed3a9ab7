"""
Tests for madwallet.wallet.builder
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from madcore.constants import EPOCH_BLOCK_SIZE
from madcore.crypto import keccak256
from madcore.errors import (
    DataTooLargeError,
    ExternalCollaboratorError,
    InsufficientFundsError,
    ValidationError,
)
from madcore.models import Tx

from madwallet.backends.base import UTXOSet
from madwallet.wallet.builder import normalize_index
from madwallet.wallet.hasher import TxHasher, canonical_json
from madwallet.wallet.service import WalletService

SENDER_KEY = "6B59703273357638792F423F4528482B4D6251655468576D5A7134743677397A"
OTHER_KEY = "0x" + "00" * 31 + "01"
RECIPIENT = "ab" * 20
INDEX = "00" * 31 + "01"


def value_outputs(tx: Tx) -> list[tuple[int, str]]:
    return [
        (out.value_store.value, out.value_store.vs_pre_image.owner)
        for out in tx.vout
        if out.value_store is not None
    ]


def assert_reset(wallet: WalletService) -> None:
    assert wallet.builder.session.draft.is_empty()
    assert wallet.builder.session.requirements == {}


class TestNormalizeIndex:
    def test_text_is_padded(self) -> None:
        assert normalize_index("a") == "00" * 31 + "61"

    def test_hex(self) -> None:
        assert normalize_index("0x01") == INDEX

    def test_too_large(self) -> None:
        with pytest.raises(ValidationError):
            normalize_index("0x" + "ff" * 33)


class TestCreateValueStore:
    """Output creation and funding requirements."""

    @pytest.mark.asyncio
    async def test_adds_output_and_requirement(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        value_store = await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 2)

        assert value_store.value == 60
        assert value_store.vs_pre_image.owner == "0102" + RECIPIENT
        assert wallet.builder.session.requirements[sender.address].total_value == 60

    @pytest.mark.asyncio
    async def test_requirements_accumulate_per_address(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        other = wallet.add_account(OTHER_KEY)
        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        await wallet.builder.create_value_store(sender.address, "0x1e", RECIPIENT, 1)
        await wallet.builder.create_value_store(other.address, 5, RECIPIENT, 1)

        requirements = wallet.builder.session.requirements
        assert len(requirements) == 2
        assert requirements[sender.address].total_value == 90
        assert requirements[other.address].total_value == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "value,to,curve",
        [(0, RECIPIENT, 1), (-5, RECIPIENT, 1), (10, "xyz", 1), (10, RECIPIENT, 4)],
    )
    async def test_invalid_arguments(self, value: int, to: str, curve: int) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        with pytest.raises(ValidationError):
            await wallet.builder.create_value_store(sender.address, value, to, curve)
        assert_reset(wallet)

    @pytest.mark.asyncio
    async def test_unknown_sender(self) -> None:
        wallet = WalletService()
        with pytest.raises(ValidationError):
            await wallet.builder.create_value_store("cd" * 20, 1, RECIPIENT, 1)


class TestSend:
    """Funding, signing and submission against a ledger backend."""

    @pytest.mark.asyncio
    async def test_send_with_change(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 100, "a1" * 32)

        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        tx_hash = await wallet.builder.send()

        assert tx_hash == backend.submitted_hash
        tx = backend.sent[0]
        assert len(tx.vin) == 1
        assert tx.vin[0].consumed_tx_hash == "a1" * 32
        assert value_outputs(tx) == [(60, "0101" + RECIPIENT), (40, "0101" + sender.address)]
        assert_reset(wallet)

    @pytest.mark.asyncio
    async def test_no_value_leaks(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        for i, value in enumerate([30, 50, 20, 45]):
            backend.add_value_store(sender.address, value, f"b{i}" * 32)

        await wallet.builder.create_value_store(sender.address, 70, RECIPIENT, 1)
        await wallet.builder.create_value_store(sender.address, 12, RECIPIENT, 2)
        await wallet.builder.send()

        tx = backend.sent[0]
        consumed = {txin.consumed_tx_hash for txin in tx.vin}
        spent = sum(vs.value for _, vs in backend.value_stores.values() if vs.tx_hash in consumed)
        assert spent == sum(value for value, _ in value_outputs(tx))

    @pytest.mark.asyncio
    async def test_signatures_verify(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 100, "a1" * 32)

        await wallet.builder.create_value_store(sender.address, 100, RECIPIENT, 1)
        await wallet.builder.send()

        txin = backend.sent[0].vin[0]
        signature = bytes.fromhex(txin.signature)
        assert signature[:2] == b"\x01\x01"
        message = keccak256(canonical_json(txin.tx_in_linker.to_wire()))
        assert await sender.signer.verify(message, signature[2:])

    @pytest.mark.asyncio
    async def test_change_address_and_curve(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 100, "a1" * 32)

        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        await wallet.builder.send(change_address="ee" * 20, change_curve=2)
        assert value_outputs(backend.sent[0])[1] == (40, "0102" + "ee" * 20)

    @pytest.mark.asyncio
    async def test_explicit_utxo_ids(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 500, "a1" * 32)
        chosen = backend.add_value_store(sender.address, 80, "a2" * 32)

        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        await wallet.builder.send(utxo_ids=[chosen])
        assert [txin.consumed_tx_hash for txin in backend.sent[0].vin] == ["a2" * 32]

    @pytest.mark.asyncio
    async def test_insufficient_funds_resets(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 10, "a1" * 32)

        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        with pytest.raises(InsufficientFundsError):
            await wallet.builder.send()
        assert_reset(wallet)
        assert backend.sent == []

    @pytest.mark.asyncio
    async def test_transport_failure_is_wrapped(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 100, "a1" * 32)
        backend.send_transaction = AsyncMock(side_effect=RuntimeError("connection reset"))

        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        with pytest.raises(ExternalCollaboratorError) as exc_info:
            await wallet.builder.send()
        assert exc_info.value.operation == "send"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert_reset(wallet)

    @pytest.mark.asyncio
    async def test_nothing_to_send(self, backend) -> None:
        wallet = WalletService(backend)
        with pytest.raises(ValidationError):
            await wallet.builder.send()

    @pytest.mark.asyncio
    async def test_send_requires_backend(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        with pytest.raises(ValidationError):
            await wallet.builder.send()
        assert_reset(wallet)


class TestCreateDataStore:
    """Data store leases, issue epochs and renewals."""

    @pytest.mark.asyncio
    async def test_deposit(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        data_store = await wallet.builder.create_data_store(
            sender.address, "0x01", 3, "0x010203040506"
        )

        pre_image = data_store.pre_image
        assert pre_image.deposit_int == 1910
        assert pre_image.index == INDEX
        assert pre_image.issued_at == 10
        assert pre_image.owner == "0301" + sender.address
        requirement = wallet.builder.session.requirements[sender.address]
        assert requirement.total_value == 1910
        assert requirement.renewals[0].index == INDEX

    @pytest.mark.asyncio
    async def test_text_payload(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        data_store = await wallet.builder.create_data_store(sender.address, "key", 1, "hello", 4)
        assert data_store.pre_image.raw_data == "68656c6c6f"
        assert data_store.pre_image.issued_at == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "block,expected",
        [
            (EPOCH_BLOCK_SIZE * 3 + 100, 10),
            (EPOCH_BLOCK_SIZE * 3 + 960, 10),
            (EPOCH_BLOCK_SIZE * 3 + 961, 11),
            (EPOCH_BLOCK_SIZE * 3, 11),
        ],
    )
    async def test_issue_epoch_boundary(
        self, backend, block: int, expected: int
    ) -> None:
        backend.block_height = block
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        data_store = await wallet.builder.create_data_store(sender.address, "k", 1, "v")
        assert data_store.pre_image.issued_at == expected

    @pytest.mark.asyncio
    async def test_epoch_requires_backend(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        with pytest.raises(ValidationError):
            await wallet.builder.create_data_store(sender.address, "k", 1, "v")
        assert_reset(wallet)

    @pytest.mark.asyncio
    async def test_index_too_large(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        with pytest.raises(ValidationError):
            await wallet.builder.create_data_store(sender.address, "x" * 33, 1, "v", 1)

    @pytest.mark.asyncio
    async def test_data_too_large(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        with pytest.raises(DataTooLargeError):
            await wallet.builder.create_data_store(
                sender.address, "k", 1, b"\x00" * (2097152 + 1), 1
            )

    @pytest.mark.asyncio
    async def test_new_lease(self, backend) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 5000, "a1" * 32)

        await wallet.builder.create_data_store(sender.address, "0x01", 3, "0x010203040506")
        await wallet.builder.send()

        tx = backend.sent[0]
        assert len(tx.vin) == 1
        assert tx.vout[0].data_store is not None
        assert tx.vout[0].data_store.signature.startswith("0301")
        assert value_outputs(tx) == [(5000 - 1910, "0101" + sender.address)]

    @pytest.mark.asyncio
    async def test_renewal_credits_refund(self, backend, data_store_factory) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 1000, "a1" * 32)
        backend.add_data_store(
            sender.address,
            data_store_factory(sender.address, INDEX, "010203040506", 1910, 8, "d1" * 32),
        )

        await wallet.builder.create_data_store(sender.address, "0x01", 3, "0x010203040506")
        await wallet.builder.send()

        tx = backend.sent[0]
        # refund at epoch 10 for a store issued at 8: 1910 - 382 * 4 + 382 * 2
        owed = 1910 - 1146
        assert tx.vin[0].consumed_tx_hash == "d1" * 32
        assert tx.vin[0].signature.startswith("0301")
        assert tx.vin[1].consumed_tx_hash == "a1" * 32
        assert tx.vin[1].signature.startswith("0101")
        assert value_outputs(tx) == [(1000 - owed, "0101" + sender.address)]

    @pytest.mark.asyncio
    async def test_renewal_overfunds(self, backend, data_store_factory) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_data_store(
            sender.address,
            data_store_factory(sender.address, INDEX, "ff", 377 * 22, 10, "d1" * 32),
        )

        await wallet.builder.create_data_store(sender.address, "0x01", 1, "0xff")
        await wallet.builder.send()

        tx = backend.sent[0]
        assert [txin.consumed_tx_hash for txin in tx.vin] == ["d1" * 32]
        assert value_outputs(tx) == [(377 * 22 - 377 * 3, "0101" + sender.address)]

    @pytest.mark.asyncio
    async def test_expired_store_not_consumed(self, backend, data_store_factory) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 5000, "a1" * 32)
        backend.add_data_store(
            sender.address,
            data_store_factory(sender.address, INDEX, "010203040506", 1910, 2, "d1" * 32),
        )

        await wallet.builder.create_data_store(sender.address, "0x01", 3, "0x010203040506")
        await wallet.builder.send()
        assert [txin.consumed_tx_hash for txin in backend.sent[0].vin] == ["a1" * 32]

    @pytest.mark.asyncio
    async def test_store_at_other_index_not_consumed(self, backend, data_store_factory) -> None:
        wallet = WalletService(backend)
        sender = wallet.add_account(SENDER_KEY)
        backend.add_value_store(sender.address, 5000, "a1" * 32)
        backend.add_data_store(
            sender.address,
            data_store_factory(sender.address, "00" * 31 + "02", "ff", 1131, 10, "d1" * 32),
        )

        await wallet.builder.create_data_store(sender.address, "0x01", 1, "0xff")
        await wallet.builder.send()
        assert [txin.consumed_tx_hash for txin in backend.sent[0].vin] == ["a1" * 32]


class TestOfflineBuild:
    """Building from cached snapshots without a ledger backend."""

    @pytest.mark.asyncio
    async def test_empty_cache_is_insufficient(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        with pytest.raises(InsufficientFundsError):
            await wallet.builder.build()
        assert_reset(wallet)

    @pytest.mark.asyncio
    async def test_build_from_loaded_utxos(self, value_store_factory) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        wallet.accounts.load_utxos(
            sender.address,
            UTXOSet(value_stores=[value_store_factory(sender.address, 100, "c1" * 32, 2)]),
        )

        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        tx = await wallet.builder.build()

        assert tx.vin[0].consumed_tx_idx == 2
        assert value_outputs(tx) == [(60, "0101" + RECIPIENT), (40, "0101" + sender.address)]
        assert sender.utxo.value_stores == []
        assert_reset(wallet)

    @pytest.mark.asyncio
    async def test_offline_renewal_uses_cache(self, data_store_factory) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        wallet.accounts.load_utxos(
            sender.address,
            UTXOSet(
                data_stores=[
                    data_store_factory(sender.address, INDEX, "ff", 377 * 22, 10, "d1" * 32)
                ]
            ),
        )

        await wallet.builder.create_data_store(sender.address, "0x01", 1, "0xff", 10)
        tx = await wallet.builder.build()
        assert tx.vin[0].consumed_tx_hash == "d1" * 32
        assert sender.utxo.data_stores == []

    @pytest.mark.asyncio
    async def test_utxo_ids_need_backend(self) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        with pytest.raises(ValidationError):
            await wallet.builder.build(utxo_ids=["aa" * 32])
        assert_reset(wallet)

    @pytest.mark.asyncio
    async def test_failed_build_restores_cached_utxos(self, value_store_factory) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        wallet.accounts.load_utxos(
            sender.address,
            UTXOSet(value_stores=[value_store_factory(sender.address, 100, "c1" * 32)]),
        )
        hasher = wallet.builder.hasher
        wallet.builder.hasher = AsyncMock(spec=TxHasher)
        wallet.builder.hasher.compute_hashes.side_effect = RuntimeError("hasher offline")

        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        with pytest.raises(ExternalCollaboratorError):
            await wallet.builder.build()
        assert_reset(wallet)
        assert sender.utxo.value == 100
        assert [vs.tx_hash for vs in sender.utxo.value_stores] == ["c1" * 32]

        wallet.builder.hasher = hasher
        await wallet.builder.create_value_store(sender.address, 60, RECIPIENT, 1)
        tx = await wallet.builder.build()
        assert tx.vin[0].consumed_tx_hash == "c1" * 32

    @pytest.mark.asyncio
    async def test_failed_build_restores_renewed_store(self, data_store_factory) -> None:
        wallet = WalletService()
        sender = wallet.add_account(SENDER_KEY)
        data_store = data_store_factory(sender.address, INDEX, "ff", 377 * 22, 10, "d1" * 32)
        wallet.accounts.load_utxos(sender.address, UTXOSet(data_stores=[data_store]))
        sender.signer.sign = AsyncMock(side_effect=RuntimeError("device unplugged"))

        await wallet.builder.create_data_store(sender.address, "0x01", 1, "0xff", 10)
        with pytest.raises(ExternalCollaboratorError):
            await wallet.builder.build()
        assert sender.utxo.data_stores == [data_store]
