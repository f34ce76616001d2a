import base64
import unittest

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ssf_vault.errors import EncodingError
from ssf_vault.layouts import ESCROW_SCHEMA, VAULT_SCHEMA
from ssf_vault.pda import find_escrow_address
from ssf_vault.tx_builder import (
    SYS_PROGRAM_ID,
    AccountRef,
    AccountRole,
    build_deposit_ix,
    build_initialize_ix,
    build_instruction,
    build_transfer_ix,
    build_withdraw_ix,
    encode_deposit,
    encode_initialize,
    encode_instruction,
    encode_transfer,
    encode_withdraw,
    escrow_accounts,
    instruction_to_dict,
    required_signers,
)


class TestEncoder(unittest.TestCase):
    def test_initialize_payload(self):
        data = encode_initialize()
        self.assertEqual(len(data), VAULT_SCHEMA.payload_size)
        self.assertEqual(data[0], 0)
        self.assertEqual(data[1:], bytes(len(data) - 1))

    def test_deposit_one(self):
        data = encode_deposit(1)
        self.assertEqual(data[0], 0x01)
        self.assertEqual(data[1:9], bytes([1, 0, 0, 0, 0, 0, 0, 0]))
        self.assertEqual(data[9:], bytes(len(data) - 9))
        self.assertEqual(len(data), ESCROW_SCHEMA.payload_size)

    def test_deposit_little_endian(self):
        data = encode_deposit(0x0102030405060708)
        self.assertEqual(data[1:9], bytes([8, 7, 6, 5, 4, 3, 2, 1]))

    def test_withdraw_payload(self):
        data = encode_withdraw()
        self.assertEqual(data[0], 0x02)
        self.assertEqual(data[1:], bytes(len(data) - 1))
        self.assertEqual(len(data), len(encode_deposit(1)))

    def test_transfer_payload_unpadded(self):
        data = encode_transfer(500)
        self.assertEqual(data, bytes([3]) + (500).to_bytes(8, "little"))

    def test_dispatch(self):
        self.assertEqual(encode_instruction(0), encode_initialize())
        self.assertEqual(encode_instruction(1, 7), encode_deposit(7))
        self.assertEqual(encode_instruction(2), encode_withdraw())
        self.assertEqual(encode_instruction(3, 7), encode_transfer(7))

    def test_contract_violations(self):
        with self.assertRaises(EncodingError):
            encode_instruction(4)
        with self.assertRaises(EncodingError):
            encode_instruction(1)
        with self.assertRaises(EncodingError):
            encode_instruction(2, 5)
        with self.assertRaises(EncodingError):
            encode_deposit(-1)
        with self.assertRaises(EncodingError):
            encode_deposit(2**64)
        with self.assertRaises(EncodingError):
            encode_deposit(True)

    def test_encoding_error_is_value_error(self):
        with self.assertRaises(ValueError):
            encode_instruction(255)


class TestAccountRole(unittest.TestCase):
    def test_wire_flags(self):
        self.assertEqual((AccountRole.SIGNER.is_signer, AccountRole.SIGNER.is_writable), (True, True))
        self.assertEqual((AccountRole.WRITABLE_ONLY.is_signer, AccountRole.WRITABLE_ONLY.is_writable), (False, True))
        self.assertEqual(
            (AccountRole.READONLY_REFERENCE.is_signer, AccountRole.READONLY_REFERENCE.is_writable), (False, False)
        )
        self.assertEqual(
            (AccountRole.DELEGATED_AUTHORITY.is_signer, AccountRole.DELEGATED_AUTHORITY.is_writable), (True, True)
        )


class TestInstructionBuilder(unittest.TestCase):
    def setUp(self):
        self.program_id = Pubkey.new_unique()
        self.operator = Keypair().pubkey()
        self.vault = Keypair().pubkey()
        self.user = Keypair().pubkey()
        self.escrow, _ = find_escrow_address(self.user, self.program_id)

    def flags(self, ix):
        return [(m.pubkey, m.is_signer, m.is_writable) for m in ix.accounts]

    def test_preserves_order(self):
        refs = [
            AccountRef(SYS_PROGRAM_ID, AccountRole.READONLY_REFERENCE),
            AccountRef(self.user, AccountRole.SIGNER),
            AccountRef(self.vault, AccountRole.WRITABLE_ONLY),
        ]
        ix = build_instruction(self.program_id, refs, b"\x09")
        self.assertEqual([m.pubkey for m in ix.accounts], [SYS_PROGRAM_ID, self.user, self.vault])
        self.assertEqual(ix.program_id, self.program_id)
        self.assertEqual(bytes(ix.data), b"\x09")

    def test_rejects_bad_shape(self):
        refs = [AccountRef(self.user, AccountRole.SIGNER)]
        with self.assertRaises(ValueError):
            build_instruction(None, refs, b"\x00")
        with self.assertRaises(ValueError):
            build_instruction(self.program_id, [], b"\x00")
        with self.assertRaises(ValueError):
            build_instruction(self.program_id, refs, b"")

    def test_initialize_accounts(self):
        ix = build_initialize_ix(self.operator, self.vault, self.program_id)
        self.assertEqual(
            self.flags(ix),
            [(self.operator, True, True), (self.vault, True, True), (SYS_PROGRAM_ID, False, False)],
        )
        self.assertEqual(bytes(ix.data), encode_initialize())

    def test_deposit_accounts(self):
        ix = build_deposit_ix(self.user, self.escrow, 1, self.program_id)
        self.assertEqual(
            self.flags(ix),
            [(self.user, True, True), (self.escrow, True, True), (SYS_PROGRAM_ID, False, False)],
        )
        self.assertEqual(bytes(ix.data), encode_deposit(1))

    def test_withdraw_accounts(self):
        ix = build_withdraw_ix(self.user, self.escrow, self.program_id)
        self.assertEqual(
            self.flags(ix),
            [(self.user, True, True), (self.escrow, True, True), (SYS_PROGRAM_ID, False, False)],
        )
        self.assertEqual(bytes(ix.data), encode_withdraw())

    def test_transfer_accounts(self):
        ix = build_transfer_ix(self.user, self.vault, 10, self.program_id)
        self.assertEqual(
            self.flags(ix),
            [(self.user, True, True), (self.vault, False, True), (SYS_PROGRAM_ID, False, False)],
        )

    def test_required_signers(self):
        refs = escrow_accounts(self.user, self.escrow)
        ix = build_instruction(self.program_id, refs, encode_withdraw())
        self.assertEqual(required_signers(ix), [self.user, self.escrow])

    def test_instruction_to_dict(self):
        ix = build_deposit_ix(self.user, self.escrow, 1, self.program_id)
        as_dict = instruction_to_dict(ix)
        self.assertEqual(as_dict["program_id"], str(self.program_id))
        self.assertEqual(as_dict["tag"], 1)
        self.assertEqual(as_dict["accounts"][1], {"pubkey": str(self.escrow), "signer": True, "writable": True})
        self.assertEqual(base64.b64decode(as_dict["data_b64"]), encode_deposit(1))


if __name__ == "__main__":
    unittest.main()
