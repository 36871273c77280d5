"""
Tests for reserve attestation parsing and the mock custodian.
"""
import json
import unittest

from solvency.attestation import (
    MOCK_CUSTODIAN_SEED,
    MockCustodian,
    ReserveAttestation,
    attestation_message,
)
from solvency.crypto import field_hash
from solvency.errors import EncodingOverflow
from solvency.field import FIELD_MODULUS


class TestMockCustodian(unittest.TestCase):
    def setUp(self):
        self.custodian = MockCustodian(MOCK_CUSTODIAN_SEED)

    def test_attestation_verifies(self):
        attestation = self.custodian.attest(1_500_000)
        self.assertEqual(attestation.reserve_balance, 1_500_000)
        self.assertTrue(attestation.verify())

    def test_message_is_hash_of_balance(self):
        attestation = self.custodian.attest(1_500_000)
        self.assertEqual(attestation.message(), field_hash(1_500_000))
        self.assertEqual(attestation_message(1_500_000), field_hash(1_500_000))

    def test_altered_balance_fails(self):
        attestation = self.custodian.attest(1_500_000)
        forged = ReserveAttestation(
            custodian_public_key=attestation.custodian_public_key,
            reserve_balance=9_999_999,
            signature_r8=attestation.signature_r8,
            signature_s=attestation.signature_s,
        )
        self.assertFalse(forged.verify())

    def test_fixed_seed_gives_fixed_key(self):
        again = MockCustodian(MOCK_CUSTODIAN_SEED).attest(1_500_000)
        self.assertEqual(again, self.custodian.attest(1_500_000))

    def test_random_keys_differ(self):
        self.assertNotEqual(MockCustodian().attest(100).custodian_public_key,
                            MockCustodian().attest(100).custodian_public_key)

    def test_every_value_is_a_field_element(self):
        for balance in (0, 1, 1_500_000, 10**30):
            attestation = self.custodian.attest(balance)
            values = (*attestation.custodian_public_key, attestation.reserve_balance,
                      *attestation.signature_r8, attestation.signature_s)
            for value in values:
                self.assertLess(value, FIELD_MODULUS)
            self.assertTrue(attestation.verify())

    def test_balance_outside_field(self):
        with self.assertRaises(EncodingOverflow):
            self.custodian.attest(FIELD_MODULUS)


class TestAttestationParsing(unittest.TestCase):
    def setUp(self):
        self.attestation = MockCustodian(MOCK_CUSTODIAN_SEED).attest(1_500_000)

    def test_nested_round_trip(self):
        data = json.loads(json.dumps(self.attestation.to_dict()))
        self.assertEqual(ReserveAttestation.from_dict(data), self.attestation)

    def test_flat_bank_input(self):
        ax, ay = self.attestation.custodian_public_key
        data = {
            "bankPubKeyAx": str(ax),
            "bankPubKeyAy": str(ay),
            "bankBalance": "1500000",
            "bankSigR8x": str(self.attestation.signature_r8[0]),
            "bankSigR8y": str(self.attestation.signature_r8[1]),
            "bankSigS": str(self.attestation.signature_s),
        }
        parsed = ReserveAttestation.from_dict(data)
        self.assertEqual(parsed, self.attestation)
        self.assertTrue(parsed.verify())

    def test_rejects_negative_balance(self):
        data = self.attestation.to_dict()
        data["reserveBalance"] = "-1"
        with self.assertRaises(EncodingOverflow):
            ReserveAttestation.from_dict(data)

    def test_rejects_float_balance(self):
        data = self.attestation.to_dict()
        data["reserveBalance"] = 1.5
        with self.assertRaises(ValueError):
            ReserveAttestation.from_dict(data)

    def test_rejects_three_coordinates(self):
        data = self.attestation.to_dict()
        data["custodianPublicKey"] = ["1", "2", "3"]
        with self.assertRaises(ValueError):
            ReserveAttestation.from_dict(data)

    def test_rejects_coordinate_outside_field(self):
        data = self.attestation.to_dict()
        data["signature"]["R8x"] = str(FIELD_MODULUS)
        with self.assertRaises(EncodingOverflow) as ctx:
            ReserveAttestation.from_dict(data)
        self.assertEqual(ctx.exception.name, "bankSigR8x")

    def test_rejects_negative_public_key(self):
        data = self.attestation.to_dict()
        data["custodianPublicKey"][1] = "-5"
        with self.assertRaises(EncodingOverflow):
            ReserveAttestation.from_dict(data)

    def test_missing_signature(self):
        data = self.attestation.to_dict()
        del data["signature"]
        with self.assertRaises(KeyError):
            ReserveAttestation.from_dict(data)


if __name__ == '__main__':
    unittest.main()
