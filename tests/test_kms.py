"""
Unit tests for encryption key resolution
CRN parsing, key service classification, backup key fallback and key creation
"""

import unittest
from unittest.mock import Mock
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from icd_search.backend import InMemoryBackend
from icd_search.config import SearchClusterInput
from icd_search.exceptions import ConfigurationError, MalformedIdentifier
from icd_search.kms import (
    KeyProvisioner,
    classify_key_family,
    parse_crn,
    resolve_backup_key,
    resolve_encryption_plan,
)

KMS_INSTANCE_CRN = "crn:v1:bluemix:public:kms:eu-de:a/abc123:11111111-2222-3333-4444-555555555555::"
HPCS_INSTANCE_CRN = "crn:v1:bluemix:public:hs-crypto:us-east:a/abc123:99999999-2222-3333-4444-555555555555::"
KEY_CRN = "crn:v1:bluemix:public:kms:eu-de:a/abc123:11111111-2222-3333-4444-555555555555:key:aaaa"
BACKUP_CRN = "crn:v1:bluemix:public:hs-crypto:us-south:a/abc123:66666666-7777-8888-9999-000000000000:key:bbbb"


class TestParseCrn(unittest.TestCase):

    def test_instance_crn(self):
        parts = parse_crn(KMS_INSTANCE_CRN)
        self.assertEqual(parts.guid, "11111111-2222-3333-4444-555555555555")
        self.assertEqual(parts.region, "eu-de")

    def test_offsets_match_manual_indexing(self):
        for identifier in ("a:b:c:d:e", "f1:f2:f3:f4:f5:f6:f7", "x:region-1:y:guid-1:z:w"):
            with self.subTest(identifier=identifier):
                fields = identifier.split(":")
                parts = parse_crn(identifier)
                self.assertEqual(parts.guid, fields[-3])
                self.assertEqual(parts.region, fields[-5])

    def test_too_few_fields(self):
        for identifier in ("a:b:c:d", "guid", ""):
            with self.subTest(identifier=identifier):
                with self.assertRaises(MalformedIdentifier):
                    parse_crn(identifier)


class TestClassifyKeyFamily(unittest.TestCase):

    def test_families(self):
        cases = {
            KEY_CRN: "kms",
            BACKUP_CRN: "hs-crypto",
            "crn:v1:bluemix:public:vault:us-south:a/x:y::": "unrecognized",
            None: "none",
        }
        for key, family in cases.items():
            with self.subTest(key=key):
                self.assertEqual(classify_key_family(key), family)

    def test_kms_checked_before_hs_crypto(self):
        self.assertEqual(classify_key_family("hs-crypto:kms"), "kms")

    def test_case_sensitive(self):
        self.assertEqual(classify_key_family("crn:v1:bluemix:public:KMS:x:y:z::"), "unrecognized")


class TestResolveBackupKey(unittest.TestCase):

    def test_default_backup_wins(self):
        self.assertIsNone(resolve_backup_key(True, BACKUP_CRN, KEY_CRN))
        self.assertIsNone(resolve_backup_key(True, None, KEY_CRN))

    def test_explicit_backup(self):
        self.assertEqual(resolve_backup_key(False, BACKUP_CRN, KEY_CRN), BACKUP_CRN)

    def test_falls_back_to_primary(self):
        self.assertEqual(resolve_backup_key(False, None, KEY_CRN), KEY_CRN)

    def test_no_primary_gives_no_backup(self):
        # Kept as-is: without any key the backup silently resolves to None
        self.assertIsNone(resolve_backup_key(False, None, None))


class TestKeyProvisioner(unittest.TestCase):

    def test_one_ring_one_key(self):
        backend = InMemoryBackend()
        key = KeyProvisioner(backend, "guid-1").ensure_key("ring", "key", "eu-de", 3, False)

        self.assertEqual(backend.names(), ["ring", "key"])
        self.assertEqual(key.depends_on, ["ring"])
        self.assertEqual(key.attributes["rotation"], {"interval_month": 3})
        self.assertEqual(key.attributes["region"], "eu-de")

    def test_same_names_same_key(self):
        first = KeyProvisioner(InMemoryBackend(), "guid-1").ensure_key("ring", "key", "eu-de", 3, False)
        second = KeyProvisioner(InMemoryBackend(), "guid-1").ensure_key("ring", "key", "eu-de", 3, False)
        self.assertEqual(first.attributes["crn"], second.attributes["crn"])


class TestResolveEncryptionPlan(unittest.TestCase):

    def test_disabled(self):
        plan = resolve_encryption_plan(SearchClusterInput(name="search"))
        self.assertIsNone(plan.primary_key_crn)
        self.assertIsNone(plan.backup_key_crn)
        self.assertEqual(plan.key_service_family, "none")
        self.assertFalse(plan.requires_authorization_policy)

    def test_existing_key(self):
        backend = Mock()
        plan = resolve_encryption_plan(SearchClusterInput(
            name="search",
            kms_encryption_enabled=True,
            kms_key_crn=KEY_CRN,
            existing_kms_instance_crn=KMS_INSTANCE_CRN,
        ), backend)

        backend.declare.assert_not_called()
        self.assertEqual(plan.primary_key_crn, KEY_CRN)
        self.assertEqual(plan.backup_key_crn, KEY_CRN)
        self.assertEqual(plan.key_service_family, "kms")
        self.assertEqual(plan.kms_instance_guid, "11111111-2222-3333-4444-555555555555")
        self.assertEqual(plan.kms_region, "eu-de")
        self.assertTrue(plan.requires_authorization_policy)
        self.assertFalse(plan.requires_cross_account_policy)

    def test_creates_key_when_only_backup_given(self):
        backend = InMemoryBackend()
        plan = resolve_encryption_plan(SearchClusterInput(
            name="search",
            kms_encryption_enabled=True,
            backup_encryption_key_crn=BACKUP_CRN,
            existing_kms_instance_crn=HPCS_INSTANCE_CRN,
        ), backend)

        self.assertEqual(backend.names(), ["search-es-key-ring", "search-es-key"])
        self.assertEqual(plan.primary_key_crn, backend.get("search-es-key").attributes["crn"])
        self.assertEqual(plan.backup_key_crn, BACKUP_CRN)
        self.assertEqual(plan.key_service_family, "hs-crypto")
        self.assertEqual(plan.kms_region, "us-east")
        self.assertIs(plan.provisioned_key, backend.get("search-es-key"))

    def test_creating_key_needs_instance(self):
        with self.assertRaises(ConfigurationError):
            resolve_encryption_plan(SearchClusterInput(
                name="search",
                kms_encryption_enabled=True,
                backup_encryption_key_crn=BACKUP_CRN,
                skip_iam_authorization_policy=True,
            ), InMemoryBackend())

    def test_malformed_instance(self):
        with self.assertRaises(MalformedIdentifier):
            resolve_encryption_plan(SearchClusterInput(
                name="search",
                kms_encryption_enabled=True,
                kms_key_crn=KEY_CRN,
                existing_kms_instance_crn="not-a-crn",
            ))

    def test_cross_account(self):
        plan = resolve_encryption_plan(SearchClusterInput(
            name="search",
            kms_encryption_enabled=True,
            kms_key_crn=KEY_CRN,
            existing_kms_instance_crn=KMS_INSTANCE_CRN,
            ibmcloud_kms_api_key="other-account-key",
        ))
        self.assertTrue(plan.requires_cross_account_policy)

    def test_cross_account_skipped(self):
        plan = resolve_encryption_plan(SearchClusterInput(
            name="search",
            kms_encryption_enabled=True,
            kms_key_crn=KEY_CRN,
            skip_iam_authorization_policy=True,
            ibmcloud_kms_api_key="other-account-key",
        ))
        self.assertFalse(plan.requires_cross_account_policy)
        self.assertFalse(plan.requires_authorization_policy)

    def test_deterministic(self):
        inputs = SearchClusterInput(
            name="search",
            kms_encryption_enabled=True,
            kms_key_crn=KEY_CRN,
            use_default_backup_encryption_key=True,
            existing_kms_instance_crn=KMS_INSTANCE_CRN,
        )
        self.assertEqual(resolve_encryption_plan(inputs), resolve_encryption_plan(inputs))


if __name__ == '__main__':
    unittest.main()
