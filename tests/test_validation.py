"""
Unit tests for the input rules
Every rule is checked independently and all violations are reported together
"""

import unittest
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from icd_search.config import SearchClusterInput, SecretGroupSpec
from icd_search.exceptions import ConfigurationError
from icd_search.validation import validate_inputs, ensure_valid

KEY_CRN = "crn:v1:bluemix:public:kms:us-south:a/abc123:11111111-2222-3333-4444-555555555555:key:aaaa"
BACKUP_CRN = "crn:v1:bluemix:public:hs-crypto:us-south:a/abc123:66666666-7777-8888-9999-000000000000:key:bbbb"
KMS_INSTANCE_CRN = "crn:v1:bluemix:public:kms:us-south:a/abc123:11111111-2222-3333-4444-555555555555::"


def make_input(**overrides):
    values = {"name": "search"}
    values.update(overrides)
    return SearchClusterInput(**values)


class TestEncryptionRules(unittest.TestCase):
    """Key identifiers against the encryption toggle"""

    def test_defaults_are_valid(self):
        self.assertEqual(validate_inputs(make_input()), [])

    def test_disabled_rejects_any_key(self):
        for keys in ({"kms_key_crn": KEY_CRN},
                     {"backup_encryption_key_crn": BACKUP_CRN},
                     {"kms_key_crn": KEY_CRN, "backup_encryption_key_crn": BACKUP_CRN}):
            with self.subTest(keys=keys):
                errors = validate_inputs(make_input(kms_encryption_enabled=False, **keys))
                self.assertEqual(len(errors), 1)
                self.assertIn("'kms_encryption_enabled' is false", errors[0])

    def test_enabled_requires_a_key(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            existing_kms_instance_crn=KMS_INSTANCE_CRN,
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("at least one of 'kms_key_crn' or 'backup_encryption_key_crn'", errors[0])

    def test_enabled_with_backup_key_only_is_valid(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            backup_encryption_key_crn=BACKUP_CRN,
            existing_kms_instance_crn=KMS_INSTANCE_CRN,
        ))
        self.assertEqual(errors, [])

    def test_policy_requires_kms_instance(self):
        errors = validate_inputs(make_input(kms_encryption_enabled=True, kms_key_crn=KEY_CRN))
        self.assertEqual(len(errors), 1)
        self.assertIn("'existing_kms_instance_crn' must be set", errors[0])

    def test_skipped_policy_does_not_need_kms_instance(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            kms_key_crn=KEY_CRN,
            skip_iam_authorization_policy=True,
        ))
        self.assertEqual(errors, [])

    def test_backup_key_and_default_backup_are_exclusive(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            kms_key_crn=KEY_CRN,
            backup_encryption_key_crn=BACKUP_CRN,
            use_default_backup_encryption_key=True,
            existing_kms_instance_crn=KMS_INSTANCE_CRN,
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("'use_default_backup_encryption_key' is true", errors[0])

    def test_created_key_without_instance_when_policy_skipped(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            backup_encryption_key_crn=BACKUP_CRN,
            skip_iam_authorization_policy=True,
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("so the encryption key can be created", errors[0])

    def test_created_key_without_instance_reported_once(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            backup_encryption_key_crn=BACKUP_CRN,
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("'existing_kms_instance_crn' must be set", errors[0])

    def test_unrecognized_key_service_with_policy(self):
        vault_key = "crn:v1:bluemix:public:vault:us-south:a/abc123:guid:key:k"
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            kms_key_crn=vault_key,
            existing_kms_instance_crn=KMS_INSTANCE_CRN,
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("got key service 'unrecognized'", errors[0])

    def test_unrecognized_key_service_without_policy(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            kms_key_crn="crn:v1:bluemix:public:vault:us-south:a/abc123:guid:key:k",
            skip_iam_authorization_policy=True,
        ))
        self.assertEqual(errors, [])

    def test_created_key_classified_by_instance(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=True,
            backup_encryption_key_crn=BACKUP_CRN,
            existing_kms_instance_crn="crn:v1:bluemix:public:vault:us-south:a/abc123:guid::",
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("got key service 'unrecognized'", errors[0])

    def test_rules_are_not_short_circuited(self):
        errors = validate_inputs(make_input(
            kms_encryption_enabled=False,
            backup_encryption_key_crn=BACKUP_CRN,
            use_default_backup_encryption_key=True,
            enable_elser_model=True,
            plan="enterprise",
        ))
        # disabled-with-key, exclusive backup, plan and admin credential rules
        self.assertEqual(len(errors), 4)


class TestModelActivationRules(unittest.TestCase):
    """Plan and administrator credential rules for model activation"""

    def test_requires_platinum_plan(self):
        errors = validate_inputs(make_input(
            enable_elser_model=True, plan="standard", admin_pass="secret-password",
        ))
        self.assertTrue(any("'plan' must be 'platinum'" in error for error in errors))

    def test_platinum_with_administrator_credential_is_valid(self):
        errors = validate_inputs(make_input(
            enable_elser_model=True,
            plan="platinum",
            service_credential_names={"admin1": "Administrator", "user2": "Viewer"},
        ))
        self.assertEqual(errors, [])

    def test_platinum_with_admin_pass_is_valid(self):
        errors = validate_inputs(make_input(
            enable_elser_model=True, plan="platinum", admin_pass="secret-password",
        ))
        self.assertEqual(errors, [])

    def test_requires_some_administrator_login(self):
        errors = validate_inputs(make_input(
            enable_elser_model=True,
            plan="platinum",
            service_credential_names={"reader": "Viewer"},
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("'Administrator' role or 'admin_pass'", errors[0])

    def test_rules_ignored_when_disabled(self):
        self.assertEqual(validate_inputs(make_input(enable_elser_model=False, plan="enterprise")), [])


class TestClusterRules(unittest.TestCase):

    def test_unknown_service_endpoints(self):
        errors = validate_inputs(make_input(service_endpoints="everywhere"))
        self.assertEqual(len(errors), 1)
        self.assertIn("'service_endpoints'", errors[0])

    def test_secret_mirrors_need_secrets_manager(self):
        errors = validate_inputs(make_input(
            service_credential_secrets=[SecretGroupSpec(secret_group_name="es")],
        ))
        self.assertEqual(len(errors), 1)
        self.assertIn("'existing_secrets_manager_instance_crn'", errors[0])


class TestEnsureValid(unittest.TestCase):

    def test_raises_with_every_message(self):
        with self.assertRaises(ConfigurationError) as raised:
            ensure_valid(make_input(enable_elser_model=True, plan="standard"))
        self.assertEqual(len(raised.exception.messages), 3)

    def test_valid_input_passes(self):
        self.assertIsNone(ensure_valid(make_input()))


if __name__ == '__main__':
    unittest.main()
