"""
Unit tests for stack configuration loading
"""

import unittest
from unittest.mock import Mock
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from icd_search.config import Config, SearchClusterInput


def stack_config(values):
    """Mock pulumi.Config backed by a plain dict"""
    config = Mock()
    config.get.side_effect = values.get
    config.get_bool.side_effect = values.get
    config.get_int.side_effect = values.get
    config.get_object.side_effect = values.get
    return config


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        inputs = Config(stack_config({})).load()

        self.assertEqual(inputs.name, "search-cluster")
        self.assertEqual(inputs.plan, "enterprise")
        self.assertEqual(inputs.service_endpoints, "private")
        self.assertEqual(inputs.members, 3)
        self.assertTrue(inputs.deletion_protection)
        self.assertFalse(inputs.kms_encryption_enabled)
        self.assertIsNone(inputs.auto_scaling)
        self.assertEqual(dict(inputs.service_credential_names), {})
        self.assertEqual(inputs.effective_resource_group_name, "search-cluster-rg")
        self.assertEqual(inputs.elser_script_dir, "scripts")

    def test_objects(self):
        inputs = Config(stack_config({
            "name": "logs",
            "elser_script_dir": "/opt/elser",
            "deletion_protection": False,
            "members": 5,
            "tags": ["team:search"],
            "service_credential_names": {"admin": "Administrator", "reader": "Viewer"},
            "auto_scaling": {"disk": {"enabled": True, "rate_increase_percent": 20}},
            "users": [{"name": "app", "password": "password123"}],
            "cbr_rules": [{"account_id": "acct", "description": "private only"}],
            "service_credential_secrets": [{
                "secret_group_name": "group",
                "service_credentials": [{
                    "secret_name": "secret",
                    "service_credentials_source_service_role": "Writer",
                    "secret_labels": ["es"],
                }],
            }],
        })).load()

        self.assertEqual(inputs.name, "logs")
        self.assertEqual(inputs.elser_script_dir, "/opt/elser")
        self.assertFalse(inputs.deletion_protection)
        self.assertEqual(inputs.members, 5)
        self.assertEqual(inputs.tags, ("team:search",))
        self.assertEqual(list(inputs.service_credential_names), ["admin", "reader"])
        self.assertTrue(inputs.auto_scaling.disk.enabled)
        self.assertEqual(inputs.auto_scaling.disk.rate_increase_percent, 20)
        self.assertFalse(inputs.auto_scaling.memory.enabled)
        self.assertEqual(inputs.users[0].type, "database")
        self.assertEqual(inputs.cbr_rules[0].enforcement_mode, "enabled")

        group = inputs.service_credential_secrets[0]
        self.assertEqual(group.service_credentials[0].secret_labels, ("es",))
        self.assertEqual(group.service_credentials[0].secret_auto_rotation_interval, 89)
        self.assertFalse(group.existing_secret_group)


class TestSearchClusterInput(unittest.TestCase):

    def test_credential_names_are_read_only(self):
        inputs = SearchClusterInput(name="search", service_credential_names={"a": "Viewer"})
        with self.assertRaises(TypeError):
            inputs.service_credential_names["b"] = "Editor"

    def test_effective_names(self):
        inputs = SearchClusterInput(name="search", key_name="custom")
        self.assertEqual(inputs.effective_key_ring_name, "search-es-key-ring")
        self.assertEqual(inputs.effective_key_name, "custom")


if __name__ == '__main__':
    unittest.main()
