"""
Tests for reading sentinel groups from Django settings.

"""
from unittest import TestCase

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.test.utils import override_settings

from senredis import conf
from senredis.sentinel import SentinelMonitor

if not settings.configured:
    settings.configure()

GROUPS = {
    "default": [
        ("10.0.1.1", 26379, 1, "secret", 3, 0),
        {"host": "10.0.1.2", "port": 26379, "weight": 2, "auth": "secret"},
    ],
    "empty": [],
}


class TestConf(TestCase):

    def test_defaults(self):
        self.assertEqual(conf.get_setting("SENREDIS_HASH_REPLICAS"), 128)
        self.assertEqual(conf.get_setting("SENREDIS_HASH_TYPE"), "consistent")
        self.assertEqual(conf.load_groups(), {})

    def test_load_group(self):
        with override_settings(SENREDIS_GROUPS=GROUPS):
            self.assertEqual(conf.load_group("default"), GROUPS["default"])

    def test_unknown_group(self):
        with override_settings(SENREDIS_GROUPS=GROUPS):
            self.assertRaises(ImproperlyConfigured, conf.load_group, "other")

    def test_empty_group(self):
        with override_settings(SENREDIS_GROUPS=GROUPS):
            self.assertRaises(ImproperlyConfigured, conf.load_group, "empty")

    def test_build_monitor(self):
        """
        The monitor gets the weighted entries and the hash settings.
        """
        with override_settings(SENREDIS_GROUPS=GROUPS,
                               SENREDIS_HASH_TYPE="modulo",
                               SENREDIS_HASH_REPLICAS=64,
                               SENREDIS_SOCKET_TIMEOUT=1):
            monitor = conf.build_monitor("default")
        self.assertIsInstance(monitor, SentinelMonitor)
        self.assertEqual(len(monitor.pool), 3)
        self.assertEqual((monitor.hash_type, monitor.replicas, monitor.timeout),
                         ("modulo", 64, 1))
