"""
Settings for senredis, read from the Django settings module.

Sentinel groups are declared in ``SENREDIS_GROUPS``::

    SENREDIS_GROUPS = {
        'default': [
            # host, port, weight, auth, retry, db
            ('10.0.0.1', 26379, 1, 'secret', 3, 0),
            ('10.0.0.2', 26379, 2, 'secret', 3, 0),
        ],
    }

Entries may also be dicts with the same keys.
"""

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from senredis.sentinel import SentinelMonitor

DEFAULTS = {
    'SENREDIS_GROUPS': {},
    'SENREDIS_HASH_TYPE': 'consistent',
    'SENREDIS_HASH_REPLICAS': 128,
    'SENREDIS_SOCKET_TIMEOUT': 3,
    'SENREDIS_PROTOCOL': 'tcp',
    'SENREDIS_NUMERIC_SIMPLE_STRINGS': False,
}


def get_setting(name):
    return getattr(settings, name, DEFAULTS[name])


def load_groups():
    return get_setting('SENREDIS_GROUPS')


def load_group(group):
    "The raw sentinel entries of ``group``."
    groups = load_groups()
    if group not in groups:
        raise ImproperlyConfigured(
            "Unknown redis group %r, add it to SENREDIS_GROUPS" % group)
    entries = groups[group]
    if not isinstance(entries, (list, tuple)) or not entries:
        raise ImproperlyConfigured(
            "SENREDIS_GROUPS[%r] must be a non-empty list of sentinels" % group)
    return list(entries)


def build_monitor(group, monitor_class=SentinelMonitor):
    """
    Returns a SentinelMonitor for ``group`` configured from settings.
    """
    return monitor_class(
        load_group(group),
        hash_type=get_setting('SENREDIS_HASH_TYPE'),
        replicas=get_setting('SENREDIS_HASH_REPLICAS'),
        protocol=get_setting('SENREDIS_PROTOCOL'),
        timeout=get_setting('SENREDIS_SOCKET_TIMEOUT'),
        numeric_simple_strings=get_setting('SENREDIS_NUMERIC_SIMPLE_STRINGS'))
