"""
Configuration settings for attendance.

Override in Django settings by prefixing with ATTENDANCE_, e.g.:
    ATTENDANCE_API_TIMEOUT = 10  # seconds
"""


def _get_setting(name, default):
    from django.conf import settings
    return getattr(settings, f'ATTENDANCE_{name}', default)


_DEFAULTS = {
    # REST collaborator
    'API_BASE_URL': 'http://localhost:8000/academics/api',
    'API_TIMEOUT': 30,  # seconds

    # Status every student starts with when a register is opened
    'DEFAULT_STATUS': 'Present',

    # Statuses counted as attended in summaries
    'ATTENDED_STATUSES': ('Present', 'Late'),
}


class _ConfigProxy:
    """Lazy configuration proxy; settings are read on access."""

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


_config = _ConfigProxy()


def __getattr__(name):
    return getattr(_config, name)
