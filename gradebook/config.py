"""
Configuration settings for the gradebook app.

These values can be overridden in Django settings by prefixing with GRADEBOOK_.
For example, to grade with the percentage table by default:
    GRADEBOOK_DEFAULT_GRADING_SYSTEM = 'PERCENTAGE'

All configuration values are lazily loaded to avoid Django setup issues.
"""


def _get_setting(name, default):
    """Get a gradebook setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'GRADEBOOK_{name}', default)


_DEFAULTS = {
    # Built-in band table used when no GradingSystem row is marked default
    'DEFAULT_GRADING_SYSTEM': 'AF',

    # Ranking: False gives 1, 2, 3 for tied averages (roster order decides),
    # True gives competition ranking 1, 1, 3
    'RANK_SHARED_TIES': False,

    # Analytics and display limits
    'TOP_PERFORMERS_LIMIT': 5,

    # Export settings
    'EXCEL_HEADER_COLOR': '4F46E5',
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


# Module-level proxy object for attribute access
_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
