"""
apps.config_core.services package.

Import from the submodules directly; ``bootstrap`` depends on
``apps.sites.services``, which in turn depends on ``adapters``.
"""
