"""
L2 Resolver — ``__init__.py`` re-exports plan resolution.
"""

from provisioner.core.services.provision.resolver.plan_resolution import (  # noqa: F401
    resolve,
)
