"""
L3 Detection — ``__init__.py`` re-exports all read-only probes.
"""

from provisioner.core.services.provision.detection.capability_probe import (  # noqa: F401
    probe_all,
    probe_capability,
)
from provisioner.core.services.provision.detection.environment import (  # noqa: F401
    detect_architecture,
    probe_environment,
)
from provisioner.core.services.provision.detection.verification import (  # noqa: F401
    audit,
)
