"""
Provisioning service — package re-exports.

Each symbol lives in its single-responsibility module inside the
appropriate onion layer (data → domain → resolver → detection →
execution → orchestration)::

    from provisioner.core.services.provision import run_install
"""

# ── L0: Data ──
from provisioner.core.services.provision.data.capabilities import (  # noqa: F401
    toolchain_capabilities,
)

# ── L1: Domain ──
from provisioner.core.services.provision.domain.confirmation import (  # noqa: F401
    InteractiveConfirmer,
    PresetConfirmer,
)

# ── L2: Resolver ──
from provisioner.core.services.provision.resolver.plan_resolution import (  # noqa: F401
    resolve,
)

# ── L3: Detection ──
from provisioner.core.services.provision.detection.capability_probe import (  # noqa: F401
    probe_all,
    probe_capability,
)
from provisioner.core.services.provision.detection.environment import (  # noqa: F401
    probe_environment,
)
from provisioner.core.services.provision.detection.verification import (  # noqa: F401
    audit,
)

# ── L4: Execution ──
from provisioner.core.services.provision.execution.artifacts import (  # noqa: F401
    install_artifacts,
)
from provisioner.core.services.provision.execution.config_materializer import (  # noqa: F401
    materialize,
)
from provisioner.core.services.provision.execution.privilege import (  # noqa: F401
    PrivilegeBroker,
)
from provisioner.core.services.provision.execution.source_build import (  # noqa: F401
    build_from_source,
)

# ── L5: Orchestration ──
from provisioner.core.services.provision.orchestration.orchestrator import (  # noqa: F401
    InstallRequest,
    run_install,
)
from provisioner.core.services.provision.orchestration.uninstall import (  # noqa: F401
    run_uninstall,
)
