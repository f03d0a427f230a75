"""
L0 Data — ``__init__.py`` re-exports all data tables.
"""

from provisioner.core.services.provision.data.capabilities import (  # noqa: F401
    BINARY_RUNNER,
    PE_LINKER,
    RUST_TOOLCHAIN,
    SOURCE_TOOLCHAIN,
    assembler_capability,
    toolchain_capabilities,
)
from provisioner.core.services.provision.data.constants import (  # noqa: F401
    ARCH_MAP,
    DISTRO_FAMILIES,
    FAMILY_PACKAGE_MANAGER,
    LINKER_CANDIDATES,
    MARKER_FILES,
)
from provisioner.core.services.provision.data.package_managers import (  # noqa: F401
    HELPER_INSTALL,
    HELPER_REMOVE,
    PACKAGE_MANAGERS,
)
