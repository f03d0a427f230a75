"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from provisioner.core.services.provision.domain.commands import (  # noqa: F401
    build_helper_cmd,
    build_install_cmd,
    build_refresh_cmd,
    format_command,
    helper_removal_hint,
    removal_hint,
)
from provisioner.core.services.provision.domain.confirmation import (  # noqa: F401
    PROCEED_INSTALL,
    PROCEED_UNINSTALL,
    REMOVE_BUNDLED_ASSEMBLER,
    REMOVE_USER_CONFIG,
    Checkpoint,
    Confirmer,
    InteractiveConfirmer,
    PresetConfirmer,
)
from provisioner.core.services.provision.domain.distro import (  # noqa: F401
    classify_os_release,
    family_for_id,
    normalize_arch,
    package_manager_for,
    parse_os_release,
)
