"""
Server install service — package re-exports.

    from lspinstall.core.services.server_install import ResolutionEngine

Layers, innermost first: domain → resolver → detection → execution →
orchestration.
"""

# ── Errors ──
from lspinstall.core.services.server_install.errors import (  # noqa: F401
    IndexUnavailable,
    NoInformationError,
    NotFoundError,
    ResolutionError,
    ServerInstallError,
    SexpSyntaxError,
    UnsupportedSpecError,
)

# ── L1: Domain ──
from lspinstall.core.services.server_install.domain.classify import classify  # noqa: F401
from lspinstall.core.services.server_install.domain.descriptor import (  # noqa: F401
    ClientDescriptor,
    ConfigGroup,
    ConnectionType,
)

# ── L2: Resolver ──
from lspinstall.core.services.server_install.resolver.executable import (  # noqa: F401
    resolve_executable,
)

# ── L3: Detection ──
from lspinstall.core.services.server_install.detection.descriptor_extractor import (  # noqa: F401
    extract_descriptor,
)
from lspinstall.core.services.server_install.detection.doc_table import (  # noqa: F401
    find_install_command,
)
from lspinstall.core.services.server_install.detection.library_index import (  # noqa: F401
    LibraryIndex,
    LoadPathRegistry,
)

# ── L4: Execution ──
from lspinstall.core.services.server_install.execution.installer import (  # noqa: F401
    Installer,
    SubprocessInstaller,
)

# ── L5: Orchestration ──
from lspinstall.core.services.server_install.orchestration.engine import (  # noqa: F401
    LoggingPrompter,
    Prompter,
    ResolutionEngine,
)
