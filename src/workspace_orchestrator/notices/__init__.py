"""Third-party license notices: lockfile walker, license resolver, report rendering."""

from workspace_orchestrator.notices.aggregator import (
    NOTICE_HEADER,
    NoticeAggregator,
    NoticesError,
    direct_dependencies,
    render_notices,
    write_notices,
)
from workspace_orchestrator.notices.lockfile import (
    CollectResult,
    LockfileError,
    LockfileGraph,
    collect,
)
from workspace_orchestrator.notices.resolver import (
    LICENSE_NOT_FOUND,
    NO_REPOSITORY,
    DependencyNode,
    LicenseResolver,
    normalize_repository,
)

__all__ = [
    "LICENSE_NOT_FOUND",
    "NOTICE_HEADER",
    "NO_REPOSITORY",
    "CollectResult",
    "DependencyNode",
    "LicenseResolver",
    "LockfileError",
    "LockfileGraph",
    "NoticeAggregator",
    "NoticesError",
    "collect",
    "direct_dependencies",
    "normalize_repository",
    "render_notices",
    "write_notices",
]
