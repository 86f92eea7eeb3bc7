from typing import Dict, FrozenSet

from launchkit.exceptions import InvalidTransitionError, NotReadyError
from launchkit.models import ProjectStatus
from launchkit.schemas import ProjectSnapshot

# DRAFT -> LAUNCHED is the dev-buy-only shortcut
TRANSITIONS: Dict[ProjectStatus, FrozenSet[ProjectStatus]] = {
    ProjectStatus.DRAFT: frozenset({ProjectStatus.FUNDING, ProjectStatus.LAUNCHED}),
    ProjectStatus.FUNDING: frozenset({ProjectStatus.READY}),
    ProjectStatus.READY: frozenset({ProjectStatus.LAUNCHED}),
    ProjectStatus.LAUNCHED: frozenset(),
}


def check_transition(current: ProjectStatus, target: ProjectStatus) -> None:
    """Raise unless ``target`` is a forward move from ``current``.

    Staying put is allowed everywhere except LAUNCHED, which is terminal.
    """
    if current == target and current != ProjectStatus.LAUNCHED:
        return
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)


def requires_bundling(project: ProjectSnapshot) -> bool:
    return project.bundle_count > 0 and len(project.funded_assignments) > 0


def ensure_launchable(project: ProjectSnapshot) -> None:
    """READY, or DRAFT with nothing to bundle (dev buy only)"""
    if project.status == ProjectStatus.READY:
        return
    if project.status == ProjectStatus.DRAFT and not requires_bundling(project):
        return
    raise NotReadyError(f"Project not ready (status: {project.status.value})")
