import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import selectinload

from launchkit.exceptions import LaunchInProgressError, ProjectNotFoundError
from launchkit.lifecycle import check_transition
from launchkit.models import EventLog, EventType, Project, ProjectStatus, ProjectWallet
from launchkit.schemas import Account, FundingAssignment, ProjectSnapshot

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "status", "mint_address", "metadata_uri", "pending_mint_address", "bundle_count", "buy_amount_per_wallet"
}


def _default_session_factory():
    from launchkit.database import AsyncSessionLocal
    return AsyncSessionLocal


def to_snapshot(project: Project) -> ProjectSnapshot:
    return ProjectSnapshot(
        id=project.id,
        name=project.name,
        symbol=project.symbol,
        status=project.status,
        buy_amount_per_wallet=project.buy_amount_per_wallet,
        bundle_count=project.bundle_count,
        mint_address=project.mint_address,
        metadata_uri=project.metadata_uri,
        pending_mint_address=project.pending_mint_address,
        assignments=[
            FundingAssignment(
                id=pw.id,
                project_id=pw.project_id,
                account=Account(id=pw.wallet.id, address=pw.wallet.address),
                buy_amount=pw.buy_amount,
                funded=pw.is_funded,
            )
            for pw in project.assignments
        ],
    )


class ProjectRepository:
    """ProjectStore backed by the projects / project_wallets tables"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or _default_session_factory()

    @staticmethod
    async def _load(db, project_id: str) -> Project:
        stmt = (
            select(Project)
            .options(selectinload(Project.assignments).selectinload(ProjectWallet.wallet))
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        project = result.scalar_one_or_none()
        if not project:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return project

    async def get(self, project_id: str) -> ProjectSnapshot:
        async with self.session_factory() as db:
            return to_snapshot(await self._load(db, project_id))

    async def update(self, project_id: str, **patch: Any) -> ProjectSnapshot:
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update project fields: {', '.join(sorted(unknown))}")

        async with self.session_factory() as db:
            project = await self._load(db, project_id)
            if "status" in patch:
                check_transition(project.status, patch["status"])
            if patch.get("pending_mint_address") and project.pending_mint_address:
                raise LaunchInProgressError(
                    f"Project {project_id} already has pending mint {project.pending_mint_address}"
                )
            for field, value in patch.items():
                setattr(project, field, value)
            await db.commit()
            # Reload so relationships reflect the committed state
            return to_snapshot(await self._load(db, project_id))

    async def claim_pending_mint(self, project_id: str, mint_address: str) -> ProjectSnapshot:
        """Record ``mint_address`` as the in-flight mint unless another attempt got there first"""
        async with self.session_factory() as db:
            result = await db.execute(
                update(Project)
                .where(
                    Project.id == project_id,
                    Project.pending_mint_address.is_(None),
                    Project.status != ProjectStatus.LAUNCHED,
                )
                .values(pending_mint_address=mint_address)
            )
            await db.commit()
            project = await self._load(db, project_id)
            if result.rowcount == 0:
                raise LaunchInProgressError(
                    f"Project {project_id} already has a launch in flight (status: {project.status.value})"
                )
            return to_snapshot(project)

    async def mark_funded(self, assignment_ids: List[int]) -> None:
        if not assignment_ids:
            return
        async with self.session_factory() as db:
            await db.execute(
                update(ProjectWallet).where(ProjectWallet.id.in_(assignment_ids)).values(is_funded=True)
            )
            await db.commit()

    async def replace_assignments(self, project_id: str, wallet_ids: List[str], buy_amount: float) -> None:
        async with self.session_factory() as db:
            await self._load(db, project_id)
            await db.execute(delete(ProjectWallet).where(ProjectWallet.project_id == project_id))
            db.add_all([
                ProjectWallet(project_id=project_id, wallet_id=wallet_id, buy_amount=buy_amount, is_funded=False)
                for wallet_id in wallet_ids
            ])
            await db.commit()

    async def toggle_assignment(self, project_id: str, wallet_id: str, buy_amount: float) -> bool:
        """Assign the wallet if it isn't yet, unassign it if it is. Returns whether it ends up assigned."""
        async with self.session_factory() as db:
            await self._load(db, project_id)
            result = await db.execute(
                select(ProjectWallet).where(
                    ProjectWallet.project_id == project_id, ProjectWallet.wallet_id == wallet_id
                )
            )
            existing = result.scalar_one_or_none()
            if existing:
                await db.delete(existing)
            else:
                db.add(ProjectWallet(
                    project_id=project_id, wallet_id=wallet_id, buy_amount=buy_amount, is_funded=False
                ))
            await db.commit()
            return existing is None


class EventLogRepository:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or _default_session_factory()

    async def append(self, event_type: EventType, payload: Dict[str, Any], mint: Optional[str] = None) -> None:
        async with self.session_factory() as db:
            db.add(EventLog(type=event_type, mint=mint, payload=payload))
            await db.commit()
