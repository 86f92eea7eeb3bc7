from typing import Optional

from fastapi import Header, HTTPException

from launchkit.bundling.disperse import Disperser
from launchkit.bundling.funding import FundingService
from launchkit.bundling.launch import LaunchOrchestrator
from launchkit.config import settings
from launchkit.security import WalletKeyCustodian
from launchkit.services.jito import JitoBlockEngineClient
from launchkit.services.ledger import LedgerClient
from launchkit.services.locks import AccountLocks
from launchkit.services.pumpportal import PumpPortalClient
from launchkit.services.repositories import EventLogRepository, ProjectRepository


async def verify_api_key(x_api_key: Optional[str] = Header(None)):
    """Only enforced when API_KEY is configured"""
    if settings.API_KEY and x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_project_repository() -> ProjectRepository:
    return ProjectRepository()


def get_funding_service() -> FundingService:
    ledger = LedgerClient()
    custodian = WalletKeyCustodian()
    disperser = Disperser(ledger, custodian, events=EventLogRepository(), locks=AccountLocks())
    return FundingService(ProjectRepository(), custodian, ledger, disperser)


def get_launch_orchestrator() -> LaunchOrchestrator:
    return LaunchOrchestrator(
        projects=ProjectRepository(),
        custodian=WalletKeyCustodian(),
        ledger=LedgerClient(),
        generator=PumpPortalClient(),
        block_builder=JitoBlockEngineClient(),
        events=EventLogRepository(),
        locks=AccountLocks(),
    )
