import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from launchkit.bundling.funding import FundingService, estimate_cost, funding_status
from launchkit.bundling.launch import LaunchOrchestrator
from launchkit.dependencies import (
    get_funding_service, get_launch_orchestrator, get_project_repository, verify_api_key
)
from launchkit.exceptions import (
    AccountBusyError, AccountNotFoundError, BundleConfigError, InvalidTransitionError, LaunchInProgressError,
    LaunchKitError, NotReadyError, PreconditionError, ProjectNotFoundError
)
from launchkit.schemas import (
    BundleResult, FundingOverview, FundingPlanRequest, FundingReport, FundRequest, LaunchRequest,
    ProjectSnapshot, VerificationReport
)
from launchkit.services.repositories import ProjectRepository

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=['Bundle Launch'],
    dependencies=[Depends(verify_api_key)]
)

STATUS_CODES = {
    ProjectNotFoundError.__name__: 404,
    AccountNotFoundError.__name__: 404,
    NotReadyError.__name__: 400,
    BundleConfigError.__name__: 400,
    PreconditionError.__name__: 400,
    InvalidTransitionError.__name__: 400,
    AccountBusyError.__name__: 409,
    LaunchInProgressError.__name__: 409,
}


def status_code_for(error: Exception) -> int:
    return STATUS_CODES.get(type(error).__name__, 500)


def http_error(error: Exception, action: str) -> HTTPException:
    code = status_code_for(error)
    if code == 500:
        logger.error(f"{action} failed: {error}", exc_info=True)
    else:
        logger.warning(f"{action} rejected: {error}")
    return HTTPException(status_code=code, detail=str(error))


@router.post("/{project_id}/funding-plan", response_model=ProjectSnapshot)
async def save_funding_plan(
    project_id: str,
    request: FundingPlanRequest,
    service: FundingService = Depends(get_funding_service)
):
    """Assign bundle wallets and the per-wallet buy amount"""
    try:
        return await service.save_funding_plan(
            project_id, request.wallet_ids, request.wallet_count, request.buy_amount
        )
    except LaunchKitError as e:
        raise http_error(e, "Saving funding plan")


@router.post("/{project_id}/wallets/{wallet_id}/toggle", response_model=ProjectSnapshot)
async def toggle_wallet(
    project_id: str,
    wallet_id: str,
    service: FundingService = Depends(get_funding_service)
):
    """Add a single bundle wallet to the plan, or remove it if already assigned"""
    try:
        return await service.toggle_wallet(project_id, wallet_id)
    except LaunchKitError as e:
        raise http_error(e, "Toggling wallet")


@router.post("/{project_id}/fund", response_model=FundingReport)
async def fund_project(
    project_id: str,
    request: FundRequest,
    service: FundingService = Depends(get_funding_service)
):
    """Disperse SOL from the funding wallet to every unfunded bundle wallet"""
    try:
        return await service.fund_project(project_id, request.funding_wallet_id)
    except LaunchKitError as e:
        raise http_error(e, "Funding")


@router.post("/{project_id}/verify-funding", response_model=VerificationReport)
async def verify_funding(project_id: str, service: FundingService = Depends(get_funding_service)):
    try:
        return await service.verify_balances(project_id)
    except LaunchKitError as e:
        raise http_error(e, "Funding verification")


@router.get("/{project_id}/funding", response_model=FundingOverview)
async def get_funding(project_id: str, projects: ProjectRepository = Depends(get_project_repository)):
    try:
        project = await projects.get(project_id)
    except LaunchKitError as e:
        raise http_error(e, "Loading funding status")
    return FundingOverview(status=funding_status(project), cost=estimate_cost(project))


@router.post("/{project_id}/launch", response_model=BundleResult)
async def launch_project(
    project_id: str,
    request: LaunchRequest,
    orchestrator: LaunchOrchestrator = Depends(get_launch_orchestrator)
):
    """
    Launch the token with its bundle. Failures come back as a BundleResult
    (with partial progress) under the matching status code.
    """
    result = await orchestrator.launch(project_id, request.creator_wallet_id, request.metadata_uri)
    if result.success:
        return result

    code = STATUS_CODES.get(result.error_type, 500)
    if code != 500:
        raise HTTPException(status_code=code, detail=result.error)
    return JSONResponse(status_code=500, content=result.model_dump(mode="json"))
