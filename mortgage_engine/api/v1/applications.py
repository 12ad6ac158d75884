"""/v1/mortgage/applications - submission, listing, detail and lifecycle actions"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from mortgage_engine.api.v1.schemas import (
    ApplicationListResponse,
    ApplicationResponse,
    ApproveRequest,
    RejectRequest,
    ScheduleItemSchema,
    SubmitApplicationRequest,
)
from mortgage_engine.api.dependencies import (
    get_current_user_id,
    get_engine,
    get_property_client,
    get_request_id,
)
from mortgage_engine.domain.exceptions import PropertyCatalogError
from mortgage_engine.domain.models import ApplicationFilter, ApplicationStatus
from mortgage_engine.infrastructure.clients.property import PropertyClient
from mortgage_engine.infrastructure.database.session import get_db
from mortgage_engine.infrastructure.observability.metrics import property_fetch_failures_counter
from mortgage_engine.services.engine import MortgageEngine

router = APIRouter()


@router.post("/mortgage/applications", response_model=ApplicationResponse, status_code=201)
async def submit_application(
    request_body: SubmitApplicationRequest,
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    engine: MortgageEngine = Depends(get_engine),
    property_client: PropertyClient = Depends(get_property_client),
):
    """
    Submit a mortgage application.

    Flow:
    1. Resolve a display summary for the linked property (best effort)
    2. Validate, snapshot and persist the application as pending
    3. Commit
    """
    request_id = get_request_id(request)

    property_summary = None
    if request_body.property_id is not None:
        try:
            property_summary = await property_client.get_property_summary(request_body.property_id)
        except PropertyCatalogError as e:
            # Summary is display-only; submit without it
            property_fetch_failures_counter.inc()
            logging.warning(f"Property lookup failed: {e}", extra={"request_id": request_id})

    application = engine.submit(
        user_id,
        request_body.to_scenario(),
        request_body.to_applicant(),
        property_summary=property_summary,
    )
    db.commit()

    return ApplicationResponse.from_domain(application)


@router.get("/mortgage/applications", response_model=ApplicationListResponse)
def list_applications(
    status: Optional[ApplicationStatus] = Query(None),
    bank_id: Optional[int] = Query(None),
    sort_by: str = Query("created_at", description="created_at | submitted_at"),
    sort_order: str = Query("desc", description="asc | desc"),
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    user_id: int = Depends(get_current_user_id),
    engine: MortgageEngine = Depends(get_engine),
):
    """Caller's own applications, paginated"""
    app_filter = ApplicationFilter(
        status=status,
        bank_id=bank_id,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    applications, total = engine.list_applications(user_id, app_filter)

    return ApplicationListResponse(
        items=[ApplicationResponse.from_domain(app) for app in applications],
        total=total,
        page=page,
        page_size=page_size or engine.config.default_page_size,
    )


@router.get("/mortgage/applications/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: MortgageEngine = Depends(get_engine),
):
    return ApplicationResponse.from_domain(engine.get_application(user_id, application_id))


@router.get("/mortgage/applications/{application_id}/schedule", response_model=List[ScheduleItemSchema])
def get_application_schedule(
    application_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: MortgageEngine = Depends(get_engine),
):
    """Full repayment schedule, recomputed from the application's frozen terms"""
    schedule = engine.application_schedule(user_id, application_id)
    return [ScheduleItemSchema.from_domain(item) for item in schedule]


@router.post("/mortgage/applications/{application_id}/withdraw", response_model=ApplicationResponse)
def withdraw_application(
    application_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    engine: MortgageEngine = Depends(get_engine),
):
    application = engine.withdraw_application(user_id, application_id)
    db.commit()
    return ApplicationResponse.from_domain(application)


# Reviewer actions (caller authorization is handled by the gateway)


@router.post("/mortgage/applications/{application_id}/approve", response_model=ApplicationResponse)
def approve_application(
    application_id: int,
    request_body: ApproveRequest,
    db: Session = Depends(get_db),
    engine: MortgageEngine = Depends(get_engine),
):
    application = engine.approve_application(application_id, note=request_body.note)
    db.commit()
    return ApplicationResponse.from_domain(application)


@router.post("/mortgage/applications/{application_id}/reject", response_model=ApplicationResponse)
def reject_application(
    application_id: int,
    request_body: RejectRequest,
    db: Session = Depends(get_db),
    engine: MortgageEngine = Depends(get_engine),
):
    application = engine.reject_application(application_id, request_body.reason)
    db.commit()
    return ApplicationResponse.from_domain(application)


@router.post("/mortgage/applications/{application_id}/complete", response_model=ApplicationResponse)
def complete_application(
    application_id: int,
    db: Session = Depends(get_db),
    engine: MortgageEngine = Depends(get_engine),
):
    application = engine.complete_application(application_id)
    db.commit()
    return ApplicationResponse.from_domain(application)


@router.post("/mortgage/applications/{application_id}/cancel", response_model=ApplicationResponse)
def cancel_application(
    application_id: int,
    db: Session = Depends(get_db),
    engine: MortgageEngine = Depends(get_engine),
):
    application = engine.cancel_application(application_id)
    db.commit()
    return ApplicationResponse.from_domain(application)
