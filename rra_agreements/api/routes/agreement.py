"""Agreement API routes: templates, compliance, preview and the wizard."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import ValidationError

from rra_agreements.api.schemas import (
    ComplianceRequest,
    DepositLimitsRequest,
    DepositLimitsResponse,
    HealthResponse,
    PreviewRequest,
    PreviewResponse,
    TemplateItem,
    TemplatesResponse,
    WizardCreateRequest,
    WizardDataRequest,
    WizardGotoRequest,
    WizardSignRequest,
    WizardStateResponse,
)
from rra_agreements.api.session_store import SessionEntry, SessionStore
from rra_agreements.db.mapping import form_data_to_json
from rra_agreements.models.compliance import ComplianceCheckResult
from rra_agreements.services import compliance
from rra_agreements.services.agreement_creator import AgreementCreatorService
from rra_agreements.services.substitution import render_template
from rra_agreements.services.wizard import AgreementWizard, agreement_filename
from rra_agreements.utils.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()

# Shared session store and service, set via init_store()/init_service() from app.py
store: SessionStore = SessionStore()
service: Optional[AgreementCreatorService] = None

NOT_FOUND_MESSAGES = {
    "Match not found",
    "Agreement not found",
    "Template not found",
    "No agreement template available",
}


def init_store(shared_store: SessionStore):
    """Set the shared session store (called from app.py)."""
    global store
    store = shared_store


def init_service(shared_service: AgreementCreatorService):
    """Set the agreement service (called from app.py, or tests)."""
    global service
    service = shared_service


def get_service() -> AgreementCreatorService:
    global service
    if service is None:
        service = AgreementCreatorService()
    return service


def _http_error(e: Exception) -> HTTPException:
    """Map service exceptions to HTTP errors"""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, ValueError):
        status = 404 if str(e) in NOT_FOUND_MESSAGES else 400
        return HTTPException(status_code=status, detail=str(e))
    logger.error(f"Agreement API error: {e}")
    return HTTPException(status_code=500, detail=str(e))


async def _get_entry(session_id: str) -> SessionEntry:
    entry = await store.get(session_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Wizard session not found")
    return entry


def _state(entry: SessionEntry, moved: Optional[bool] = None) -> WizardStateResponse:
    wizard = entry.wizard
    agreement = wizard.agreement
    return WizardStateResponse(
        session_id=entry.session_id,
        agreement_id=agreement.id if agreement else None,
        template_id=wizard.template.id if wizard.template else None,
        status=agreement.status.value if agreement else None,
        current_step=wizard.current_step,
        steps=wizard.steps,
        current_step_errors=wizard.current_step_errors,
        form_data=form_data_to_json(wizard.form_data),
        compliance=wizard.compliance_result,
        can_generate=wizard.can_generate,
        moved=moved,
        error=wizard.error,
        generated_pdf_path=agreement.generated_pdf_path if agreement else None,
        generated_at=agreement.generated_at if agreement else None,
    )


@router.get("/api/health", response_model=HealthResponse)
async def health():
    """Health check endpoint"""
    try:
        settings = get_settings()
        configured = bool(settings.supabase_url and settings.supabase_key)
        status = "ok"
    except ValidationError:
        configured = False
        status = "error"

    return HealthResponse(
        status=status,
        supabase_configured=configured,
        active_sessions=store.active_count,
    )


# Templates and stateless tools

@router.get("/api/agreements/templates", response_model=TemplatesResponse)
async def list_templates():
    """List active agreement templates"""
    try:
        templates = await get_service().get_active_templates()
    except RuntimeError as e:
        raise _http_error(e)
    return TemplatesResponse(templates=[
        TemplateItem(
            id=t.id,
            name=t.name,
            description=t.description,
            version=t.version,
            is_system_template=t.is_system_template,
            section_count=len(t.sections),
            clause_count=sum(len(s.clauses) for s in t.sections),
        )
        for t in templates
    ])


@router.get("/api/agreements/templates/default")
async def default_template():
    """The default RRA 2025 template with its sections"""
    try:
        template = await get_service().get_default_template()
    except (ValueError, RuntimeError) as e:
        raise _http_error(e)
    return template.model_dump(mode="json", by_alias=True)


@router.post("/api/agreements/compliance", response_model=ComplianceCheckResult)
async def check_compliance(request: ComplianceRequest):
    """Check a draft against RRA 2025 requirements"""
    try:
        return compliance.check_compliance(request.form_data)
    except ValidationError as e:
        raise _http_error(e)


@router.post("/api/agreements/deposit-limits", response_model=DepositLimitsResponse)
async def deposit_limits(request: DepositLimitsRequest):
    """Deposit and holding-deposit caps for a monthly rent"""
    rent = request.monthly_rent
    max_deposit = compliance.calculate_max_deposit(rent)
    response = DepositLimitsResponse(
        monthly_rent=rent,
        weekly_rent=round(compliance.weekly_rent(rent), 2),
        max_deposit_weeks=compliance.max_deposit_weeks(rent),
        max_deposit=round(max_deposit, 2),
        max_holding_deposit=round(compliance.calculate_max_holding_deposit(rent), 2),
        max_rent_in_advance_months=compliance.get_max_rent_in_advance_months(),
    )
    if request.deposit_amount is not None:
        response.deposit_weeks = round(
            compliance.calculate_deposit_weeks(rent, request.deposit_amount), 1
        )
        response.deposit_within_limit = request.deposit_amount <= max_deposit
    return response


@router.post("/api/agreements/preview", response_model=PreviewResponse)
async def preview(request: PreviewRequest):
    """Render a template against a draft without saving anything"""
    svc = get_service()
    try:
        if request.template_id:
            template = await svc.get_template_by_id(request.template_id)
            if template is None:
                raise ValueError("Template not found")
        else:
            template = await svc.get_default_template()
        sections = render_template(template, request.form_data)
    except (ValueError, RuntimeError) as e:
        raise _http_error(e)
    return PreviewResponse(
        template_id=template.id,
        template_version=template.version,
        sections=sections,
    )


# Wizard sessions

@router.post("/api/wizard", response_model=WizardStateResponse, status_code=201)
async def open_wizard(request: WizardCreateRequest):
    """Open a wizard for a match, resuming the user's draft if one exists.

    Initialization failures are reported in `error`; POST .../retry to try again.
    """
    svc = get_service()
    try:
        match = await svc.get_match(request.match_id)
    except (ValueError, RuntimeError) as e:
        raise _http_error(e)

    wizard = AgreementWizard(
        svc,
        match,
        current_user_id=request.user_id,
        current_user_type=request.user_type,
        autosave_delay=get_settings().autosave_delay_seconds,
    )
    await wizard.initialize()
    entry = await store.add(wizard)
    return _state(entry)


@router.get("/api/wizard/{session_id}", response_model=WizardStateResponse)
async def get_wizard(session_id: str):
    entry = await _get_entry(session_id)
    return _state(entry)


@router.post("/api/wizard/{session_id}/retry", response_model=WizardStateResponse)
async def retry_wizard(session_id: str):
    """Re-run initialization after a failure"""
    entry = await _get_entry(session_id)
    await entry.wizard.initialize()
    return _state(entry)


@router.patch("/api/wizard/{session_id}/data", response_model=WizardStateResponse)
async def update_wizard_data(session_id: str, request: WizardDataRequest):
    """Merge form changes; compliance is re-checked and a save is scheduled"""
    entry = await _get_entry(session_id)
    try:
        entry.wizard.update_form_data(request.data)
    except ValidationError as e:
        raise _http_error(e)
    return _state(entry)


@router.post("/api/wizard/{session_id}/next", response_model=WizardStateResponse)
async def wizard_next(session_id: str):
    entry = await _get_entry(session_id)
    return _state(entry, moved=entry.wizard.next())


@router.post("/api/wizard/{session_id}/previous", response_model=WizardStateResponse)
async def wizard_previous(session_id: str):
    entry = await _get_entry(session_id)
    return _state(entry, moved=entry.wizard.previous())


@router.post("/api/wizard/{session_id}/goto", response_model=WizardStateResponse)
async def wizard_goto(session_id: str, request: WizardGotoRequest):
    entry = await _get_entry(session_id)
    return _state(entry, moved=entry.wizard.go_to_step(request.step))


@router.post("/api/wizard/{session_id}/generate", response_model=WizardStateResponse)
async def wizard_generate(session_id: str):
    """Render, upload and record the agreement PDF"""
    entry = await _get_entry(session_id)
    try:
        await entry.wizard.generate()
    except (ValueError, RuntimeError) as e:
        raise _http_error(e)
    return _state(entry)


@router.get("/api/wizard/{session_id}/pdf")
async def wizard_pdf(session_id: str):
    """Download the PDF generated in this session"""
    entry = await _get_entry(session_id)
    wizard = entry.wizard
    if wizard.pdf_bytes is None:
        raise HTTPException(status_code=404, detail="Agreement has not been generated")
    return Response(
        content=wizard.pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{agreement_filename(wizard.match)}"'},
    )


@router.post("/api/wizard/{session_id}/sign", response_model=WizardStateResponse)
async def wizard_sign(session_id: str, request: WizardSignRequest):
    """Link the generated agreement to its signing record"""
    entry = await _get_entry(session_id)
    try:
        await entry.wizard.send_for_signing(request.tenancy_agreement_id)
    except (ValueError, RuntimeError) as e:
        raise _http_error(e)
    state = _state(entry)
    state.signatories = entry.wizard.signatories()
    return state


@router.delete("/api/wizard/{session_id}")
async def close_wizard(session_id: str):
    """Save pending changes and close the session"""
    entry = await store.delete(session_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Wizard session not found")
    await entry.wizard.close()
    return {"deleted": True, "session_id": session_id}
