"""HTTP server exposing workout and nutrition plan generation and delivery as REST APIs."""

from __future__ import annotations

# Load .env and LLM credentials before any module reads configuration
import llm_auth_init  # noqa: F401

import os
import sys
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import AliasChoices, BaseModel, Field

from entitlement import StripeEntitlementVerifier
from errors import PlanServiceError
from llm_client import LiteLLMCompletionClient
from mailer import SMTPMailSender
from plan_service import PlanService
from retry_utils import RetryPolicy
from schemas import NutritionPlan, NutritionResult, ProfileInput, RenderProfile, WorkoutRequest

app = FastAPI(
    title="BroSplit AI Plan Service",
    description="AI-generated 6-week workout plans and 7-day nutrition plans, delivered as PDF",
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


@lru_cache(maxsize=1)
def get_plan_service() -> PlanService:
    """Process-wide service built from the environment."""
    return PlanService(
        completion=LiteLLMCompletionClient(),
        entitlements=StripeEntitlementVerifier(),
        mailer=SMTPMailSender(),
        retry_policy=RetryPolicy(),
        logo_path=os.getenv("BROSPLIT_LOGO_PATH"),
    )


@app.exception_handler(PlanServiceError)
async def plan_service_error_handler(request: Request, exc: PlanServiceError) -> JSONResponse:
    print(f"\n❌ {request.url.path}: {exc.kind}: {exc.message}\n", file=sys.stderr)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ============================================================================
# Request models
# ============================================================================


class GeneratePlanRequest(WorkoutRequest):
    """Workout profile plus the checkout session that pays for it."""

    session_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("session_id", "sessionId")
    )


class GenerateNutritionRequest(BaseModel):
    model_config = {"populate_by_name": True}

    session_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("session_id", "sessionId")
    )
    profile: ProfileInput = Field(validation_alias=AliasChoices("profile", "input"))


class DeliveryRequest(BaseModel):
    """Already-generated content to render; either part may be omitted."""

    model_config = {"populate_by_name": True}

    plan: Optional[str] = Field(default=None, description="Workout plan text")
    nutrition: Optional[NutritionPlan] = None
    user_profile: RenderProfile = Field(
        default_factory=RenderProfile,
        validation_alias=AliasChoices("user_profile", "userProfile"),
    )


class EmailPlanRequest(DeliveryRequest):
    email: str = ""


# ============================================================================
# Endpoints
# ============================================================================


@app.get("/api/health")
def healthcheck(service: PlanService = Depends(get_plan_service)) -> JSONResponse:
    """Readiness probe: SMTP reachability and presence of provider keys."""
    verify = getattr(service.mailer, "verify", None)
    smtp_ok = bool(verify()) if callable(verify) else True
    payload: Dict[str, Any] = {
        "status": "ok" if smtp_ok else "degraded",
        "services": {
            "smtp": "healthy" if smtp_ok else "unreachable",
            "openai": "ok" if os.getenv("OPENAI_API_KEY") else "missing",
            "stripe": "ok" if os.getenv("STRIPE_SECRET_KEY") else "missing",
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return JSONResponse(status_code=200 if smtp_ok else 503, content=payload)


@app.post("/api/generate-plan")
def generate_plan(
    body: GeneratePlanRequest,
    service: PlanService = Depends(get_plan_service),
) -> Dict[str, str]:
    """Generate the 6-week workout plan text."""
    plan_text = service.generate_workout(body, body.session_id)
    return {"plan": plan_text}


@app.post("/api/generate-nutrition", response_model=NutritionResult)
def generate_nutrition(
    body: GenerateNutritionRequest,
    service: PlanService = Depends(get_plan_service),
) -> NutritionResult:
    """Compute targets and generate a repaired 7-day nutrition plan."""
    return service.generate_nutrition(body.profile, body.session_id)


@app.post("/api/email-plan")
def email_plan(
    body: EmailPlanRequest,
    service: PlanService = Depends(get_plan_service),
) -> Dict[str, Any]:
    """Render the plan(s) to PDF and email them."""
    filename = service.email_plan(body.email, body.plan, body.nutrition, body.user_profile)
    return {"success": True, "message": "Plan emailed!", "filename": filename}


@app.post("/api/download-pdf")
def download_pdf(
    body: DeliveryRequest,
    service: PlanService = Depends(get_plan_service),
) -> Response:
    """Render the plan(s) to PDF and return the document."""
    filename, pdf_bytes = service.download_pdf(body.plan, body.nutrition, body.user_profile)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "4000")))
