"""Request flows: entitlement -> generation -> repair -> rendering -> delivery.

``PlanService`` owns no state beyond its collaborators, so one instance serves
concurrent requests. Every collaborator is injectable; the server builds the
production ones from the environment.
"""

from __future__ import annotations

import os
import sys
import time
from datetime import date
from typing import Callable, Optional, Protocol, Sequence, Tuple

from errors import DeliveryError, EntitlementError, InvalidRequestError
from llm_config import CompletionOptions, nutrition_completion_options, workout_completion_options
from macro_calculator import compute_targets
from mailer import MailAttachment, build_plan_email_html, build_plan_email_subject
from observability import log_workflow, setup_structured_logger
from pdf_renderer import DocumentSections, render
from plan_repair import ensure_complete_plan
from retry_utils import RetryExhausted, RetryPolicy, call_with_retry
from schemas import (
    Entitlement,
    NutritionPlan,
    NutritionResult,
    ProfileInput,
    RenderProfile,
    WorkoutRequest,
)
from tasks import create_nutrition_plan_prompt, create_workout_plan_prompt
from workout_parser import parse_workout_text

WORKOUT_ENTITLEMENT_REQUIRED = os.getenv("WORKOUT_ENTITLEMENT_REQUIRED", "true").strip().lower() not in {
    "0",
    "false",
    "no",
    "off",
}

logger = setup_structured_logger("brosplit.plan_service")


class CompletionClient(Protocol):
    def complete(self, prompt: str, options: CompletionOptions) -> str: ...


class EntitlementVerifier(Protocol):
    def verify(self, session_ref: Optional[str]) -> Entitlement: ...


class MailSender(Protocol):
    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachments: Sequence[MailAttachment] = (),
    ) -> None: ...


def plan_filename(has_workout: bool, has_nutrition: bool, today: date) -> str:
    """Download/attachment filename for the document contents."""
    stamp = today.isoformat()
    if has_workout and has_nutrition:
        return f"BroSplit-Nutrition-Plan-{stamp}.pdf"
    if has_nutrition:
        return f"Nutrition-Plan-{stamp}.pdf"
    return f"BroSplit-Plan-{stamp}.pdf"


class PlanService:
    """Workout/nutrition generation and delivery."""

    def __init__(
        self,
        completion: CompletionClient,
        entitlements: EntitlementVerifier,
        mailer: MailSender,
        retry_policy: RetryPolicy = RetryPolicy(),
        workout_entitlement_required: bool = WORKOUT_ENTITLEMENT_REQUIRED,
        logo_path: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.completion = completion
        self.entitlements = entitlements
        self.mailer = mailer
        self.retry_policy = retry_policy
        self.workout_entitlement_required = workout_entitlement_required
        self.logo_path = logo_path
        self.sleep = sleep
        self.today = today

    # ------------------------------------------------------------------
    # Entitlement
    # ------------------------------------------------------------------

    def _require_entitlement(self, session_id: Optional[str], pro_required: bool) -> Entitlement:
        entitlement = self.entitlements.verify(session_id)
        if not entitlement.paid:
            raise EntitlementError("Payment required")
        if pro_required and entitlement.tier != "pro":
            raise EntitlementError(
                "Nutrition plans require the pro tier", kind="insufficient_tier"
            )
        return entitlement

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_workout(self, request: WorkoutRequest, session_id: Optional[str]) -> str:
        """Return the raw workout plan text from one completion call."""
        with log_workflow(logger, "generate_workout", days_per_week=request.days_per_week) as outcome:
            if self.workout_entitlement_required:
                self._require_entitlement(session_id, pro_required=False)

            print(f"\n🏋️  Generating {request.days_per_week}-day workout plan...\n", file=sys.stderr)
            prompt = create_workout_plan_prompt(request)
            plan_text = self.completion.complete(prompt, workout_completion_options())

            weeks = parse_workout_text(plan_text)
            outcome["weeks"] = len(weeks)
            if not weeks:
                logger.warning(
                    "Workout plan has no recognisable weeks",
                    extra={"extra_fields": {"chars": len(plan_text)}},
                )
            return plan_text

    def generate_nutrition(self, profile: ProfileInput, session_id: Optional[str]) -> NutritionResult:
        """Compute targets, generate a plan and repair it to the canonical shape."""
        with log_workflow(
            logger,
            "generate_nutrition",
            goal=profile.goal,
            meals_per_day=profile.meals_per_day,
        ) as outcome:
            self._require_entitlement(session_id, pro_required=True)

            targets = compute_targets(profile)
            print(
                f"\n🥗 Targets: {targets.kcal} kcal, P {targets.protein_g} g, "
                f"C {targets.carbs_g} g, F {targets.fat_g} g\n",
                file=sys.stderr,
            )

            prompt = create_nutrition_plan_prompt(profile, targets)
            raw = self.completion.complete(prompt, nutrition_completion_options())
            plan = ensure_complete_plan(
                raw,
                targets,
                profile.meals_per_day,
                complete=self.completion.complete,
            )
            outcome["kcal"] = targets.kcal
            outcome["prep_days"] = len(plan.batch_prep)
            return NutritionResult(targets=targets, plan=plan)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _build_document(
        self,
        workout_text: Optional[str],
        nutrition: Optional[NutritionPlan],
        profile: Optional[RenderProfile],
    ) -> Tuple[str, bytes, DocumentSections]:
        has_text = bool(workout_text and workout_text.strip())
        if not has_text and nutrition is None:
            raise InvalidRequestError("Nothing to render: provide a workout plan and/or a nutrition plan")

        weeks = parse_workout_text(workout_text) if has_text else None
        sections = DocumentSections(workout=weeks or None, nutrition=nutrition)
        pdf_bytes = render(sections, profile or RenderProfile(), logo_path=self.logo_path)
        filename = plan_filename(sections.has_workout, sections.has_nutrition, self.today())
        return filename, pdf_bytes, sections

    def download_pdf(
        self,
        workout_text: Optional[str] = None,
        nutrition: Optional[NutritionPlan] = None,
        profile: Optional[RenderProfile] = None,
    ) -> Tuple[str, bytes]:
        """Render the document and return ``(filename, pdf_bytes)``."""
        with log_workflow(logger, "download_pdf", nutrition=nutrition is not None) as outcome:
            filename, pdf_bytes, _ = self._build_document(workout_text, nutrition, profile)
            outcome.update(filename=filename, bytes=len(pdf_bytes))
            return filename, pdf_bytes

    def email_plan(
        self,
        to: str,
        workout_text: Optional[str] = None,
        nutrition: Optional[NutritionPlan] = None,
        profile: Optional[RenderProfile] = None,
    ) -> str:
        """Render the document and mail it, retrying transient failures.

        Returns:
            The attachment filename

        Raises:
            InvalidRequestError: No recipient or nothing to render
            DeliveryError: Mail could not be delivered within the retry policy
        """
        if not to or not to.strip():
            raise InvalidRequestError("A recipient email address is required")

        with log_workflow(logger, "email_plan", nutrition=nutrition is not None) as outcome:
            profile = profile or RenderProfile()
            filename, pdf_bytes, sections = self._build_document(workout_text, nutrition, profile)
            html_body = build_plan_email_html(profile, sections.has_workout, sections.has_nutrition)
            attachments = [MailAttachment(filename=filename, content=pdf_bytes)]
            outcome.update(filename=filename, bytes=len(pdf_bytes))

            try:
                call_with_retry(
                    lambda: self.mailer.send(
                        to.strip(), build_plan_email_subject(profile), html_body, attachments
                    ),
                    self.retry_policy,
                    sleep=self.sleep,
                    label="Mail delivery",
                )
            except RetryExhausted as exc:
                print(f"\n❌ Email delivery failed after {exc.attempts} attempt(s): {exc.last_error}\n", file=sys.stderr)
                raise DeliveryError(
                    f"Email delivery failed: {exc.last_error}", attempts=exc.attempts
                ) from exc

            print(f"\n✅ Plan emailed ({filename})\n", file=sys.stderr)
            return filename
