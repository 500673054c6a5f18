"""Shared test fixtures for BroSplit plan service tests."""
import os
import tempfile

# Keep structured logs out of the real log directory
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "brosplit_test_logs"))

from datetime import date

import pytest

from errors import CompletionError
from retry_utils import RetryPolicy
from schemas import Entitlement, MacroTargets, ProfileInput, RenderProfile


class FakeCompletionClient:
    """Returns scripted responses in order; exceptions in the script are raised."""

    def __init__(self, responses=()):
        self.responses = list(responses)
        self.calls = []

    def complete(self, prompt, options):
        self.calls.append((prompt, options))
        if not self.responses:
            raise CompletionError("No scripted completion left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeEntitlementVerifier:
    def __init__(self, entitlement=None):
        self.entitlement = entitlement or Entitlement(paid=True, tier="pro")
        self.calls = []

    def verify(self, session_ref):
        self.calls.append(session_ref)
        if isinstance(self.entitlement, Exception):
            raise self.entitlement
        return self.entitlement


class FakeMailSender:
    """Records sent mail; raises queued failures first."""

    def __init__(self, failures=(), healthy=True):
        self.failures = list(failures)
        self.healthy = healthy
        self.sent = []
        self.attempts = 0

    def send(self, to, subject, html_body, attachments=()):
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append(
            {"to": to, "subject": subject, "html": html_body, "attachments": list(attachments)}
        )

    def verify(self):
        return self.healthy


@pytest.fixture
def gain_profile():
    """Heavy-training bulking profile (carb floor forces a calorie raise)."""
    return ProfileInput(
        sex="male",
        age=30,
        height_cm=180,
        weight_kg=80,
        activity_level="moderate",
        goal="gain",
        training_load="high",
        meals_per_day=4,
    )


@pytest.fixture
def targets():
    return MacroTargets(kcal=2400, protein_g=180, carbs_g=250, fat_g=70, fiber_g=34, sodium_mg_cap=2300)


@pytest.fixture
def render_profile():
    return RenderProfile(name="Alex", goal="build muscle")


@pytest.fixture
def completion():
    return FakeCompletionClient()


@pytest.fixture
def entitlements():
    return FakeEntitlementVerifier()


@pytest.fixture
def mailer():
    return FakeMailSender()


@pytest.fixture
def sleeps():
    """Delays requested by retry loops (no real sleeping)."""
    return []


@pytest.fixture
def plan_service(completion, entitlements, mailer, sleeps):
    from plan_service import PlanService

    return PlanService(
        completion=completion,
        entitlements=entitlements,
        mailer=mailer,
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=2.0, jitter_factor=0.0),
        workout_entitlement_required=True,
        logo_path="",
        sleep=sleeps.append,
        today=lambda: date(2024, 1, 15),
    )


def assert_plan_shape(plan, meals_per_day):
    """Validate the canonical 7-day shape of a repaired plan."""
    assert len(plan.day_plans) == 7, f"Expected 7 days, got {len(plan.day_plans)}"
    assert [d.day for d in plan.day_plans] == list(range(1, 8)), "Days should be numbered 1..7"
    for day in plan.day_plans:
        assert len(day.meals) == meals_per_day, \
            f"Day {day.day} has {len(day.meals)} meals, expected {meals_per_day}"


def page_texts(pages):
    """All text drawn on each page, as a list of lists."""
    return [page.texts() for page in pages]
