"""
LLM-Powered Plan Generation

Asks an OpenAI chat model for a structured workout plan and maps the JSON
answer back onto the requested exercises.

Internal Codename: SPOTTER-LINK
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

import requests
from openai import OpenAI

from deeprep.engine.overlap import CrossGroupOverlapDetector
from deeprep.engine.safety import MRV_CEILING
from deeprep.errors import AiPlanError
from deeprep.models import (
    ExerciseForPlan,
    ExercisePlan,
    GeneratedPlan,
    PlannedSet,
    PlanRequest,
    SetType,
)
from deeprep.stores.base import AiPlanProvider, ConnectivityChecker

logger = logging.getLogger(__name__)


MAX_PROMPT_CHARS = 8000
MAX_SESSIONS_PER_EXERCISE = 5
MIN_REST_SECONDS = 30
MAX_REST_SECONDS = 300
DEFAULT_REST_SECONDS = 90
MIN_REPS = 1
MAX_REPS = 50

LEVEL_LABELS = {1: "Beginner", 2: "Intermediate", 3: "Advanced"}

AGE_MODIFIERS = [
    (lambda age: age < 18,
     "AGE MODIFIER (under 18): Cap intensity at 85% 1RM. No singles (1-rep sets). Focus on movement quality."),
    (lambda age: 41 <= age <= 50,
     "AGE MODIFIER (41-50): Reduce max intensity by 2.5%. Add +15s rest between sets."),
    (lambda age: 51 <= age <= 60,
     "AGE MODIFIER (51-60): Reduce max intensity by 5%. Add 1 extra warm-up set per compound. "
     "Increase rest by 30s."),
    (lambda age: age > 60,
     "AGE MODIFIER (60+): Reduce max intensity by 10%. Add 2 extra warm-up sets. "
     "Prefer machine exercises over free weights. Increase rest by 45s."),
]

OUTPUT_SCHEMA = """{
  "exercise_plans": [
    {
      "exercise_id": "<stable_id string>",
      "warmup_sets": [{"weight": <number>, "reps": <number>, "set_number": <number>}],
      "working_sets": [{"weight": <number>, "reps": <number>, "set_number": <number>}],
      "rest_seconds": <number>,
      "notes": "<string or null>"
    }
  ]
}"""


class PlanPromptBuilder:
    """Builds the plan prompt within a fixed character budget."""

    def __init__(self, overlap_detector: Optional[CrossGroupOverlapDetector] = None):
        self.overlap_detector = overlap_detector or CrossGroupOverlapDetector()

    def build(self, request: PlanRequest) -> str:
        parts = [
            "You are a certified strength & conditioning specialist. "
            "Generate a structured workout plan as JSON.\n",
            self._user_profile(request),
            self._progression_context(request),
            self._exercises(request),
        ]
        used = sum(len(p) for p in parts)
        parts.append(self._training_history(request, MAX_PROMPT_CHARS - used))
        parts.append(self._safety_constraints(request))
        parts.append(self._cross_group_fatigue(request))
        parts.append(self._output_format())
        return "\n".join(p for p in parts if p)

    @staticmethod
    def _user_profile(request: PlanRequest) -> str:
        profile = request.user_profile
        lines = ["## User Profile",
                 f"- Experience level: {LEVEL_LABELS.get(profile.experience_level, 'Beginner')}"]
        if profile.body_weight_kg is not None:
            lines.append(f"- Body weight: {profile.body_weight_kg}kg")
        if profile.age is not None:
            lines.append(f"- Age: {profile.age}")
        if profile.gender:
            lines.append(f"- Gender: {profile.gender}")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _progression_context(request: PlanRequest) -> str:
        lines = ["## Progression Context", f"- Periodization model: {request.periodization_model}"]
        if request.performance_trend:
            lines.append(f"- Performance trend: {request.performance_trend}")
        if request.weeks_since_deload is not None:
            lines.append(f"- Weeks since last deload: {request.weeks_since_deload}")
        if request.deload_recommended:
            lines.append("- DELOAD RECOMMENDED: reduce volume by 40-60%, reduce intensity by 10-15%")
        if request.current_block_phase:
            lines.append(f"- Current block phase: {request.current_block_phase} "
                         f"(week {request.current_block_week})")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _exercises(request: PlanRequest) -> str:
        lines = ["## Exercises (in order)"]
        for index, exercise in enumerate(request.exercises, start=1):
            lines.append(
                f"{index}. {exercise.name} [stable_id: {exercise.stable_id}] "
                f"({exercise.equipment}, {exercise.movement_type}, difficulty: {exercise.difficulty})"
            )
        return "\n".join(lines) + "\n"

    @staticmethod
    def _format_session(session, label: str) -> str:
        lines = [f"  {label} ({session.date.date().isoformat()}):"]
        for s in session.sets:
            lines.append(f"    {s.weight}kg x {s.reps} ({s.set_type.value})")
        return "\n".join(lines) + "\n"

    def _training_history(self, request: PlanRequest, remaining_budget: int) -> str:
        if not request.training_history:
            return (
                "## Training History\n"
                "NO TRAINING HISTORY AVAILABLE. "
                f"Use baseline tables for experience level {request.user_profile.experience_level}.\n"
            )

        out = ["## Recent Training History (last 3-5 sessions per exercise)\n"]
        budget = max(int(remaining_budget * 0.4), 500)
        used = 0
        for history in request.training_history:
            full = f"### {history.exercise_name}\n" + "".join(
                self._format_session(s, "Session") for s in history.sessions[-MAX_SESSIONS_PER_EXERCISE:]
            )
            if used + len(full) <= budget:
                out.append(full)
                used += len(full)
                continue

            # Over budget: fall back to the latest session only, or drop the exercise
            abbreviated = f"### {history.exercise_name}\n"
            if history.sessions:
                abbreviated += self._format_session(history.sessions[-1], "Last session")
            if used + len(abbreviated) <= budget:
                out.append(abbreviated)
                used += len(abbreviated)
        return "".join(out)

    @staticmethod
    def _safety_constraints(request: PlanRequest) -> str:
        level = request.user_profile.experience_level
        lines = [
            "## SAFETY CONSTRAINTS (NON-NEGOTIABLE)",
            "1. Max weight increase: 10% above the last working weight for any exercise. "
            "Never exceed 10kg absolute jump for barbells, 5kg for dumbbells.",
            f"2. MRV ceiling: Do not exceed {MRV_CEILING.get(level, 12)} total working sets "
            "per muscle group per session.",
            "3. Total session volume: Maximum 30 working sets per session, "
            "maximum 6 working sets per exercise, maximum 12 exercises per session.",
            "4. Advanced exercise gating: Only include exercises with difficulty level <= "
            "user experience level. Never include advanced exercises for beginners.",
            "5. Warm-up sets: Heavy barbell compounds require 3 warm-up sets "
            "(empty bar, 50%, 75%). Moderate compounds require 2. Isolations require 1 or 0 (bodyweight).",
        ]
        age = request.user_profile.age
        if age is not None:
            for applies, text in AGE_MODIFIERS:
                if applies(age):
                    lines.append(f"6. {text}")
                    break
        lines.append("7. Weight rounding: Round all weights DOWN to nearest increment "
                     "(barbell: 2.5kg, dumbbell: 2.5kg, cable/machine: 5kg).")
        return "\n".join(lines) + "\n"

    def _cross_group_fatigue(self, request: PlanRequest) -> str:
        overlaps = self.overlap_detector.detect(request.exercises)
        if not overlaps:
            return ""
        lines = ["## CROSS-GROUP FATIGUE WARNING"]
        lines.extend(f"- {o.description}" for o in overlaps)
        lines.append("Reduce isolation volume for overlapping muscles accordingly.")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _output_format() -> str:
        return "## Output Format\nRespond ONLY with valid JSON matching this schema:\n" + OUTPUT_SCHEMA


class PlanResponseParser:
    """Maps the model's JSON onto the requested exercises."""

    def parse(self, response_text: str, exercises: List[ExerciseForPlan]) -> GeneratedPlan:
        """
        Parse the raw model output.

        Args:
            response_text: JSON text returned by the model
            exercises: Requested exercises, used to map stable ids back to catalog ids

        Returns:
            GeneratedPlan with only the requested exercises

        Raises:
            AiPlanError: If the JSON is malformed or matches no requested exercise
        """
        try:
            payload = json.loads((response_text or "").strip())
        except ValueError as e:
            raise AiPlanError(f"Failed to parse plan response as JSON: {e}") from e

        if not isinstance(payload, dict):
            raise AiPlanError("Plan response is not a JSON object")

        raw_plans = payload.get("exercise_plans") or []
        if not raw_plans:
            raise AiPlanError("Model returned an empty exercise plan list")

        by_stable_id = {e.stable_id: e for e in exercises}
        plans = [p for p in (self._exercise_plan(raw, by_stable_id) for raw in raw_plans) if p]
        if not plans:
            raise AiPlanError("None of the exercises in the response matched the requested exercises")

        return GeneratedPlan(exercises=plans)

    def _exercise_plan(
        self,
        raw: Dict[str, Any],
        by_stable_id: Dict[str, ExerciseForPlan],
    ) -> Optional[ExercisePlan]:
        stable_id = str(raw.get("exercise_id") or "").strip()
        info = by_stable_id.get(stable_id)
        if info is None:
            if stable_id:
                logger.debug("Skipping unrequested exercise %s", stable_id)
            return None

        sets = [self._planned_set(s, SetType.WARMUP) for s in raw.get("warmup_sets") or []]
        sets += [self._planned_set(s, SetType.WORKING) for s in raw.get("working_sets") or []]
        rest = int(raw.get("rest_seconds") or DEFAULT_REST_SECONDS)

        return ExercisePlan(
            exercise_id=info.exercise_id,
            stable_id=stable_id,
            exercise_name=info.name,
            sets=sets,
            rest_seconds=min(max(rest, MIN_REST_SECONDS), MAX_REST_SECONDS),
            notes=raw.get("notes"),
        )

    @staticmethod
    def _planned_set(raw: Dict[str, Any], set_type: SetType) -> PlannedSet:
        weight = float(raw.get("weight") or 0.0)
        reps = int(raw.get("reps") or 0)
        return PlannedSet(
            set_type=set_type,
            weight=max(weight, 0.0),
            reps=min(max(reps, MIN_REPS), MAX_REPS),
            rest_seconds=DEFAULT_REST_SECONDS,
        )


class OpenAIPlanProvider(AiPlanProvider):
    """Plan generation backed by the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 30.0,
        client: Optional[OpenAI] = None,
    ):
        """
        Initialize provider.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Chat model name
            timeout_seconds: Request timeout passed to the client
            client: Pre-built client, mainly for tests
        """
        self.client = client or OpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model
        self.prompt_builder = PlanPromptBuilder()
        self.parser = PlanResponseParser()

    def generate_plan(self, request: PlanRequest) -> GeneratedPlan:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": "You are a strength coach. Return ONLY valid JSON. No markdown, no explanations."
                },
                {
                    "role": "user",
                    "content": self.prompt_builder.build(request)
                }
            ],
            response_format={"type": "json_object"}
        )
        return self.parser.parse(response.choices[0].message.content, request.exercises)


class HttpConnectivityChecker(ConnectivityChecker):
    """Online when a HEAD request to the configured URL gets any HTTP answer."""

    def __init__(self, url: str = "https://api.openai.com", timeout_seconds: float = 3.0):
        self.url = url
        self.timeout_seconds = timeout_seconds

    def is_online(self) -> bool:
        try:
            requests.head(self.url, timeout=self.timeout_seconds)
            return True
        except requests.RequestException as e:
            logger.info("Offline: %s", e)
            return False
