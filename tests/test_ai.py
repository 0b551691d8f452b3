"""
AI Plan Provider Tests

Prompt assembly, response parsing and the OpenAI/connectivity adapters.
The OpenAI client is replaced by a recording fake; no network access.
"""

import json
from types import SimpleNamespace

import pytest
import requests

from deeprep import ai
from deeprep.ai import HttpConnectivityChecker, OpenAIPlanProvider, PlanPromptBuilder, PlanResponseParser
from deeprep.errors import AiPlanError
from deeprep.models import SetType

from factories import history, plan_exercise, plan_request


@pytest.fixture
def bench_info():
    return plan_exercise(11, "chest_barbell_bench_press")


@pytest.fixture
def row_info():
    return plan_exercise(12, "back_barbell_bent_over_row", group="back", name="Barbell Row")


def _response(*plans):
    return json.dumps({"exercise_plans": list(plans)})


class TestPlanResponseParser:

    @pytest.fixture
    def parser(self):
        return PlanResponseParser()

    def test_maps_stable_ids_to_catalog_ids(self, parser, bench_info, row_info):
        text = _response(
            {
                "exercise_id": "back_barbell_bent_over_row",
                "warmup_sets": [{"weight": 40, "reps": 8, "set_number": 1}],
                "working_sets": [{"weight": 70, "reps": 8, "set_number": 1},
                                 {"weight": 70, "reps": 8, "set_number": 2}],
                "rest_seconds": 120,
                "notes": "Brace hard",
            },
        )

        plan = parser.parse(text, [bench_info, row_info])

        assert len(plan.exercises) == 1
        row = plan.exercises[0]
        assert row.exercise_id == 12
        assert row.exercise_name == "Barbell Row"
        assert [(s.set_type, s.weight) for s in row.sets] == [
            (SetType.WARMUP, 40.0), (SetType.WORKING, 70.0), (SetType.WORKING, 70.0),
        ]
        assert row.rest_seconds == 120
        assert row.notes == "Brace hard"

    def test_clamps_out_of_range_values(self, parser, bench_info):
        text = _response({
            "exercise_id": "chest_barbell_bench_press",
            "working_sets": [{"weight": -5, "reps": 0}, {"weight": 60, "reps": 80}],
            "rest_seconds": 900,
        })

        bench = parser.parse(text, [bench_info]).exercises[0]

        assert [(s.weight, s.reps) for s in bench.sets] == [(0.0, 1), (60.0, 50)]
        assert bench.rest_seconds == 300

    def test_short_and_missing_rest(self, parser, bench_info, row_info):
        text = _response(
            {"exercise_id": "chest_barbell_bench_press", "working_sets": [], "rest_seconds": 10},
            {"exercise_id": "back_barbell_bent_over_row", "working_sets": []},
        )

        plan = parser.parse(text, [bench_info, row_info])

        assert [e.rest_seconds for e in plan.exercises] == [30, 90]

    def test_skips_unrequested_exercises(self, parser, bench_info):
        text = _response(
            {"exercise_id": "legs_barbell_back_squat", "working_sets": []},
            {"exercise_id": "chest_barbell_bench_press", "working_sets": []},
        )

        plan = parser.parse(text, [bench_info])

        assert [e.stable_id for e in plan.exercises] == ["chest_barbell_bench_press"]

    @pytest.mark.parametrize("text", [
        "not json",
        "",
        "[1, 2, 3]",
        json.dumps({"exercise_plans": []}),
        json.dumps({"something_else": True}),
        _response({"exercise_id": "legs_barbell_back_squat", "working_sets": []}),
    ])
    def test_unusable_responses(self, parser, bench_info, text):
        with pytest.raises(AiPlanError):
            parser.parse(text, [bench_info])


class TestPlanPromptBuilder:

    @pytest.fixture
    def builder(self):
        return PlanPromptBuilder()

    def test_lists_exercises_with_stable_ids(self, builder, bench_info, row_info):
        prompt = builder.build(plan_request([bench_info, row_info], level=1))

        assert "1. Barbell Bench Press [stable_id: chest_barbell_bench_press]" in prompt
        assert "2. Barbell Row [stable_id: back_barbell_bent_over_row]" in prompt
        assert "Experience level: Beginner" in prompt
        assert "Do not exceed 12 total working sets" in prompt

    def test_no_history(self, builder, bench_info):
        prompt = builder.build(plan_request([bench_info], level=2))
        assert "NO TRAINING HISTORY AVAILABLE" in prompt

    def test_history_included(self, builder, bench_info):
        h = history(11, [(100.0, 5), (102.5, 5)], name="Barbell Bench Press")
        prompt = builder.build(plan_request([bench_info], histories=[h]))

        assert "### Barbell Bench Press" in prompt
        assert "102.5kg x 5 (working)" in prompt

    def test_cross_group_fatigue_warning(self, builder, bench_info):
        curl_info = plan_exercise(13, "arms_dumbbell_curl", "dumbbell", "isolation", "beginner",
                                  group="arms", name="Dumbbell Curl")

        prompt = builder.build(plan_request([bench_info, curl_info]))

        assert "## CROSS-GROUP FATIGUE WARNING" in prompt
        assert "triceps" in prompt
        assert prompt.index("CROSS-GROUP FATIGUE WARNING") < prompt.index("## Output Format")

    def test_no_fatigue_warning_without_overlap(self, builder, bench_info, row_info):
        prompt = builder.build(plan_request([bench_info, row_info]))
        assert "CROSS-GROUP FATIGUE WARNING" not in prompt

    def test_deload_and_age(self, builder, bench_info):
        prompt = builder.build(plan_request([bench_info], age=55, deload=True))

        assert "DELOAD RECOMMENDED" in prompt
        assert "AGE MODIFIER (51-60)" in prompt
        assert "AGE MODIFIER (60+)" not in prompt

    def test_history_stays_within_budget(self, builder, bench_info):
        histories = [
            history(100 + i, [(100.0, 8)] * 5, name=f"Exercise {i}")
            for i in range(1, 61)
        ]

        prompt = builder.build(plan_request([bench_info], histories=histories))

        assert "### Exercise 1\n" in prompt
        assert "### Exercise 59\n" not in prompt
        assert len(prompt) < ai.MAX_PROMPT_CHARS
        assert prompt.rstrip().endswith("}")


class FakeCompletions:

    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestOpenAIPlanProvider:

    def test_requests_json_and_parses(self, bench_info):
        completions = FakeCompletions(_response({
            "exercise_id": "chest_barbell_bench_press",
            "working_sets": [{"weight": 80, "reps": 5}],
            "rest_seconds": 150,
        }))
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        provider = OpenAIPlanProvider(model="gpt-test", client=client)

        plan = provider.generate_plan(plan_request([bench_info]))

        assert plan.exercises[0].exercise_id == 11
        call = completions.calls[0]
        assert call["model"] == "gpt-test"
        assert call["response_format"] == {"type": "json_object"}
        assert "chest_barbell_bench_press" in call["messages"][1]["content"]

    def test_bad_json_raises(self, bench_info):
        completions = FakeCompletions("```json\n{oops")
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

        with pytest.raises(AiPlanError):
            OpenAIPlanProvider(client=client).generate_plan(plan_request([bench_info]))


class TestHttpConnectivityChecker:

    def test_online(self, monkeypatch):
        calls = []
        monkeypatch.setattr(ai.requests, "head", lambda url, timeout: calls.append((url, timeout)))

        checker = HttpConnectivityChecker("https://example.test", timeout_seconds=1.5)

        assert checker.is_online()
        assert calls == [("https://example.test", 1.5)]

    def test_offline(self, monkeypatch):
        def refuse(url, timeout):
            raise requests.ConnectionError("no route to host")

        monkeypatch.setattr(ai.requests, "head", refuse)

        assert not HttpConnectivityChecker().is_online()
