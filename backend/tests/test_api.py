"""
HTTP tests for the EmpowerMint API: scenarios, lessons, progress,
onboarding, AI helpers, error bodies and health.
"""
import pytest
from fastapi.testclient import TestClient

from config import Settings
from errors import PersistenceError

SCENARIO = "scenario-2-apartment-rent"

INITIAL_STATE = {
    "savings": 1000,
    "debt": 0,
    "monthlyIncome": 3000,
    "monthlyExpenses": 2000,
    "stressLevel": 5,
    "financialKnowledge": 3,
}


def _decide(client, choice_id="choice-1b-roommate", state=None, headers=None, **extra):
    body = {
        "decisionPointId": "dp-1-apartment",
        "choiceId": choice_id,
        "currentState": state if state is not None else INITIAL_STATE,
        **extra,
    }
    return client.post(f"/api/scenarios/{SCENARIO}/decision", json=body, headers=headers or {})


def _break_store(client, monkeypatch):
    def fail(*args, **kwargs):
        raise PersistenceError("Failed to save progress")

    monkeypatch.setattr(client.app.state.progress_service.store, "apply", fail)


class TestScenarios:
    def test_list_scenarios(self, client):
        res = client.get("/api/scenarios")
        assert res.status_code == 200
        ids = [s["id"] for s in res.json()["scenarios"]]
        assert SCENARIO in ids

    def test_list_scenarios_filtered(self, client):
        res = client.get("/api/scenarios", params={"category": "market-crash"})
        assert [s["id"] for s in res.json()["scenarios"]] == ["scenario-3-market-dip"]

    def test_bad_difficulty_filter(self, client):
        res = client.get("/api/scenarios", params={"difficulty": 7})
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_get_scenario_uses_camel_case(self, client):
        res = client.get(f"/api/scenarios/{SCENARIO}")
        assert res.status_code == 200
        scenario = res.json()["scenario"]
        assert scenario["initialState"] == INITIAL_STATE
        assert scenario["decisionPoints"][0]["choices"][0]["shortTermImpact"]["savingsChange"] == -600

    def test_unknown_scenario(self, client):
        res = client.get("/api/scenarios/does-not-exist")
        assert res.status_code == 404
        assert res.json() == {
            "error": {"code": "NOT_FOUND", "message": "Scenario with id does-not-exist not found"}
        }


class TestDecisions:
    def test_decision_applies_choice_and_awards_xp(self, client):
        res = _decide(client, userId="learner-1")
        assert res.status_code == 200
        data = res.json()
        assert data["newState"] == {
            "savings": 1300,
            "debt": 0,
            "monthlyIncome": 3000,
            "monthlyExpenses": 1850,
            "stressLevel": 4,
            "financialKnowledge": 5,
        }
        assert data["xpEarned"] == 22
        assert data["reflectionSource"] == "fallback"
        assert data["aiReflection"].startswith("You chose: A two-bedroom with a roommate")
        assert data["progress"]["userId"] == "learner-1"
        assert data["progress"]["xp"] == 22
        assert data["progress"]["level"] == 0
        assert data["warning"] is None

    def test_xp_accumulates(self, client):
        _decide(client, userId="learner-1")
        _decide(client, userId="learner-1")
        res = client.get("/api/progress/learner-1")
        assert res.json()["progress"]["xp"] == 44

    def test_user_id_from_header(self, client):
        res = _decide(client, headers={"X-User-Id": "header-user"})
        assert res.json()["progress"]["userId"] == "header-user"

    def test_body_user_id_wins_over_header(self, client):
        res = _decide(client, headers={"X-User-Id": "header-user"}, userId="body-user")
        assert res.json()["progress"]["userId"] == "body-user"

    def test_anonymous_users_do_not_share_progress(self, client):
        first = _decide(client).json()["progress"]
        second = _decide(client).json()["progress"]
        assert first["userId"].startswith("anon-")
        assert second["userId"].startswith("anon-")
        assert first["userId"] != second["userId"]
        assert second["xp"] == 22

    def test_unknown_choice(self, client):
        res = _decide(client, choice_id="choice-9z")
        assert res.status_code == 404
        assert res.json()["error"]["message"] == "Choice with id choice-9z not found"

    def test_malformed_state(self, client):
        state = {k: v for k, v in INITIAL_STATE.items() if k != "debt"}
        state["savings"] = "lots"
        res = _decide(client, state=state, userId="learner-1")
        assert res.status_code == 400
        error = res.json()["error"]
        assert error["code"] == "MALFORMED_STATE"
        assert {d["field"] for d in error["details"]} == {"savings", "debt"}
        # Nothing was awarded
        assert client.get("/api/progress/learner-1").json()["progress"]["xp"] == 0

    def test_missing_body_fields(self, client):
        res = client.post(f"/api/scenarios/{SCENARIO}/decision", json={"choiceId": "x"})
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_storage_failure_still_returns_outcome(self, client, monkeypatch):
        _break_store(client, monkeypatch)
        res = _decide(client, userId="learner-1")
        assert res.status_code == 200
        data = res.json()
        assert data["newState"]["savings"] == 1300
        assert data["xpEarned"] == 22
        assert data["aiReflection"]
        assert data["progress"] is None
        assert data["warning"]["code"] == "PROGRESS_NOT_SAVED"


class TestScenarioCompletion:
    def test_complete_scenario(self, client):
        final_state = {**INITIAL_STATE, "financialKnowledge": 5}
        res = client.post(
            f"/api/scenarios/{SCENARIO}/complete",
            json={"finalState": final_state, "userId": "learner-2"},
        )
        assert res.status_code == 200
        data = res.json()
        assert data["xpEarned"] == 100
        assert data["progress"]["xp"] == 100
        assert data["progress"]["level"] == 1
        assert data["progress"]["financialHealthScore"] == 75
        assert data["progress"]["completedScenarioIds"] == [SCENARIO]

    def test_completing_twice_keeps_one_entry(self, client):
        body = {"finalState": INITIAL_STATE, "userId": "learner-2"}
        client.post(f"/api/scenarios/{SCENARIO}/complete", json=body)
        res = client.post(f"/api/scenarios/{SCENARIO}/complete", json=body)
        progress = res.json()["progress"]
        assert progress["completedScenarioIds"] == [SCENARIO]
        assert progress["xp"] == 200

    def test_complete_unknown_scenario(self, client):
        res = client.post("/api/scenarios/nope/complete", json={"finalState": INITIAL_STATE})
        assert res.status_code == 404


class TestLessons:
    def test_list_and_get(self, client):
        lessons = client.get("/api/lessons").json()["lessons"]
        assert len(lessons) == 5
        lesson = client.get("/api/lessons/lesson-1-compound-interest").json()["lesson"]
        assert lesson["quizQuestions"]

    def test_complete_lesson(self, client):
        res = client.post(
            "/api/lessons/lesson-1-compound-interest/complete",
            json={"score": 80, "userId": "learner-3"},
        )
        assert res.status_code == 200
        data = res.json()
        assert data["xpEarned"] == 40
        assert data["progress"]["financialHealthScore"] == 80
        assert data["progress"]["completedLessonIds"] == ["lesson-1-compound-interest"]

    def test_score_out_of_range_changes_nothing(self, client):
        res = client.post(
            "/api/lessons/lesson-1-compound-interest/complete",
            json={"score": 150, "userId": "learner-3"},
        )
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"
        progress = client.get("/api/progress/learner-3").json()["progress"]
        assert progress["xp"] == 0
        assert progress["completedLessonIds"] == []
        assert progress["financialHealthScore"] == 50

    def test_unknown_lesson(self, client):
        res = client.post("/api/lessons/nope/complete", json={"score": 50})
        assert res.status_code == 404

    def test_storage_failure_on_completion(self, client, monkeypatch):
        _break_store(client, monkeypatch)
        res = client.post("/api/lessons/lesson-2-budgeting-basics/complete", json={"score": 100})
        assert res.status_code == 200
        assert res.json()["xpEarned"] == 50
        assert res.json()["warning"]["code"] == "PROGRESS_NOT_SAVED"


class TestProgress:
    def test_new_user_defaults(self, client):
        res = client.get("/api/progress/brand-new")
        assert res.status_code == 200
        progress = res.json()["progress"]
        assert progress["userId"] == "brand-new"
        assert progress["xp"] == 0
        assert progress["level"] == 1
        assert progress["financialHealthScore"] == 50
        assert "lastActivity" in progress


class TestOnboarding:
    def test_beginner_recommendations(self, client):
        res = client.post("/api/onboarding", json={
            "experienceLevel": "beginner",
            "financialGoals": "Build an emergency fund",
            "riskComfort": 3,
            "learningStyle": "visual",
        })
        assert res.status_code == 200
        data = res.json()
        assert data["recommendedLessons"] == [
            "lesson-1-compound-interest", "lesson-2-budgeting-basics", "lesson-4-emergency-fund",
        ]
        assert data["recommendedScenarios"] == ["scenario-1-first-job", "scenario-2-apartment-rent"]

        profile = data["userProfile"]
        assert profile["financialGoals"] == ["Build an emergency fund"]
        assert profile["accessibility"] == {
            "fontSize": "medium", "highContrast": False, "colorblindMode": "none",
        }

        progress = client.get(f"/api/progress/{profile['id']}").json()["progress"]
        assert progress["xp"] == 0
        assert progress["level"] == 1
        assert progress["financialHealthScore"] == 50

    def test_advanced_gets_everything(self, client):
        res = client.post("/api/onboarding", json={
            "experienceLevel": "advanced",
            "financialGoals": ["retire early"],
            "riskComfort": 9,
            "learningStyle": "textual",
        })
        assert len(res.json()["recommendedLessons"]) == 5
        assert len(res.json()["recommendedScenarios"]) == 3

    @pytest.mark.parametrize("field,value", [
        ("riskComfort", 11),
        ("experienceLevel", "expert"),
        ("financialGoals", []),
    ])
    def test_invalid_questionnaire(self, client, field, value):
        body = {
            "experienceLevel": "intermediate",
            "financialGoals": ["pay off debt"],
            "riskComfort": 5,
            "learningStyle": "interactive",
            field: value,
        }
        res = client.post("/api/onboarding", json=body)
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"


class TestAI:
    def test_explain_falls_back(self, client):
        res = client.post("/api/ai/explain", json={"concept": "compound interest"})
        assert res.status_code == 200
        assert res.json()["source"] == "fallback"
        assert "compound interest" in res.json()["explanation"]

    def test_simulate_wealth(self, client):
        res = client.post("/api/ai/simulate-wealth", json={
            "initialAmount": 1000, "monthlyContribution": 100, "annualReturn": 0, "years": 2,
        })
        assert res.status_code == 200
        data = res.json()
        assert [p["value"] for p in data["dataPoints"]] == [1000, 2200, 3400]
        assert data["finalValue"] == 3400
        assert data["gains"] == 0
        assert data["explanation"]

    def test_simulate_wealth_rejects_zero_years(self, client):
        res = client.post("/api/ai/simulate-wealth", json={
            "initialAmount": 1000, "monthlyContribution": 100, "annualReturn": 5, "years": 0,
        })
        assert res.status_code == 400

    @pytest.mark.parametrize("raw", [
        '{"initialAmount": Infinity, "monthlyContribution": 0, "annualReturn": 5, "years": 1}',
        '{"initialAmount": 1000, "monthlyContribution": NaN, "annualReturn": 5, "years": 1}',
        '{"initialAmount": 1000, "monthlyContribution": 0, "annualReturn": NaN, "years": 1}',
    ])
    def test_simulate_wealth_rejects_non_finite_numbers(self, client, raw):
        res = client.post(
            "/api/ai/simulate-wealth",
            content=raw,
            headers={"Content-Type": "application/json"},
        )
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_simulate_wealth_rejects_overflowing_amounts(self, client):
        res = client.post("/api/ai/simulate-wealth", json={
            "initialAmount": 1e308, "monthlyContribution": 1e308, "annualReturn": 100, "years": 100,
        })
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_simulate_wealth_largest_inputs_stay_finite(self, client):
        res = client.post("/api/ai/simulate-wealth", json={
            "initialAmount": 1_000_000_000, "monthlyContribution": 1_000_000_000,
            "annualReturn": 100, "years": 100,
        })
        assert res.status_code == 200
        values = [p["value"] for p in res.json()["dataPoints"]]
        assert len(values) == 101
        assert all(v is not None and v > 0 for v in values)
        assert res.json()["finalValue"] is not None

    def test_reflect_awards_nothing(self, client):
        res = client.post(f"/api/ai/scenarios/{SCENARIO}/reflect", json={
            "decisionPointId": "dp-1-apartment", "choiceId": "choice-1a-luxury",
        })
        assert res.status_code == 200
        assert res.json()["source"] == "fallback"
        assert res.json()["reflection"].startswith("You chose:")


class TestOps:
    def test_health(self, client):
        res = client.get("/api/health")
        assert res.status_code == 200
        data = res.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["reflection"] == "unavailable"

    def test_unknown_route(self, client):
        res = client.get("/api/nowhere")
        assert res.status_code == 404
        assert res.json() == {"error": {"code": "NOT_FOUND", "message": "Route not found"}}

    def test_production_hides_internal_messages(self, database, catalog, monkeypatch):
        from main import create_app
        from services.reflection import ReflectionGenerator

        app = create_app(
            settings=Settings(environment="production"),
            database=database,
            catalog=catalog,
            reflector=ReflectionGenerator(),
            configure_logging=False,
        )
        with TestClient(app) as client:
            def fail(user_id):
                raise PersistenceError("disk full at /var/lib/db")

            monkeypatch.setattr(client.app.state.progress_service.store, "get_or_create", fail)
            res = client.get("/api/progress/someone")
        assert res.status_code == 500
        assert res.json() == {"error": {"code": "PERSISTENCE_ERROR", "message": "Internal server error"}}
