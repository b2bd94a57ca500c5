"""Step gate tests (pure functions, no database)."""

import pytest

from onboarding.middleware.exceptions import StepValidationError
from onboarding.services import step_gate


def _snapshot(sections: dict, status: str = "draft", last_step: int = 0) -> dict:
    data = {name: None for name in step_gate.STEP_KEYS.values()}
    data.update(sections)
    data["status"] = status
    data["last_step"] = last_step
    return data


@pytest.mark.unit
class TestStepGate:

    def test_welcome_always_passes(self):
        assert step_gate.evaluate_step(_snapshot({}), 0).passed

    def test_complete_application_passes_every_data_step(self, complete_sections):
        snapshot = _snapshot(complete_sections)
        assert step_gate.incomplete_steps(snapshot) == []
        assert step_gate.progress(snapshot) == 100
        assert step_gate.evaluate_step(snapshot, step_gate.REVIEW_STEP).passed
        step_gate.check_submission(snapshot)

    def test_empty_application(self):
        snapshot = _snapshot({})
        assert step_gate.incomplete_steps(snapshot) == [
            "personal_info",
            "background_check",
            "business_info",
            "location",
            "package",
            "documents",
            "signature",
        ]
        assert step_gate.progress(snapshot) == 0

    def test_personal_info_requires_valid_email(self, complete_sections):
        complete_sections["personal_info"]["email"] = "not-an-email"
        result = step_gate.evaluate_step(_snapshot(complete_sections), 1)
        assert not result.passed
        assert any(u.startswith("personal_info.email") for u in result.unmet)

    def test_blank_name_fails(self, complete_sections):
        complete_sections["personal_info"]["first_name"] = "   "
        result = step_gate.evaluate_step(_snapshot(complete_sections), 1)
        assert not result.passed
        assert any(u.startswith("personal_info.first_name") for u in result.unmet)

    def test_bankruptcy_details_required_after_yes(self, complete_sections):
        complete_sections["background_check"]["declared_bankruptcy"] = "yes"
        result = step_gate.evaluate_step(_snapshot(complete_sections), 2)
        assert not result.passed
        assert "background_check: Bankruptcy details are required" in result.unmet

        complete_sections["background_check"]["bankruptcy_details"] = "Discharged 2019"
        assert step_gate.evaluate_step(_snapshot(complete_sections), 2).passed

    def test_yes_no_answers_only(self, complete_sections):
        complete_sections["background_check"]["ever_charged"] = "maybe"
        assert not step_gate.evaluate_step(_snapshot(complete_sections), 2).passed

    def test_location_coordinates_in_range(self, complete_sections):
        complete_sections["location"]["latitude"] = 123.0
        result = step_gate.evaluate_step(_snapshot(complete_sections), 4)
        assert not result.passed
        assert any(u.startswith("location.latitude") for u in result.unmet)

    def test_stale_business_location_ignored_when_same_as_address(self, complete_sections):
        complete_sections["location"]["business_location_same_as_address"] = True
        complete_sections["location"]["business_location"] = {"region": "NCR"}
        assert step_gate.evaluate_step(_snapshot(complete_sections), 4).passed

    def test_separate_business_location_must_be_complete(self, complete_sections):
        complete_sections["location"]["business_location_same_as_address"] = False
        complete_sections["location"]["business_location"] = {"region": "NCR"}
        result = step_gate.evaluate_step(_snapshot(complete_sections), 4)
        assert not result.passed
        assert any(u.startswith("location.business_location.province") for u in result.unmet)

    def test_location_requires_full_address(self, complete_sections):
        del complete_sections["location"]["address"]["barangay"]
        result = step_gate.evaluate_step(_snapshot(complete_sections), 4)
        assert not result.passed
        assert any(u.startswith("location.address.barangay") for u in result.unmet)

    def test_package_fees_must_match_catalogue(self, complete_sections):
        complete_sections["package"]["monthly_fee"] = 1
        assert not step_gate.evaluate_step(_snapshot(complete_sections), 5).passed

        complete_sections["package"] = {
            "package_type": "platinum", "monthly_fee": 1, "setup_fee": 1,
        }
        result = step_gate.evaluate_step(_snapshot(complete_sections), 5)
        assert not result.passed
        assert "package.package_type: Unknown package: platinum" in result.unmet

    def test_missing_required_document(self, complete_sections):
        del complete_sections["documents"]["uploaded"]["id_back"]
        result = step_gate.evaluate_step(_snapshot(complete_sections), 6)
        assert result.unmet == ["documents.id_back: required document is missing"]

    def test_documents_present_hook_overrides_section(self):
        uploaded = {"id_front", "id_back", "proof_of_address"}
        result = step_gate.evaluate_step(_snapshot({}), 6, uploaded.__contains__)
        assert result.passed

    def test_terms_must_be_accepted(self, complete_sections):
        complete_sections["signature"]["terms_accepted"] = False
        result = step_gate.evaluate_step(_snapshot(complete_sections), 7)
        assert not result.passed

    def test_review_lists_failing_steps(self, complete_sections):
        complete_sections["signature"] = None
        result = step_gate.evaluate_step(_snapshot(complete_sections), 8)
        assert result.unmet == ["signature: step is incomplete"]

    def test_confirmation_requires_submission(self, complete_sections):
        assert not step_gate.evaluate_step(_snapshot(complete_sections), 9).passed
        assert step_gate.evaluate_step(_snapshot(complete_sections, status="submitted"), 9).passed

    def test_check_submission_reports_every_failure(self, complete_sections):
        complete_sections["package"] = None
        complete_sections["signature"]["signature_url"] = ""
        with pytest.raises(StepValidationError) as exc_info:
            step_gate.check_submission(_snapshot(complete_sections))

        details = exc_info.value.details
        assert details["incomplete_steps"] == ["package", "signature"]
        assert any(e.startswith("signature.signature_url") for e in details["errors"])
        assert exc_info.value.status_code == 422

    def test_backward_navigation_always_allowed(self):
        step_gate.check_navigation(_snapshot({}), 7, 2)
        step_gate.check_navigation(_snapshot({}), 3, 3)

    def test_forward_navigation_requires_skipped_steps(self, complete_sections):
        snapshot = _snapshot({"personal_info": complete_sections["personal_info"]})
        step_gate.check_navigation(snapshot, 1, 2)

        with pytest.raises(StepValidationError) as exc_info:
            step_gate.check_navigation(snapshot, 1, 4)
        assert exc_info.value.details["incomplete_steps"] == [
            "background_check",
            "business_info",
        ]

    def test_unknown_step(self):
        with pytest.raises(ValueError):
            step_gate.evaluate_step(_snapshot({}), 10)
        with pytest.raises(ValueError):
            step_gate.check_navigation(_snapshot({}), 0, 12)

    def test_gate_does_not_mutate_snapshot(self, complete_sections):
        snapshot = _snapshot(complete_sections)
        before = repr(snapshot)
        step_gate.evaluate_steps(snapshot)
        assert repr(snapshot) == before
