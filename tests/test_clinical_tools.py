import json

import pytest

from careagent.tools.clinical_tools import DrugInteractionChecker, PatientRecordStore, build_clinical_registry
from conftest import PROJECT_ROOT


class TestPatientRecordStore:

    def test_lookup_is_case_insensitive(self, patient_store):
        record = patient_store.get(" p001 ")
        assert record["age"] == 78
        assert patient_store.ids() == ["P001"]

    def test_unknown_patient(self, patient_store):
        with pytest.raises(KeyError):
            patient_store.get("P404")

    def test_returns_copy(self, patient_store):
        patient_store.get("P001")["age"] = 1
        assert patient_store.get("P001")["age"] == 78

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PatientRecordStore(tmp_path / "nope.json")

    def test_loads_from_file(self, tmp_path):
        path = tmp_path / "patients.json"
        path.write_text(json.dumps([{"patient_id": "x1", "age": 40}]), encoding="utf-8")
        assert PatientRecordStore(path).get("X1")["age"] == 40


class TestDrugInteractionChecker:

    def test_finds_pair_in_either_order_with_aliases(self, interaction_checker):
        result = interaction_checker.check(["Advil", "Eliquis"])
        assert result["drugs"] == ["ibuprofen", "apixaban"]
        assert len(result["interactions"]) == 1
        assert result["interactions"][0]["severity"] == "major"
        assert result["highest_severity"] == "major"

    def test_highest_severity_across_pairs(self, interaction_checker):
        result = interaction_checker.check(["simvastatin", "amlodipine", "clarithromycin"])
        severities = sorted(i["severity"] for i in result["interactions"])
        assert severities == ["contraindicated", "minor"]
        assert result["highest_severity"] == "contraindicated"

    def test_no_interactions(self, interaction_checker):
        result = interaction_checker.check(["metformin", "amlodipine"])
        assert result["interactions"] == []
        assert result["highest_severity"] == "none"

    def test_duplicates_collapse(self, interaction_checker):
        with pytest.raises(ValueError):
            interaction_checker.check(["advil", "ibuprofen"])

    def test_single_drug_rejected(self, interaction_checker):
        with pytest.raises(ValueError):
            interaction_checker.check(["apixaban"])

    def test_string_of_names_rejected(self, interaction_checker):
        with pytest.raises(TypeError):
            interaction_checker.check("apixaban, ibuprofen")

    def test_unknown_severity_rejected(self):
        with pytest.raises(ValueError):
            DrugInteractionChecker([{"drugs": ["a", "b"], "severity": "catastrophic"}])


class TestClinicalRegistry:

    def test_registered_tool_schemas(self, registry):
        schemas = {s["function"]["name"]: s["function"] for s in registry.schemas()}
        assert schemas["fetch_guidelines"]["parameters"]["required"] == ["query"]
        assert schemas["fetch_guidelines"]["parameters"]["properties"]["top_k"]["default"] == 3
        assert schemas["fetch_patient_history"]["parameters"]["required"] == ["patient_id"]
        drugs = schemas["check_drug_interactions"]["parameters"]["properties"]["drugs"]
        assert drugs == {"type": "array", "items": {"type": "string"}}
        assert all(s["description"] for s in schemas.values())

    def test_fetch_guidelines_returns_excerpts(self, registry):
        result = registry.execute("fetch_guidelines", {"query": "metformin eGFR", "top_k": 2})
        assert result.ok
        assert result.output[0]["guideline_id"] == "GL_DM"
        assert {"title", "category", "excerpt", "score"} <= set(result.output[0])
        assert len(result.output) <= 2

    def test_fetch_guidelines_clamps_top_k(self, registry):
        result = registry.execute("fetch_guidelines", {"query": "apixaban metformin amoxicillin", "top_k": 0})
        assert len(result.output) == 1

    def test_fetch_guidelines_no_match(self, registry):
        assert registry.execute("fetch_guidelines", {"query": "zzzz"}).output == []

    def test_fetch_guidelines_default_top_k(self, bm25, patient_store, interaction_checker):
        registry = build_clinical_registry(bm25, patient_store, interaction_checker, default_top_k=1)
        schema = registry.get("fetch_guidelines").to_schema()
        assert schema["function"]["parameters"]["properties"]["top_k"]["default"] == 1

        result = registry.execute("fetch_guidelines", {"query": "apixaban metformin amoxicillin"})
        assert len(result.output) == 1

    def test_check_drug_interactions_accepts_comma_separated_names(self, registry):
        result = registry.execute("check_drug_interactions", {"drugs": "apixaban, ibuprofen"})
        assert result.ok
        assert result.output["drugs"] == ["apixaban", "ibuprofen"]
        assert result.output["highest_severity"] == "major"


def test_shipped_data_files_load():
    store = PatientRecordStore(PROJECT_ROOT / "data" / "patients.json")
    checker = DrugInteractionChecker(PROJECT_ROOT / "data" / "drug_interactions.json")

    patient = store.get("P001")
    current = [med.split()[0] for med in patient["medications"]]
    result = checker.check(current + ["ibuprofen"])
    assert result["highest_severity"] == "major"
