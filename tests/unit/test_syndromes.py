"""
Unit Tests for Syndrome Mapping
"""
from surveillance.core.syndromes import map_to_syndromes
from surveillance.core.types import Syndrome


class TestMapToSyndromes:

    def test_respiratory_complaint(self):
        result = map_to_syndromes("cough and shortness of breath", ["Influenza", "Pneumonia"])
        assert Syndrome.RESPIRATORY_UPPER in result
        assert Syndrome.RESPIRATORY_LOWER in result

    def test_no_match_returns_empty(self):
        assert map_to_syndromes("ankle sprain", ["Fracture"]) == []

    def test_empty_input(self):
        assert map_to_syndromes("", None) == []

    def test_word_boundaries(self):
        # "gi" must not fire inside "vaginal"
        assert Syndrome.GASTROINTESTINAL not in map_to_syndromes("vaginal discharge")

    def test_plural_tolerated(self):
        assert Syndrome.NEUROLOGICAL in map_to_syndromes("headaches for three days")

    def test_chief_complaint_outweighs_differential(self):
        result = map_to_syndromes("vomiting and diarrhea", ["Meningitis"])
        assert result[0] == Syndrome.GASTROINTESTINAL
        assert Syndrome.NEUROLOGICAL in result

    def test_abbreviations(self):
        assert Syndrome.RESPIRATORY_LOWER in map_to_syndromes("SOB")
        assert Syndrome.NEUROLOGICAL in map_to_syndromes("AMS")
        assert Syndrome.FEBRILE_RASH in map_to_syndromes("hfmd exposure at daycare")

    def test_bioterrorism_sentinel(self):
        assert Syndrome.BIOTERRORISM_SENTINEL in map_to_syndromes("suspected anthrax exposure")

    def test_case_insensitive(self):
        assert map_to_syndromes("COUGH") == map_to_syndromes("cough")
