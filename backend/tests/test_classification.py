import pytest

from padata.services.classification import (
    UNKNOWN,
    classify_district,
    classify_school,
    is_charter,
)
from padata.services.county_reference import (
    canonical_county_name,
    clean_county_name,
    get_counties,
    lookup_county,
)


class TestClassifyDistrict:
    @pytest.mark.parametrize("name, expected", [
        ("Central Bucks SD", "public"),
        ("Pittsburgh School District", "public"),
        ("Commonwealth Charter Academy CS", "charter"),
        ("PA Cyber CS", "cyber_charter"),
        ("Agora Cyber Charter School", "cyber_charter"),
        ("Bucks County IU 22", "intermediate_unit"),
        ("Lehigh Career & Technical Institute", "career_technical"),
    ])
    def test_types(self, name, expected):
        assert classify_district(name) == expected

    def test_unmatched_is_unknown(self):
        assert classify_district("Milton Hershey") == UNKNOWN
        assert classify_district(None) == UNKNOWN


class TestClassifySchool:
    @pytest.mark.parametrize("name, expected", [
        ("Butler El Sch", "elementary"),
        ("Jamison Elementary School", "elementary"),
        ("Holicong MS", "middle"),
        ("Central Bucks HS West", "high"),
        ("Central Bucks High School East", "high"),
        ("Mastery CS Shoemaker Campus", "charter"),
        ("Commonwealth Charter Academy Cyber", "cyber_charter"),
    ])
    def test_types(self, name, expected):
        assert classify_school(name) == expected

    def test_unmatched_is_unknown(self):
        assert classify_school("Lincoln Academy") == UNKNOWN

    def test_is_charter(self):
        assert is_charter("Mastery CS Shoemaker Campus")
        assert is_charter("PA Cyber CS")
        assert not is_charter("Butler El Sch")


class TestCountyReference:
    def test_sixty_seven_counties(self):
        counties = get_counties()

        assert len(counties) == 67
        assert counties["109"] == "Bucks"

    def test_clean_county_name(self):
        assert clean_county_name("  Bucks   County ") == "Bucks"
        assert clean_county_name("") is None

    def test_lookup_is_case_insensitive(self):
        assert lookup_county("BUCKS COUNTY") == ("109", "Bucks")
        assert lookup_county("Atlantis") is None

    def test_canonical_name_falls_back_to_cleaned_label(self):
        assert canonical_county_name("montgomery") == "Montgomery"
        assert canonical_county_name("Atlantis County") == "Atlantis"
