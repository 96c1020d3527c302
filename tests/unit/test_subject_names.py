"""Unit tests for subject code to name resolution."""

import pytest

from src.attendance.subject_names import (
    DEFAULT_SUBJECT_NAMES,
    UNKNOWN_SUBJECT,
    SubjectNameResolver,
    get_subject_name,
)

pytestmark = pytest.mark.unit


class TestGetSubjectName:
    """Lookup order of SubjectNameResolver.get_subject_name()."""

    def test_exact_match(self):
        assert get_subject_name("CSM107") == "Compiler Design"

    def test_batch_prefix_is_stripped(self):
        assert get_subject_name("23CSM107") == get_subject_name("CSM107") == "Compiler Design"

    def test_code_is_cleaned(self):
        assert get_subject_name("  23csm107 ") == "Compiler Design"

    def test_family_fallback(self):
        assert get_subject_name("23CSM999") == "Computer Science - 23CSM999"
        assert get_subject_name("MAT999") == "Mathematics - MAT999"

    def test_unknown_code_returned_as_is(self):
        assert get_subject_name("XYZ123") == "XYZ123"

    @pytest.mark.parametrize("code", [None, "", "   "])
    def test_empty_code(self, code):
        assert get_subject_name(code) == UNKNOWN_SUBJECT


class TestOverlay:
    """Per-instance mappings on top of the read-only table."""

    def test_add_mapping_overrides_table(self):
        resolver = SubjectNameResolver()
        resolver.add_mapping("csm107", "Compilers")

        assert resolver.get_subject_name("23CSM107") == "Compilers"
        assert resolver.has_mapping("CSM107")

    def test_overlay_does_not_leak(self):
        SubjectNameResolver().add_mapping("CSM107", "Compilers")
        assert SubjectNameResolver().get_subject_name("CSM107") == "Compiler Design"

    def test_base_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_SUBJECT_NAMES["CSM107"] = "Compilers"

    def test_with_overrides_returns_new_resolver(self):
        base = SubjectNameResolver(overrides={"APTITUDE": "Quantitative Aptitude"})
        derived = base.with_overrides({"23CSM999": "Special Topics"})

        assert derived.get_subject_name("23CSM999") == "Special Topics"
        assert derived.get_subject_name("APTITUDE") == "Quantitative Aptitude"
        assert base.get_subject_name("23CSM999") == "Computer Science - 23CSM999"

    def test_empty_mappings_are_ignored(self):
        resolver = SubjectNameResolver()
        resolver.add_mapping("", "Nothing")
        resolver.add_mapping("CSM107", "")

        assert resolver.get_subject_name("CSM107") == "Compiler Design"
        assert not resolver.has_mapping(None)

    def test_custom_tables(self):
        resolver = SubjectNameResolver(table={"BIO101": "Biology"}, families={"BIO": "Life Sciences"})

        assert resolver.get_subject_name("BIO101") == "Biology"
        assert resolver.get_subject_name("BIO202") == "Life Sciences - BIO202"
        assert resolver.get_subject_name("CSM107") == "CSM107"
