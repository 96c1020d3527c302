"""Readable names for portal subject codes.

Codes on the attendance page look like ``23CSM107``: a two digit batch
prefix, a department family and a course number. Lookup order:

    1. exact match on the trimmed, upper-cased code
    2. exact match after stripping the two digit batch prefix
    3. "<family name> - <CODE>" when the department family is known
    4. the code itself
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_SUBJECT_NAMES: Mapping[str, str] = MappingProxyType(
    {
        # Aptitude and soft skills
        "APTITUDE": "Aptitude",
        "SOFTSKILLS": "Soft Skills",
        "SOFT SKILLS": "Soft Skills",
        # Computer science
        "CSM101": "Programming for Problem Solving",
        "CSM102": "Data Structures",
        "CSM103": "Database Management Systems",
        "CSM104": "Operating Systems",
        "CSM105": "Computer Networks",
        "CSM106": "Software Engineering",
        "CSM107": "Compiler Design",
        "CSM108": "Computer Organization",
        "CSM109": "Theory of Computation",
        "CSM201": "Design and Analysis of Algorithms",
        "CSM202": "Web Technologies",
        "CSM203": "Machine Learning",
        "CSM204": "Artificial Intelligence",
        "CSM205": "Cloud Computing",
        "CSM206": "Big Data Analytics",
        "CSM207": "Computer Graphics",
        "CSM208": "Information Security",
        "CSM209": "Mobile Application Development",
        "CSM301": "Data Mining",
        "CSM302": "Internet of Things",
        "CSM303": "Blockchain Technology",
        "CSM304": "Natural Language Processing",
        "CSM401": "Deep Learning",
        "CSM402": "Cyber Security",
        "CSM403": "DevOps",
        "CSM4M02": "Data Science and Analytics",
        "CSM501": "Distributed Systems",
        "CSM502": "Advanced Database Systems",
        "CSM601": "Software Testing",
        "CSM602": "Human Computer Interaction",
        "CSM603": "Computer Vision",
        "CSM604": "Parallel Computing",
        # Mathematics
        "MAT101": "Engineering Mathematics - I",
        "MAT102": "Engineering Mathematics - II",
        "MAT103": "Engineering Mathematics - III",
        "MAT104": "Engineering Mathematics - IV",
        "MAT201": "Discrete Mathematics",
        "MAT202": "Probability and Statistics",
        "MAT203": "Linear Algebra",
        # Sciences
        "PHY101": "Engineering Physics",
        "PHY102": "Applied Physics",
        "CHE101": "Engineering Chemistry",
        # English
        "ENG101": "Communicative English",
        "ENG201": "Technical English",
        "ENG301": "Professional Communication",
        "ENG901": "English Communication Skills",
        # Electronics
        "ECE101": "Basic Electronics",
        "ECE201": "Digital Electronics",
        "ECE301": "Microprocessors and Microcontrollers",
        "ECE302": "VLSI Design",
        # Management and economics
        "MGT101": "Principles of Management",
        "MGT201": "Entrepreneurship",
        "ECO101": "Economics for Engineers",
        # Environmental science
        "EVS101": "Environmental Science",
        "EVS201": "Environmental Studies",
        # Projects and internships
        "PRJ401": "Mini Project",
        "PRJ501": "Major Project - I",
        "PRJ502": "Major Project - II",
        "INT401": "Industrial Training",
        "INT501": "Internship",
    }
)

FAMILY_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "CSM": "Computer Science",
        "ECE": "Electronics",
        "EEE": "Electrical",
        "MEC": "Mechanical",
        "CIV": "Civil",
        "MAT": "Mathematics",
        "PHY": "Physics",
        "CHE": "Chemistry",
        "ENG": "English",
        "MGT": "Management",
        "ECO": "Economics",
    }
)

UNKNOWN_SUBJECT = "Unknown Subject"

BATCH_PREFIX = re.compile(r"^\d{2}")
FAMILY_PREFIX = re.compile(r"([A-Z]{3})\d")


def _clean(code: str) -> str:
    return code.strip().upper()


class SubjectNameResolver:
    """Maps subject codes to display names.

    The base table is read-only. ``add_mapping`` writes to a per-instance
    overlay which takes precedence over the base table. The overlay is not
    locked; callers sharing a resolver across threads must serialize writes.

    Example:
        resolver = SubjectNameResolver()
        resolver.get_subject_name("23CSM107")   # "Compiler Design"
        resolver.get_subject_name("23CSM999")   # "Computer Science - 23CSM999"
    """

    def __init__(
        self,
        table: Mapping[str, str] = DEFAULT_SUBJECT_NAMES,
        families: Mapping[str, str] = FAMILY_NAMES,
        overrides: Optional[Mapping[str, str]] = None,
    ):
        self._table = table
        self._families = families
        self._overlay: dict[str, str] = {}
        for code, name in (overrides or {}).items():
            self.add_mapping(code, name)

    def _lookup(self, clean_code: str) -> Optional[str]:
        if clean_code in self._overlay:
            return self._overlay[clean_code]
        return self._table.get(clean_code)

    def get_subject_name(self, code: Optional[str]) -> str:
        if not code or not code.strip():
            return UNKNOWN_SUBJECT

        clean_code = _clean(code)

        name = self._lookup(clean_code)
        if name:
            return name

        core_code = BATCH_PREFIX.sub("", clean_code, count=1)
        if core_code != clean_code:
            name = self._lookup(core_code)
            if name:
                return name

        family_match = FAMILY_PREFIX.search(clean_code)
        if family_match:
            family = self._families.get(family_match.group(1))
            if family:
                return f"{family} - {clean_code}"

        return code

    def has_mapping(self, code: Optional[str]) -> bool:
        """True when the exact (cleaned) code has a direct mapping."""
        if not code:
            return False
        return self._lookup(_clean(code)) is not None

    def add_mapping(self, code: str, name: str) -> None:
        if code and name:
            self._overlay[_clean(code)] = name

    def with_overrides(self, overrides: Mapping[str, str]) -> "SubjectNameResolver":
        """New resolver sharing the base tables with extra mappings on top."""
        resolver = SubjectNameResolver(self._table, self._families)
        resolver._overlay.update(self._overlay)
        for code, name in overrides.items():
            resolver.add_mapping(code, name)
        return resolver


_default_resolver = SubjectNameResolver()


def get_subject_name(code: Optional[str]) -> str:
    """Resolve ``code`` against the built-in tables only."""
    return _default_resolver.get_subject_name(code)
