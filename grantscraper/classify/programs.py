from __future__ import annotations

import re
from typing import Any, Iterable

from grantscraper.normalize.schema import GENERAL_PROGRAM, item_text

MAX_PROGRAMS = 10
EXCLUDED_WORDS = ("degree", "program", "course", "studies", "major", "minor", "scholarship")

# Degree titles and course codes mapped to the category tag stored on a record.
# Lookups walk this mapping in insertion order, so earlier entries win ties.
PROGRAM_CATEGORIES: dict[str, str] = {
    # Computer Science & IT
    "BS Computer Science": "Computer Science",
    "BS Information Technology": "Computer Science",
    "BS Information Systems": "Computer Science",
    "BS Cybersecurity": "Computer Science",
    "BS Data Science": "Computer Science",
    "BS Software Engineering": "Computer Science",
    "BS Computer Engineering": "Computer Science",
    "BS Computer Programming": "Computer Science",
    "BS Database Administration": "Computer Science",
    "BS Network Administration": "Computer Science",
    "BS IT Management": "Computer Science",
    "BSCS": "Computer Science",
    "BSIT": "Computer Science",
    # Engineering
    "BSCpE": "Engineering",
    "BSCE": "Engineering",
    "BS Mechanical Engineering": "Engineering",
    "BS Electrical Engineering": "Engineering",
    "BS Civil Engineering": "Engineering",
    "BS Chemical Engineering": "Engineering",
    "BS Industrial Engineering": "Engineering",
    "BS Aerospace Engineering": "Engineering",
    "BS Biomedical Engineering": "Engineering",
    "BS Environmental Engineering": "Engineering",
    "BS Petroleum Engineering": "Engineering",
    "BS Materials Engineering": "Engineering",
    "BS Nuclear Engineering": "Engineering",
    "BS Marine Engineering": "Engineering",
    "BSME": "Engineering",
    "BSEE": "Engineering",
    "BSChE": "Engineering",
    "BSIE": "Engineering",
    # Business & Management
    "BS Business Administration": "Business",
    "BS Business Management": "Business",
    "BS Accounting": "Business",
    "BS Finance": "Business",
    "BS Marketing": "Business",
    "BS Human Resources": "Business",
    "BS Entrepreneurship": "Business",
    "BS Economics": "Business",
    "BS International Business": "Business",
    "BS Supply Chain Management": "Business",
    "BS Operations Management": "Business",
    "BS Project Management": "Business",
    "BS Public Administration": "Business",
    "BS Hospitality Management": "Business",
    "BS Tourism Management": "Business",
    "BSBA": "Business",
    "BSE": "Business",
    "BSPA": "Business",
    "BSTM": "Business",
    "BSHM": "Business",
    "BBA": "Business",
    "MBA": "Business",
    # Medicine & Health
    "Doctor of Medicine": "Medicine",
    "BS Nursing": "Medicine",
    "BS Pharmacy": "Medicine",
    "BS Physical Therapy": "Medicine",
    "BS Occupational Therapy": "Medicine",
    "BS Medical Technology": "Medicine",
    "BS Radiology": "Medicine",
    "Doctor of Dental Medicine": "Medicine",
    "Doctor of Veterinary Medicine": "Medicine",
    "BS Public Health": "Medicine",
    "BS Healthcare Management": "Medicine",
    "BS Nutrition": "Medicine",
    "BS Psychology": "Medicine",
    "BS Mental Health": "Medicine",
    "BS Health Sciences": "Medicine",
    "BSN": "Medicine",
    "BSPT": "Medicine",
    "BSOT": "Medicine",
    "BSMT": "Medicine",
    "DVM": "Medicine",
    "MD": "Medicine",
    "DMD": "Medicine",
    # Education
    "Bachelor of Elementary Education": "Education",
    "Bachelor of Secondary Education": "Education",
    "BS Elementary Education": "Education",
    "BS Secondary Education": "Education",
    "BS Special Education": "Education",
    "BS Educational Leadership": "Education",
    "BS Curriculum Development": "Education",
    "BS Educational Psychology": "Education",
    "BS Early Childhood Education": "Education",
    "BS Adult Education": "Education",
    "BS Educational Technology": "Education",
    "BEED": "Education",
    "BSED": "Education",
    "BEEd": "Education",
    "BS Ed": "Education",
    "MA Education": "Education",
    "MA Teaching": "Education",
    "MEd": "Education",
    "PhD Education": "Education",
    # Arts & Humanities
    "BA English": "Arts & Humanities",
    "BA Literature": "Arts & Humanities",
    "BA History": "Arts & Humanities",
    "BA Philosophy": "Arts & Humanities",
    "BA Sociology": "Arts & Humanities",
    "BA Political Science": "Arts & Humanities",
    "BA International Relations": "Arts & Humanities",
    "BA Communication": "Arts & Humanities",
    "BA Journalism": "Arts & Humanities",
    "BA Mass Communication": "Arts & Humanities",
    "BA Fine Arts": "Arts & Humanities",
    "BA Music": "Arts & Humanities",
    "BA Theater": "Arts & Humanities",
    "BA Film Studies": "Arts & Humanities",
    "BA Languages": "Arts & Humanities",
    "AB English": "Arts & Humanities",
    "AB History": "Arts & Humanities",
    "AB Philosophy": "Arts & Humanities",
    "AB Political Science": "Arts & Humanities",
    "AB Communication": "Arts & Humanities",
    "AB Journalism": "Arts & Humanities",
    "AB Mass Communication": "Arts & Humanities",
    "AB": "Arts & Humanities",
    "BA": "Arts & Humanities",
    "Arts and Culture": "Arts & Humanities",
    "Artistic": "Arts & Humanities",
    "Performing Arts": "Arts & Humanities",
    "Visual Arts": "Arts & Humanities",
    "Humanities": "Arts & Humanities",
    "Culture": "Arts & Humanities",
    "Arts": "Arts & Humanities",
    "Music": "Arts & Humanities",
    "Theater": "Arts & Humanities",
    "Film Studies": "Arts & Humanities",
    "Languages": "Arts & Humanities",
    # Science
    "BS Mathematics": "Science",
    "BS Physics": "Science",
    "BS Chemistry": "Science",
    "BS Biology": "Science",
    "BS Environmental Science": "Science",
    "BS Geology": "Science",
    "BS Astronomy": "Science",
    "BS Statistics": "Science",
    "BS Applied Mathematics": "Science",
    "BS Biochemistry": "Science",
    "BS Biotechnology": "Science",
    "BS Marine Biology": "Science",
    "BS Microbiology": "Science",
    "BS Zoology": "Science",
    "BS Botany": "Science",
    "BSC": "Science",
    "BS Math": "Science",
    # Agriculture
    "BS Agriculture": "Agriculture",
    "BS Agricultural Engineering": "Agriculture",
    "BS Forestry": "Agriculture",
    "BS Environmental Studies": "Agriculture",
    "BS Sustainable Development": "Agriculture",
    "BS Food Science": "Agriculture",
    "BS Animal Science": "Agriculture",
    "BS Crop Science": "Agriculture",
    "BS Agricultural Economics": "Agriculture",
    "BS Soil Science": "Agriculture",
    "BS Horticulture": "Agriculture",
    "BSA": "Agriculture",
    "BS Ag": "Agriculture",
    # Architecture & Design
    "BS Architecture": "Architecture & Design",
    "BS Interior Design": "Architecture & Design",
    "BS Graphic Design": "Architecture & Design",
    "BS Fashion Design": "Architecture & Design",
    "BS Industrial Design": "Architecture & Design",
    "BS Urban Planning": "Architecture & Design",
    "BS Landscape Architecture": "Architecture & Design",
    "BS Product Design": "Architecture & Design",
    "BS Digital Design": "Architecture & Design",
    # Law
    "Bachelor of Laws": "Law",
    "BS Legal Studies": "Law",
    "BS Criminology": "Law",
    "BS Criminal Justice": "Law",
    "BS Paralegal Studies": "Law",
    "BS Forensic Science": "Law",
    "LLB": "Law",
    "JD": "Law",
    "BSCrim": "Law",
    "BSCJ": "Law",
    # Social Work
    "BS Social Work": "Social Work",
    "BS Social Services": "Social Work",
    "BS Community Development": "Social Work",
    "BS Counseling": "Social Work",
    "BS Social Psychology": "Social Work",
    "BS Human Services": "Social Work",
    "BSW": "Social Work",
    "BSSW": "Social Work",
}

_PROGRAM_PATTERNS = tuple(
    re.compile(rf"\b(?:{alternatives})\b", flags=re.IGNORECASE)
    for alternatives in (
        r"computer engineering|software engineering|civil engineering|mechanical engineering"
        r"|electrical engineering|chemical engineering|industrial engineering|aerospace engineering"
        r"|biomedical engineering|environmental engineering",
        r"computer science|information technology|information systems|cybersecurity|data science"
        r"|artificial intelligence|machine learning|software development|web development|mobile development",
        r"business administration|business management|accounting|finance|marketing|human resources"
        r"|entrepreneurship|economics|international business|supply chain management",
        r"medicine|nursing|pharmacy|physical therapy|occupational therapy|medical technology|radiology"
        r"|dentistry|veterinary medicine|public health|healthcare management",
        r"curriculum development|educational psychology",
        r"english|literature|history|philosophy|psychology|sociology|political science"
        r"|international relations|communication|journalism|mass communication|humanities|culture|arts"
        r"|visual arts|music|theater|film studies|languages",
        r"mathematics|physics|chemistry|biology|environmental science|geology|astronomy|statistics"
        r"|applied mathematics|biochemistry|biotechnology",
        r"agriculture|agricultural engineering|forestry|environmental studies|sustainable development"
        r"|food science|animal science|crop science",
        r"architecture|interior design|graphic design|fashion design|industrial design|urban planning"
        r"|landscape architecture",
        r"law|legal studies|criminology|criminal justice|political science|public administration",
        r"social work|psychology|counseling|social services|community development",
        r"bs|ba|ma|ms|mba|md|phd|dmd|dvm|rn|bsc|bcom|btech|mtech|mcom|msc",
    )
)

_CONTEXT_PATTERNS = (
    re.compile(
        r"(?:for|in|studying|pursuing|enrolled in)\s+"
        r"([a-z\s]+(?:engineering|science|arts|business|medicine|education|law|agriculture|architecture|technology))",
        flags=re.IGNORECASE,
    ),
    re.compile(r"(?:bachelor'?s|master'?s|doctorate|phd)\s+(?:in|of)\s+([a-z\s]+)", flags=re.IGNORECASE),
)
_CONTEXT_PREFIX = re.compile(
    r"(?:for|in|studying|pursuing|enrolled in|bachelor'?s|master'?s|doctorate|phd)\s+(?:in|of)?\s*([a-z\s]+)",
    flags=re.IGNORECASE,
)
_EXCLUDED_PATTERN = re.compile(rf"\b(?:{'|'.join(EXCLUDED_WORDS)})\b", flags=re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

# Two-letter codes (AB, BA, MD, JD) only count as whole words.
_MIN_SUBSTRING_LENGTH = 3


def _clean_phrase(raw: str) -> str | None:
    cleaned = _EXCLUDED_PATTERN.sub("", raw.lower())
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    if len(cleaned) > 2:
        return cleaned
    return None


def extract_program_phrases(text: str | None, *, max_programs: int = MAX_PROGRAMS) -> list[str]:
    """Pull candidate field-of-study phrases out of free text, in discovery order."""

    if not text:
        return []

    phrases: dict[str, None] = {}
    for pattern in _PROGRAM_PATTERNS:
        for match in pattern.finditer(text):
            cleaned = _clean_phrase(match.group(0).strip())
            if cleaned:
                phrases.setdefault(cleaned, None)

    for pattern in _CONTEXT_PATTERNS:
        for match in pattern.finditer(text):
            prefixed = _CONTEXT_PREFIX.search(match.group(0))
            if prefixed is None:
                continue
            cleaned = _clean_phrase(prefixed.group(1).strip())
            if cleaned:
                phrases.setdefault(cleaned, None)

    return list(phrases)[:max_programs]


def program_categories(phrase: str | None) -> list[str]:
    """Map one phrase to at most one category: exact, then whole-word, then substring."""

    lowered = (phrase or "").strip().lower()
    if not lowered:
        return []

    for program_name, category in PROGRAM_CATEGORIES.items():
        if lowered == program_name.lower():
            return [category]

    for program_name, category in PROGRAM_CATEGORIES.items():
        if re.search(rf"\b{re.escape(program_name.lower())}\b", lowered):
            return [category]

    for program_name, category in PROGRAM_CATEGORIES.items():
        key = program_name.lower()
        if len(key) < _MIN_SUBSTRING_LENGTH:
            continue
        if key in lowered or (len(lowered) >= _MIN_SUBSTRING_LENGTH and lowered in key):
            return [category]

    return []


def _joined(values: Iterable[Any]) -> str:
    parts = []
    for value in values or ():
        parts.append(value if isinstance(value, str) else item_text(value))
    return " ".join(parts)


def classify_programs(
    *,
    name: str = "",
    description: str = "",
    benefits: Iterable[Any] = (),
    eligibility: Iterable[Any] = (),
    requirements: Iterable[Any] = (),
    max_programs: int = MAX_PROGRAMS,
) -> list[str]:
    """Tag a listing with field-of-study categories, falling back to ["General"].

    The name is checked on its own first; a hit there is returned without looking
    at the body. Otherwise the combined text (name counted twice) is mined for
    candidate phrases and each phrase is mapped through PROGRAM_CATEGORIES.
    """

    title_categories = program_categories(name)
    if title_categories:
        return title_categories

    combined = " ".join(
        [
            f"{name} {name}",
            description or "",
            _joined(benefits),
            _joined(eligibility),
            _joined(requirements),
        ]
    )
    categories: dict[str, None] = {}
    for phrase in extract_program_phrases(combined, max_programs=max_programs):
        for category in program_categories(phrase):
            categories.setdefault(category, None)

    return list(categories) or [GENERAL_PROGRAM]
