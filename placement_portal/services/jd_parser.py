"""
JD Parser - rule-based extraction of job posting fields from a job
description, so an admin can upload a JD file and get a pre-filled form.

Text → labelled-line regexes → dict → validate → job posting draft.
"""

import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Pattern, Sequence

DEFAULT_DEADLINE_DAYS = 30


def _labelled(*labels: str) -> List[Pattern]:
    """`Label: value` at the start of a line, one pattern per label."""
    return [re.compile(rf"^\s*{label}\s*[:\-]\s*(.+)$", re.IGNORECASE | re.MULTILINE) for label in labels]


TITLE_PATTERNS = _labelled("job title", "position", "role") + [
    re.compile(
        r"^([^\n]*(?:developer|engineer|manager|analyst|specialist|coordinator))\b",
        re.IGNORECASE | re.MULTILINE,
    ),
]
COMPANY_PATTERNS = _labelled("company", "organization", "employer")
LOCATION_PATTERNS = _labelled("location", "based in", "office")
SALARY_PATTERNS = _labelled("salary", "compensation", "ctc", "pay") + [
    re.compile(r"(\$[\d,]+(?:\s*-\s*\$[\d,]+)?)"),
    re.compile(r"(₹[\d,]+(?:\s*-\s*₹[\d,]+)?)"),
]
EXPERIENCE_PATTERNS = _labelled("experience") + [
    re.compile(r"(\d+\+?\s*years?\s*(?:of\s*)?experience)", re.IGNORECASE),
    re.compile(r"minimum\s+(\d+\s*years?)", re.IGNORECASE),
]

SKILL_KEYWORDS = [
    "JavaScript", "Python", "Java", "React", "Node.js", "Angular", "Vue.js",
    "HTML", "CSS", "SQL", "MongoDB", "PostgreSQL", "AWS", "Docker", "Kubernetes",
    "Git", "REST API", "GraphQL", "TypeScript", "PHP", "C++", "C#", ".NET",
    "Spring Boot", "Django", "Flask", "Express.js", "Firebase", "Azure",
]

BULLET = re.compile(r"^\s*[-•*]\s*")


def _first_match(text: str, patterns: Sequence[Pattern]) -> str:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return ""


def _contains_skill(text_lower: str, skill: str) -> bool:
    # Word boundaries would break on "C++"/".NET"; require no adjacent letters instead
    pattern = rf"(?<![a-z0-9]){re.escape(skill.lower())}(?![a-z0-9])"
    return re.search(pattern, text_lower) is not None


def _bullets_after(text: str, headings: str) -> List[str]:
    """Bullet list directly under a heading such as `Requirements:`."""
    match = re.search(
        rf"(?:{headings})\s*:?\s*\n((?:[ \t]*[-•*][^\n]*(?:\n|$))+)",
        text,
        re.IGNORECASE,
    )
    if not match:
        return []
    return [BULLET.sub("", line).strip() for line in match.group(1).splitlines() if line.strip()]


def parse_job_description(text: str) -> Dict[str, Any]:
    """Extract structured job fields from JD text. Missing fields are empty."""
    text_lower = text.lower()
    return {
        "title": _first_match(text, TITLE_PATTERNS),
        "company": _first_match(text, COMPANY_PATTERNS),
        "location": _first_match(text, LOCATION_PATTERNS),
        "salary": _first_match(text, SALARY_PATTERNS),
        "experience": _first_match(text, EXPERIENCE_PATTERNS),
        "skills": [skill for skill in SKILL_KEYWORDS if _contains_skill(text_lower, skill)],
        "description": text,
        "requirements": _bullets_after(text, r"requirements?|qualifications?"),
        "benefits": _bullets_after(text, r"benefits?|perks?"),
    }


def validate_job_data(data: Dict[str, Any]) -> Dict[str, Any]:
    errors = []
    if len(data.get("title") or "") < 3:
        errors.append("Job title is required and must be at least 3 characters")
    if len(data.get("company") or "") < 2:
        errors.append("Company name is required and must be at least 2 characters")
    if len(data.get("description") or "") < 50:
        errors.append("Job description must be at least 50 characters")
    return {"is_valid": not errors, "errors": errors}


def format_for_job_posting(parsed: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """Draft for the job creation form; application deadline defaults to 30 days out."""
    today = today or date.today()
    return {
        "title": parsed.get("title") or "",
        "company_name": parsed.get("company") or "",
        "location": parsed.get("location") or "",
        "salary": parsed.get("salary") or "",
        "experience_required": parsed.get("experience") or "",
        "skills_required": parsed.get("skills") or [],
        "description": parsed.get("description") or "",
        "requirements": parsed.get("requirements") or [],
        "benefits": parsed.get("benefits") or [],
        "job_type": "Full-time",
        "work_mode": "Hybrid",
        "application_deadline": (today + timedelta(days=DEFAULT_DEADLINE_DAYS)).isoformat(),
    }
